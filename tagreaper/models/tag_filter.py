"""Tag filter models.

A tag filter document is one discovery unit: a list of tag filters that a
resource must all satisfy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping


@dataclass(frozen=True)
class TagFilter:
    """A tag key plus the acceptable values for it.

    An empty values list matches any value for the key.

    Attributes:
        key: Tag key
        values: Acceptable tag values (empty means any value)
    """

    key: str
    values: tuple = ()

    def matches(self, tags: Mapping[str, str]) -> bool:
        """Check whether a resource's tags satisfy this filter.

        Args:
            tags: Resource tags as a key -> value mapping

        Returns:
            True if the key is present and its value is acceptable
        """
        if self.key not in tags:
            return False
        if not self.values:
            return True
        return tags[self.key] in self.values

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the tagging API's TagFilter shape."""
        return {"Key": self.key, "Values": list(self.values)}

    @classmethod
    def from_dict(cls, data: Any) -> "TagFilter":
        """Build a TagFilter from its JSON form.

        Raises:
            ValueError: If the data is not a {"Key": str, "Values": [str]} object
        """
        if not isinstance(data, dict):
            raise ValueError(f"tag filter must be an object, got {type(data).__name__}")

        key = data.get("Key")
        if not isinstance(key, str):
            raise ValueError("tag filter Key must be a string")

        values = data.get("Values") or []
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValueError(f"tag filter Values for {key!r} must be a list of strings")

        return cls(key=key, values=tuple(values))


@dataclass(frozen=True)
class TagFilterDocument:
    """An ordered list of tag filters, decoded from one input document.

    Attributes:
        tag_filters: Filters a resource must all match
    """

    tag_filters: List[TagFilter] = field(default_factory=list)

    def matches(self, tags: Mapping[str, str]) -> bool:
        """Check whether a resource's tags satisfy every filter in the document."""
        return all(tag_filter.matches(tags) for tag_filter in self.tag_filters)

    def to_tagging_api(self) -> List[Dict[str, Any]]:
        """Convert the filters to the tagging API's TagFilters parameter."""
        return [tag_filter.to_dict() for tag_filter in self.tag_filters]

    @classmethod
    def from_dict(cls, data: Any) -> "TagFilterDocument":
        """Build a document from its JSON form ({"TagFilters": [...]}).

        Raises:
            ValueError: If the data does not have the expected shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"tag filter document must be an object, got {type(data).__name__}")

        if "TagFilters" not in data:
            raise ValueError("tag filter document has no TagFilters key")

        raw_filters = data["TagFilters"] or []
        if not isinstance(raw_filters, list):
            raise ValueError("TagFilters must be a list")

        return cls(tag_filters=[TagFilter.from_dict(item) for item in raw_filters])
