"""Resource discovery by tag.

Resolves tag filter documents to resource ARNs. The Resource Groups Tagging
API covers most resource types; the types it cannot see are discovered through
their own namespaces (auto-scaling tag index, Route53 hosted zone tags).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from tagreaper.discovery.backends import DiscoveryBackends
from tagreaper.models.resource_type import (
    AUTOSCALING_NAMESPACE,
    ROUTE53_NAMESPACE,
    TAGGING_API_UNSUPPORTED,
    ResourceType,
    hosted_zone_arn,
)
from tagreaper.models.tag_filter import TagFilterDocument
from tagreaper.utils.diagnostics import emit_error

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

# ListTagsForResources accepts at most 10 hosted zone ids per call
HOSTED_ZONE_TAG_BATCH_SIZE = 10

NO_MATCH_MESSAGE = "No resources match the specified tag filters"

EMPTY_DOCUMENT_MESSAGE = "Skipping tag filter document without tag filters"


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield consecutive slices of at most size items."""
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ResourceDiscoverer:
    """Resolve tag filter documents to resource ARNs.

    A resource matches a document when it matches every filter in it; a
    resource matches a filter when it carries the filter's key and, if the
    filter lists values, its value is one of them.

    Provider failures never propagate: a failing page or batch stops only its
    own sub-discovery, is reported as a diagnostic, and whatever was found
    before it is kept.

    Attributes:
        backends: Tagging, auto-scaling and hosted zone backends
        resource_types: Allow-list of resource type names narrowing the tagging API query (optional)
    """

    def __init__(
        self,
        backends: DiscoveryBackends,
        resource_types: Optional[Sequence[str]] = None,
        diagnostics: Callable[[str], None] = emit_error,
    ) -> None:
        """Initialize discoverer.

        Args:
            backends: Discovery backends to query
            resource_types: Allow-list of resource type names (optional)
            diagnostics: Callback receiving diagnostic messages (default: JSON line on stdout)
        """
        self.backends = backends
        self.resource_types = list(resource_types or [])
        self._diagnostics = diagnostics

    def discover(self, document: TagFilterDocument) -> List[str]:
        """Find the ARNs of all resources matching a tag filter document.

        Args:
            document: Tag filters to match

        Returns:
            List of ARNs, tagging API results first, then per-namespace results
        """
        # An empty filter list would match every tagged resource
        if not document.tag_filters:
            self._report(EMPTY_DOCUMENT_MESSAGE)
            return []

        arns = self.discover_tagged(document)

        for resource_type in TAGGING_API_UNSUPPORTED:
            arns.extend(self.discover_unsupported(resource_type, document))

        return arns

    def resource_type_filters(self) -> List[str]:
        """Map the allow-list to tagging API namespace filters.

        Unknown type names and types the tagging API cannot see are skipped.
        """
        namespaces: List[str] = []
        for name in self.resource_types:
            resource_type = ResourceType.from_string(name)
            if resource_type is None:
                logger.warning(f"Ignoring unknown resource type in allow-list: {name}")
                continue
            if not resource_type.supports_tagging_api:
                continue
            if resource_type.namespace not in namespaces:
                namespaces.append(resource_type.namespace)
        return namespaces

    def discover_tagged(self, document: TagFilterDocument) -> List[str]:
        """Query the tagging API, following continuation tokens until exhausted."""
        if not document.tag_filters:
            return []

        arns: List[str] = []
        tag_filters = document.to_tagging_api()
        type_filters = self.resource_type_filters()
        token: Optional[str] = None

        while True:
            try:
                page, token = self.backends.tagging.get_resources_page(
                    tag_filters,
                    type_filters,
                    PAGE_SIZE,
                    token,
                )
            except (ClientError, BotoCoreError) as e:
                self._report(f"tagging API request failed: {e}")
                return arns

            if not page:
                self._report(NO_MATCH_MESSAGE)
                return arns

            arns.extend(page)

            if not token:
                break

        logger.debug(f"Tagging API returned {len(arns)} resource(s)")
        return arns

    def discover_unsupported(self, resource_type: ResourceType, document: TagFilterDocument) -> List[str]:
        """Discover one tagging-API-unsupported type through its own namespace."""
        if not document.tag_filters:
            return []

        namespace = resource_type.namespace
        if namespace == AUTOSCALING_NAMESPACE:
            return self.discover_auto_scaling_groups(resource_type, document)
        if namespace == ROUTE53_NAMESPACE:
            return self.discover_hosted_zones(resource_type, document)
        return []

    def discover_auto_scaling_groups(self, resource_type: ResourceType, document: TagFilterDocument) -> List[str]:
        """Find auto-scaling groups through the auto-scaling tag index."""
        # Launch configurations cannot be tagged
        if resource_type is not ResourceType.AUTOSCALING_GROUP:
            return []

        filters = build_auto_scaling_filters(document)
        group_names: List[str] = []
        token: Optional[str] = None

        while True:
            try:
                names, token = self.backends.auto_scaling.describe_tags_page(filters, PAGE_SIZE, token)
            except (ClientError, BotoCoreError) as e:
                self._report(f"auto-scaling tag request failed: {e}")
                break

            if not names:
                break

            for name in names:
                if name not in group_names:
                    group_names.append(name)

            if not token:
                break

        if not group_names:
            return []

        try:
            return self.backends.auto_scaling.describe_group_arns(group_names)
        except (ClientError, BotoCoreError) as e:
            self._report(f"auto-scaling group request failed: {e}")
            return []

    def discover_hosted_zones(self, resource_type: ResourceType, document: TagFilterDocument) -> List[str]:
        """Find hosted zones by listing every zone and filtering their tags locally."""
        if resource_type is not ResourceType.ROUTE53_HOSTED_ZONE:
            return []

        try:
            zone_ids = self.backends.hosted_zones.list_hosted_zone_ids()
        except (ClientError, BotoCoreError) as e:
            self._report(f"hosted zone listing failed: {e}")
            return []

        matched: List[str] = []
        for batch in chunked(zone_ids, HOSTED_ZONE_TAG_BATCH_SIZE):
            try:
                tag_sets = self.backends.hosted_zones.list_tags_for_zones(list(batch))
            except (ClientError, BotoCoreError) as e:
                self._report(str(e))
                break

            for zone_id in filter_hosted_zones(tag_sets, document):
                if zone_id not in matched:
                    matched.append(zone_id)

        return [hosted_zone_arn(zone_id) for zone_id in matched]

    def _report(self, message: str) -> None:
        logger.warning(message)
        self._diagnostics(message)


def build_auto_scaling_filters(document: TagFilterDocument) -> List[Dict[str, Any]]:
    """Translate tag filters into auto-scaling DescribeTags "key"/"value" filters."""
    filters: List[Dict[str, Any]] = []
    for tag_filter in document.tag_filters:
        filters.append({"Name": "key", "Values": [tag_filter.key]})
        if tag_filter.values:
            filters.append({"Name": "value", "Values": list(tag_filter.values)})
    return filters


def filter_hosted_zones(tag_sets: Sequence[Any], document: TagFilterDocument) -> List[str]:
    """Return the ids of hosted zones whose tags match the document.

    Args:
        tag_sets: (zone id, tags) pairs from ListTagsForResources
        document: Tag filters to match

    Returns:
        Matching zone ids in input order
    """
    return [zone_id for zone_id, tags in tag_sets if document.matches(tags)]
