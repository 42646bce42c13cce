"""Failed deletion log entry model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from botocore.exceptions import ClientError


@dataclass(frozen=True)
class LogEntry:
    """Record of one failed deletion attempt.

    Entries are appended to the run's failure log as deletions fail and are
    never modified afterwards. A successful deletion never produces one.

    Attributes:
        resource_type: Type of the resource that failed to delete
        resource_name: Name of the resource that failed to delete
        parent_resource_type: Type of the owning resource, if the failure was on a child (optional)
        parent_resource_name: Name of the owning resource (optional)
        aws_error_code: Error code returned by AWS (optional)
        aws_error_message: Error message returned by AWS (optional)
        error_message: Local error message when no AWS error is available (optional)
    """

    resource_type: str
    resource_name: str
    parent_resource_type: str = ""
    parent_resource_name: str = ""
    aws_error_code: str = ""
    aws_error_message: str = ""
    error_message: str = ""

    @classmethod
    def from_exception(
        cls,
        resource_type: str,
        resource_name: str,
        error: Exception,
        parent_resource_type: str = "",
        parent_resource_name: str = "",
    ) -> "LogEntry":
        """Build an entry from the exception a deletion call raised.

        ClientErrors carry an AWS code/message pair; anything else is recorded
        as a local error message.
        """
        if isinstance(error, ClientError):
            details = error.response.get("Error", {})
            return cls(
                resource_type=resource_type,
                resource_name=resource_name,
                parent_resource_type=parent_resource_type,
                parent_resource_name=parent_resource_name,
                aws_error_code=details.get("Code", "Unknown"),
                aws_error_message=details.get("Message", str(error)),
            )

        return cls(
            resource_type=resource_type,
            resource_name=resource_name,
            parent_resource_type=parent_resource_type,
            parent_resource_name=parent_resource_name,
            error_message=str(error),
        )

    def to_dict(self) -> Dict[str, str]:
        """Serialize to the on-disk field names."""
        return {
            "ResourceType": self.resource_type,
            "ResourceName": self.resource_name,
            "ParentResourceType": self.parent_resource_type,
            "ParentResourceName": self.parent_resource_name,
            "AWSErrorCode": self.aws_error_code,
            "AWSErrorMsg": self.aws_error_message,
            "ErrMsg": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        """Deserialize from the on-disk field names. Missing fields become empty."""
        return cls(
            resource_type=str(data.get("ResourceType") or ""),
            resource_name=str(data.get("ResourceName") or ""),
            parent_resource_type=str(data.get("ParentResourceType") or ""),
            parent_resource_name=str(data.get("ParentResourceName") or ""),
            aws_error_code=str(data.get("AWSErrorCode") or ""),
            aws_error_message=str(data.get("AWSErrorMsg") or ""),
            error_message=str(data.get("ErrMsg") or ""),
        )

    @property
    def has_parent(self) -> bool:
        return bool(self.parent_resource_name)

    @property
    def has_aws_error(self) -> bool:
        return bool(self.aws_error_code and self.aws_error_message)
