"""Discovery backends.

Each backend is a narrow capability interface over one AWS API. The
discoverer only talks to these interfaces; the boto3 implementations below are
injected at run start and test doubles implement the same methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from tagreaper.aws.client import create_boto_client
from tagreaper.models.resource_type import split_hosted_zone_id


class TaggingBackend(ABC):
    """Generic tag query source (Resource Groups Tagging API)."""

    @abstractmethod
    def get_resources_page(
        self,
        tag_filters: List[Dict[str, Any]],
        resource_type_filters: List[str],
        page_size: int,
        pagination_token: Optional[str] = None,
    ) -> Tuple[List[str], Optional[str]]:
        """Request one page of resources matching the tag filters.

        Args:
            tag_filters: TagFilters parameter ([{"Key": ..., "Values": [...]}])
            resource_type_filters: Namespaces to narrow results to (empty for all)
            page_size: Maximum resources per page
            pagination_token: Continuation token from the previous page (optional)

        Returns:
            Tuple of (resource ARNs on this page, continuation token or None)
        """


class AutoScalingBackend(ABC):
    """Auto-scaling namespace discovery source."""

    @abstractmethod
    def describe_tags_page(
        self,
        filters: List[Dict[str, Any]],
        page_size: int,
        next_token: Optional[str] = None,
    ) -> Tuple[List[str], Optional[str]]:
        """Request one page of the auto-scaling tag index.

        Returns:
            Tuple of (group names with a matching tag, continuation token or None)
        """

    @abstractmethod
    def describe_group_arns(self, group_names: List[str]) -> List[str]:
        """Resolve auto-scaling group names to their ARNs."""


class HostedZoneBackend(ABC):
    """Route53 hosted zone discovery source."""

    @abstractmethod
    def list_hosted_zone_ids(self) -> List[str]:
        """List the short ids (e.g. "Z123") of every hosted zone in the account."""

    @abstractmethod
    def list_tags_for_zones(self, zone_ids: List[str]) -> List[Tuple[str, Dict[str, str]]]:
        """Fetch tags for a batch of hosted zones.

        Args:
            zone_ids: Short zone ids (at most the API's batch limit)

        Returns:
            List of (zone id, tags) pairs
        """


class BotoTaggingBackend(TaggingBackend):
    """TaggingBackend backed by a boto3 resourcegroupstaggingapi client."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def get_resources_page(
        self,
        tag_filters: List[Dict[str, Any]],
        resource_type_filters: List[str],
        page_size: int,
        pagination_token: Optional[str] = None,
    ) -> Tuple[List[str], Optional[str]]:
        params: Dict[str, Any] = {
            "TagFilters": tag_filters,
            "ResourcesPerPage": page_size,
        }
        if resource_type_filters:
            params["ResourceTypeFilters"] = resource_type_filters
        if pagination_token:
            params["PaginationToken"] = pagination_token

        response = self.client.get_resources(**params)

        arns = [
            mapping["ResourceARN"]
            for mapping in response.get("ResourceTagMappingList", [])
            if mapping.get("ResourceARN")
        ]
        return arns, response.get("PaginationToken") or None


class BotoAutoScalingBackend(AutoScalingBackend):
    """AutoScalingBackend backed by a boto3 autoscaling client."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def describe_tags_page(
        self,
        filters: List[Dict[str, Any]],
        page_size: int,
        next_token: Optional[str] = None,
    ) -> Tuple[List[str], Optional[str]]:
        params: Dict[str, Any] = {"Filters": filters, "MaxRecords": page_size}
        if next_token:
            params["NextToken"] = next_token

        response = self.client.describe_tags(**params)

        names = [tag["ResourceId"] for tag in response.get("Tags", []) if tag.get("ResourceId")]
        return names, response.get("NextToken") or None

    def describe_group_arns(self, group_names: List[str]) -> List[str]:
        arns = []
        paginator = self.client.get_paginator("describe_auto_scaling_groups")
        for page in paginator.paginate(AutoScalingGroupNames=group_names):
            for group in page.get("AutoScalingGroups", []):
                arns.append(group["AutoScalingGroupARN"])
        return arns


class BotoHostedZoneBackend(HostedZoneBackend):
    """HostedZoneBackend backed by a boto3 route53 client."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def list_hosted_zone_ids(self) -> List[str]:
        zone_ids = []
        paginator = self.client.get_paginator("list_hosted_zones")
        for page in paginator.paginate():
            for zone in page.get("HostedZones", []):
                zone_ids.append(split_hosted_zone_id(zone["Id"]))
        return zone_ids

    def list_tags_for_zones(self, zone_ids: List[str]) -> List[Tuple[str, Dict[str, str]]]:
        response = self.client.list_tags_for_resources(ResourceType="hostedzone", ResourceIds=zone_ids)

        tag_sets = []
        for tag_set in response.get("ResourceTagSets", []):
            tags = {tag["Key"]: tag.get("Value", "") for tag in tag_set.get("Tags", [])}
            tag_sets.append((tag_set["ResourceId"], tags))
        return tag_sets


@dataclass
class DiscoveryBackends:
    """The set of backends one discovery run talks to."""

    tagging: TaggingBackend
    auto_scaling: AutoScalingBackend
    hosted_zones: HostedZoneBackend

    @classmethod
    def from_aws(
        cls,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "DiscoveryBackends":
        """Build boto3-backed backends for a region."""
        return cls(
            tagging=BotoTaggingBackend(
                create_boto_client("resourcegroupstaggingapi", region_name=region, profile_name=profile, timeout=timeout)
            ),
            auto_scaling=BotoAutoScalingBackend(
                create_boto_client("autoscaling", region_name=region, profile_name=profile, timeout=timeout)
            ),
            hosted_zones=BotoHostedZoneBackend(
                create_boto_client("route53", region_name=region, profile_name=profile, timeout=timeout)
            ),
        )
