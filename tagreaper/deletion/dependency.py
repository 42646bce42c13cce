"""Dependency expansion.

Grows a bucketed resource set to include the resources that must also go
because they live inside, or are attached to, a resource already present
(e.g. the subnets and network interfaces of a VPC).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from tagreaper.aws.client import create_boto_client
from tagreaper.deletion.bucketer import ResourceBuckets
from tagreaper.models.resource_type import ResourceType

logger = logging.getLogger(__name__)


class DependencyExpander(ABC):
    """Expands a resource set to its deletion dependencies.

    Implementations must return a superset of their input that keeps every
    resource name in at most one bucket, and must be idempotent: expanding an
    expanded set adds nothing.
    """

    @abstractmethod
    def expand(self, buckets: ResourceBuckets) -> ResourceBuckets:
        """Return buckets plus every resource reachable by a dependency edge."""


@dataclass(frozen=True)
class DependencyRule:
    """How to find one kind of child resource of a parent type.

    Attributes:
        child_type: Resource type of the children
        method: EC2 describe method (must support pagination)
        filter_name: Describe filter that selects children by parent id
        result_key: Response key holding the child descriptions
        id_key: Child description key holding the child id
        filter_param: Request parameter carrying the filters
        skip: Predicate marking children that must not be deleted (optional)
    """

    child_type: ResourceType
    method: str
    filter_name: str
    result_key: str
    id_key: str
    filter_param: str = "Filters"
    skip: Optional[Callable[[Dict[str, Any]], bool]] = None


def _is_main_route_table(route_table: Dict[str, Any]) -> bool:
    return any(association.get("Main") for association in route_table.get("Associations", []))


VPC_RULES = [
    DependencyRule(ResourceType.EC2_SUBNET, "describe_subnets", "vpc-id", "Subnets", "SubnetId"),
    DependencyRule(
        ResourceType.EC2_SECURITY_GROUP,
        "describe_security_groups",
        "vpc-id",
        "SecurityGroups",
        "GroupId",
        skip=lambda group: group.get("GroupName") == "default",
    ),
    DependencyRule(
        ResourceType.EC2_ROUTE_TABLE,
        "describe_route_tables",
        "vpc-id",
        "RouteTables",
        "RouteTableId",
        skip=_is_main_route_table,
    ),
    DependencyRule(
        ResourceType.EC2_NETWORK_ACL,
        "describe_network_acls",
        "vpc-id",
        "NetworkAcls",
        "NetworkAclId",
        skip=lambda acl: bool(acl.get("IsDefault")),
    ),
    DependencyRule(
        ResourceType.EC2_INTERNET_GATEWAY,
        "describe_internet_gateways",
        "attachment.vpc-id",
        "InternetGateways",
        "InternetGatewayId",
    ),
    DependencyRule(
        ResourceType.EC2_NAT_GATEWAY,
        "describe_nat_gateways",
        "vpc-id",
        "NatGateways",
        "NatGatewayId",
        filter_param="Filter",
        skip=lambda gateway: gateway.get("State") in ("deleting", "deleted"),
    ),
    DependencyRule(
        ResourceType.EC2_NETWORK_INTERFACE,
        "describe_network_interfaces",
        "vpc-id",
        "NetworkInterfaces",
        "NetworkInterfaceId",
    ),
]

SUBNET_RULES = [
    DependencyRule(
        ResourceType.EC2_NETWORK_INTERFACE,
        "describe_network_interfaces",
        "subnet-id",
        "NetworkInterfaces",
        "NetworkInterfaceId",
    ),
    DependencyRule(
        ResourceType.EC2_INSTANCE,
        "describe_instances",
        "subnet-id",
        "Reservations",
        "InstanceId",
        skip=lambda instance: instance.get("State", {}).get("Name") == "terminated",
    ),
    DependencyRule(
        ResourceType.EC2_NAT_GATEWAY,
        "describe_nat_gateways",
        "subnet-id",
        "NatGateways",
        "NatGatewayId",
        filter_param="Filter",
        skip=lambda gateway: gateway.get("State") in ("deleting", "deleted"),
    ),
]


class Ec2DependencyExpander(DependencyExpander):
    """Expand VPCs and subnets to the EC2 resources inside them.

    Expansion repeats on newly added resources until nothing new is found, so
    subnets pulled in by a VPC also pull in their instances.

    Attributes:
        client: boto3 EC2 client
        rules: Parent resource type -> rules for finding its children
    """

    def __init__(self, client: Any) -> None:
        self.client = client
        self.rules: Dict[ResourceType, List[DependencyRule]] = {
            ResourceType.EC2_VPC: VPC_RULES,
            ResourceType.EC2_SUBNET: SUBNET_RULES,
        }

    @classmethod
    def from_aws(
        cls,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "Ec2DependencyExpander":
        """Build an expander with a boto3 EC2 client."""
        return cls(create_boto_client("ec2", region_name=region, profile_name=profile, timeout=timeout))

    def expand(self, buckets: ResourceBuckets) -> ResourceBuckets:
        expanded: ResourceBuckets = {resource_type: list(names) for resource_type, names in buckets.items()}
        seen = {name for names in expanded.values() for name in names}

        frontier: ResourceBuckets = dict(expanded)
        while frontier:
            added: ResourceBuckets = {}

            for parent_type, parent_names in frontier.items():
                for rule in self.rules.get(parent_type, []):
                    for child_id in self._find_children(rule, parent_names):
                        if child_id in seen:
                            continue
                        seen.add(child_id)
                        expanded.setdefault(rule.child_type, []).append(child_id)
                        added.setdefault(rule.child_type, []).append(child_id)

            frontier = added

        return expanded

    def _find_children(self, rule: DependencyRule, parent_names: List[str]) -> List[str]:
        """Look up the children selected by one rule, returning [] on provider errors."""
        params = {rule.filter_param: [{"Name": rule.filter_name, "Values": list(parent_names)}]}
        child_ids: List[str] = []

        try:
            for page in self.client.get_paginator(rule.method).paginate(**params):
                for item in page.get(rule.result_key, []):
                    # describe_instances nests instances inside reservations
                    for child in item.get("Instances", [item]):
                        if rule.skip is not None and rule.skip(child):
                            continue
                        child_ids.append(child[rule.id_key])
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Could not look up {rule.child_type} dependencies: {e}")

        return child_ids
