"""Deletion ordering.

DELETE_ORDER is the reverse of the order in which resource types can safely be
deleted: types listed first are deleted last. A VPC, for instance, is listed
before its subnets so the subnets are gone before the VPC delete is issued.
"""

from __future__ import annotations

from typing import List, Mapping, Sequence, Tuple

from tagreaper.models.resource_type import ResourceType

DELETE_ORDER: Tuple[ResourceType, ...] = (
    ResourceType.EC2_VPC,
    ResourceType.EC2_VPN_GATEWAY,  # detaches from VPCs first
    ResourceType.EC2_SECURITY_GROUP,
    ResourceType.EC2_ROUTE_TABLE,
    ResourceType.EC2_SUBNET,
    ResourceType.EC2_VOLUME,
    ResourceType.EC2_CUSTOMER_GATEWAY,
    ResourceType.EC2_VPN_CONNECTION,
    ResourceType.EC2_NETWORK_ACL,
    ResourceType.EC2_NETWORK_INTERFACE,
    ResourceType.EC2_INTERNET_GATEWAY,
    ResourceType.IAM_USER,
    ResourceType.IAM_ROLE,  # removes inline and attached policies first
    ResourceType.IAM_INSTANCE_PROFILE,
    ResourceType.AUTOSCALING_LAUNCH_CONFIGURATION,
    ResourceType.EC2_EIP,
    ResourceType.EC2_EIP_ASSOCIATION,
    ResourceType.EC2_NAT_GATEWAY,
    ResourceType.ELB_LOAD_BALANCER,
    ResourceType.AUTOSCALING_GROUP,
    ResourceType.EC2_INSTANCE,
    ResourceType.EC2_ROUTE_TABLE_ASSOCIATION,
    ResourceType.ROUTE53_HOSTED_ZONE,  # removes record sets first
    ResourceType.S3_BUCKET,  # empties the bucket first
)

OrderedBuckets = List[Tuple[ResourceType, List[str]]]


def organize_by_delete_order(
    buckets: Mapping[ResourceType, List[str]],
    precedence: Sequence[ResourceType] = DELETE_ORDER,
) -> OrderedBuckets:
    """Arrange buckets so that executing them back to front is dependency-safe.

    Ranked types appear in precedence order. Types missing from the
    precedence table are placed ahead of them (sorted by type name, descending)
    so a back-to-front walk deletes them after every ranked type, in ascending
    type-name order.

    Args:
        buckets: Resource type -> resource names
        precedence: Reverse deletion order (default: DELETE_ORDER)

    Returns:
        List of (resource type, names) pairs; every bucket appears exactly once
    """
    remaining = dict(buckets)

    ranked: OrderedBuckets = []
    for resource_type in precedence:
        if resource_type in remaining:
            ranked.append((resource_type, remaining.pop(resource_type)))

    unranked = sorted(remaining.items(), key=lambda item: item[0].value, reverse=True)

    return unranked + ranked
