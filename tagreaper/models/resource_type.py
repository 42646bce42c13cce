"""Resource types and resource identifiers (ARNs).

The set of resource types is closed. Each type maps to the namespace (AWS
service) that can enumerate and delete it, and records whether the Resource
Groups Tagging API can find it by tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResourceType(Enum):
    """AWS resource types known to the deleter."""

    EC2_VPC = "AWS::EC2::VPC"
    EC2_VPN_GATEWAY = "AWS::EC2::VPNGateway"
    EC2_SECURITY_GROUP = "AWS::EC2::SecurityGroup"
    EC2_ROUTE_TABLE = "AWS::EC2::RouteTable"
    EC2_SUBNET = "AWS::EC2::Subnet"
    EC2_VOLUME = "AWS::EC2::Volume"
    EC2_CUSTOMER_GATEWAY = "AWS::EC2::CustomerGateway"
    EC2_VPN_CONNECTION = "AWS::EC2::VPNConnection"
    EC2_NETWORK_ACL = "AWS::EC2::NetworkAcl"
    EC2_NETWORK_INTERFACE = "AWS::EC2::NetworkInterface"
    EC2_INTERNET_GATEWAY = "AWS::EC2::InternetGateway"
    IAM_USER = "AWS::IAM::User"
    IAM_ROLE = "AWS::IAM::Role"
    IAM_INSTANCE_PROFILE = "AWS::IAM::InstanceProfile"
    AUTOSCALING_LAUNCH_CONFIGURATION = "AWS::AutoScaling::LaunchConfiguration"
    EC2_EIP = "AWS::EC2::EIP"
    EC2_EIP_ASSOCIATION = "AWS::EC2::EIPAssociation"
    EC2_NAT_GATEWAY = "AWS::EC2::NatGateway"
    ELB_LOAD_BALANCER = "AWS::ElasticLoadBalancing::LoadBalancer"
    AUTOSCALING_GROUP = "AWS::AutoScaling::AutoScalingGroup"
    EC2_INSTANCE = "AWS::EC2::Instance"
    EC2_ROUTE_TABLE_ASSOCIATION = "AWS::EC2::SubnetRouteTableAssociation"
    ROUTE53_HOSTED_ZONE = "AWS::Route53::HostedZone"
    S3_BUCKET = "AWS::S3::Bucket"

    def __str__(self) -> str:
        return self.value

    @property
    def namespace(self) -> str:
        """Namespace (service) that owns this resource type."""
        return NAMESPACES[self]

    @property
    def supports_tagging_api(self) -> bool:
        """Whether the Resource Groups Tagging API can discover this type."""
        return self not in TAGGING_API_UNSUPPORTED

    @classmethod
    def from_string(cls, value: str) -> Optional["ResourceType"]:
        """Look up a resource type by its type name, returning None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


EC2_NAMESPACE = "ec2"
IAM_NAMESPACE = "iam"
AUTOSCALING_NAMESPACE = "autoscaling"
ELB_NAMESPACE = "elasticloadbalancing"
ROUTE53_NAMESPACE = "route53"
S3_NAMESPACE = "s3"

NAMESPACES = {
    ResourceType.EC2_VPC: EC2_NAMESPACE,
    ResourceType.EC2_VPN_GATEWAY: EC2_NAMESPACE,
    ResourceType.EC2_SECURITY_GROUP: EC2_NAMESPACE,
    ResourceType.EC2_ROUTE_TABLE: EC2_NAMESPACE,
    ResourceType.EC2_SUBNET: EC2_NAMESPACE,
    ResourceType.EC2_VOLUME: EC2_NAMESPACE,
    ResourceType.EC2_CUSTOMER_GATEWAY: EC2_NAMESPACE,
    ResourceType.EC2_VPN_CONNECTION: EC2_NAMESPACE,
    ResourceType.EC2_NETWORK_ACL: EC2_NAMESPACE,
    ResourceType.EC2_NETWORK_INTERFACE: EC2_NAMESPACE,
    ResourceType.EC2_INTERNET_GATEWAY: EC2_NAMESPACE,
    ResourceType.IAM_USER: IAM_NAMESPACE,
    ResourceType.IAM_ROLE: IAM_NAMESPACE,
    ResourceType.IAM_INSTANCE_PROFILE: IAM_NAMESPACE,
    ResourceType.AUTOSCALING_LAUNCH_CONFIGURATION: AUTOSCALING_NAMESPACE,
    ResourceType.EC2_EIP: EC2_NAMESPACE,
    ResourceType.EC2_EIP_ASSOCIATION: EC2_NAMESPACE,
    ResourceType.EC2_NAT_GATEWAY: EC2_NAMESPACE,
    ResourceType.ELB_LOAD_BALANCER: ELB_NAMESPACE,
    ResourceType.AUTOSCALING_GROUP: AUTOSCALING_NAMESPACE,
    ResourceType.EC2_INSTANCE: EC2_NAMESPACE,
    ResourceType.EC2_ROUTE_TABLE_ASSOCIATION: EC2_NAMESPACE,
    ResourceType.ROUTE53_HOSTED_ZONE: ROUTE53_NAMESPACE,
    ResourceType.S3_BUCKET: S3_NAMESPACE,
}

# Types the tagging API cannot return; each is discovered through its own namespace
TAGGING_API_UNSUPPORTED = (
    ResourceType.AUTOSCALING_GROUP,
    ResourceType.AUTOSCALING_LAUNCH_CONFIGURATION,
    ResourceType.ROUTE53_HOSTED_ZONE,
)

# (service, resource kind in the ARN) -> resource type
ARN_RESOURCE_KINDS = {
    ("ec2", "vpc"): ResourceType.EC2_VPC,
    ("ec2", "vpn-gateway"): ResourceType.EC2_VPN_GATEWAY,
    ("ec2", "security-group"): ResourceType.EC2_SECURITY_GROUP,
    ("ec2", "route-table"): ResourceType.EC2_ROUTE_TABLE,
    ("ec2", "subnet"): ResourceType.EC2_SUBNET,
    ("ec2", "volume"): ResourceType.EC2_VOLUME,
    ("ec2", "customer-gateway"): ResourceType.EC2_CUSTOMER_GATEWAY,
    ("ec2", "vpn-connection"): ResourceType.EC2_VPN_CONNECTION,
    ("ec2", "network-acl"): ResourceType.EC2_NETWORK_ACL,
    ("ec2", "network-interface"): ResourceType.EC2_NETWORK_INTERFACE,
    ("ec2", "internet-gateway"): ResourceType.EC2_INTERNET_GATEWAY,
    ("ec2", "elastic-ip"): ResourceType.EC2_EIP,
    ("ec2", "natgateway"): ResourceType.EC2_NAT_GATEWAY,
    ("ec2", "instance"): ResourceType.EC2_INSTANCE,
    ("iam", "user"): ResourceType.IAM_USER,
    ("iam", "role"): ResourceType.IAM_ROLE,
    ("iam", "instance-profile"): ResourceType.IAM_INSTANCE_PROFILE,
    ("autoscaling", "autoScalingGroup"): ResourceType.AUTOSCALING_GROUP,
    ("autoscaling", "launchConfiguration"): ResourceType.AUTOSCALING_LAUNCH_CONFIGURATION,
    ("elasticloadbalancing", "loadbalancer"): ResourceType.ELB_LOAD_BALANCER,
    ("route53", "hostedzone"): ResourceType.ROUTE53_HOSTED_ZONE,
    ("s3", ""): ResourceType.S3_BUCKET,
}


@dataclass(frozen=True)
class ResourceARN:
    """A decomposed resource identifier.

    Attributes:
        arn: The original identifier string
        resource_type: Resource type the identifier names
        resource_name: Type-scoped resource name (ID, name or bucket name)
        region: AWS region (empty for global services)
        account_id: Owning account (empty for S3 and Route53)
    """

    arn: str
    resource_type: ResourceType
    resource_name: str
    region: str
    account_id: str


def parse_arn(arn: str) -> Optional[ResourceARN]:
    """Decompose an ARN into resource type and resource name.

    Args:
        arn: Resource identifier (e.g., "arn:aws:ec2:us-east-1:123456789012:vpc/vpc-1")

    Returns:
        ResourceARN, or None if the identifier is malformed or names an unknown type
    """
    parts = arn.split(":", 5)
    if len(parts) < 6 or parts[0] != "arn":
        return None

    service, region, account_id, resource = parts[2], parts[3], parts[4], parts[5]
    if not resource:
        return None

    if service == S3_NAMESPACE:
        # Object ARNs (bucket/key) are not buckets
        if "/" in resource:
            return None
        kind, name = "", resource
    elif service == AUTOSCALING_NAMESPACE:
        kind = resource.split(":", 1)[0]
        _, _, name = resource.partition("Name/")
    elif "/" in resource:
        kind, _, rest = resource.partition("/")
        # Application and network load balancers are not classic ELBs
        if service == ELB_NAMESPACE and rest.startswith(("app/", "net/")):
            return None
        # IAM paths: role/path/to/name
        name = rest.rsplit("/", 1)[-1]
    else:
        kind, _, name = resource.partition(":")

    resource_type = ARN_RESOURCE_KINDS.get((service, kind))
    if resource_type is None:
        return None

    return ResourceARN(
        arn=arn,
        resource_type=resource_type,
        resource_name=name,
        region=region,
        account_id=account_id,
    )


def hosted_zone_arn(zone_id: str) -> str:
    """Compose the ARN for a Route53 hosted zone from its short or long id."""
    return f"arn:aws:route53:::hostedzone/{split_hosted_zone_id(zone_id)}"


def split_hosted_zone_id(zone_id: str) -> str:
    """Strip the "/hostedzone/" prefix Route53 puts on zone ids."""
    return zone_id.rsplit("/", 1)[-1]
