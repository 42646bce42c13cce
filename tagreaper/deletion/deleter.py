"""AWS resource deletion strategies.

Maps resource types to their describe and delete calls. One deleter owns the
names of a single resource type and deletes them one at a time, logging each
failure to the run's failure log.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from tagreaper.aws.client import create_boto_client
from tagreaper.deletion.audit import FailureLog
from tagreaper.exceptions import DeletionError
from tagreaper.models.delete_config import DeleteConfig
from tagreaper.models.log_entry import LogEntry
from tagreaper.models.resource_type import ResourceType
from tagreaper.utils.diagnostics import emit_error

logger = logging.getLogger(__name__)

# Error codes meaning the resource is already gone
ALREADY_DELETED_CODES = {
    "NoSuchEntity",
    "NoSuchBucket",
    "NoSuchHostedZone",
    "ResourceNotFoundException",
    "LoadBalancerNotFound",
}

# delete_objects accepts at most 1000 keys per call
S3_DELETE_BATCH_SIZE = 1000


class ResourceDeleter(ABC):
    """Deletes the resources of one type.

    Attributes:
        resource_type: Type of every resource this deleter owns
        resource_names: Names of the resources to delete
    """

    def __init__(self, resource_type: ResourceType, resource_names: Optional[List[str]] = None) -> None:
        self.resource_type = resource_type
        self.resource_names: List[str] = list(resource_names or [])

    @abstractmethod
    def request_resources(self) -> List[Dict[str, Any]]:
        """Fetch the full resource descriptions for the owned names."""

    @abstractmethod
    def delete_resources(self, config: DeleteConfig) -> None:
        """Delete every owned resource.

        Each failed resource is recorded in config.logger. Without
        config.ignore_errors the first failure stops the bucket; with it,
        each failure is also reported as a diagnostic line.

        Raises:
            DeletionError: If deletion of the bucket stopped early
        """


class BotoResourceDeleter(ResourceDeleter):
    """ResourceDeleter issuing boto3 calls.

    Implements retry with exponential backoff for dependency violations, which
    usually clear once a dependent resource finishes deleting.
    """

    # Deletion method mapping: resource_type -> (service, method, id_field)
    DELETION_METHODS = {
        ResourceType.EC2_VPC: ("ec2", "delete_vpc", "VpcId"),
        ResourceType.EC2_VPN_GATEWAY: ("ec2", "delete_vpn_gateway", "VpnGatewayId"),
        ResourceType.EC2_SECURITY_GROUP: ("ec2", "delete_security_group", "GroupId"),
        ResourceType.EC2_ROUTE_TABLE: ("ec2", "delete_route_table", "RouteTableId"),
        ResourceType.EC2_SUBNET: ("ec2", "delete_subnet", "SubnetId"),
        ResourceType.EC2_VOLUME: ("ec2", "delete_volume", "VolumeId"),
        ResourceType.EC2_CUSTOMER_GATEWAY: ("ec2", "delete_customer_gateway", "CustomerGatewayId"),
        ResourceType.EC2_VPN_CONNECTION: ("ec2", "delete_vpn_connection", "VpnConnectionId"),
        ResourceType.EC2_NETWORK_ACL: ("ec2", "delete_network_acl", "NetworkAclId"),
        ResourceType.EC2_NETWORK_INTERFACE: ("ec2", "delete_network_interface", "NetworkInterfaceId"),
        ResourceType.EC2_INTERNET_GATEWAY: ("ec2", "delete_internet_gateway", "InternetGatewayId"),
        ResourceType.EC2_EIP: ("ec2", "release_address", "AllocationId"),
        ResourceType.EC2_EIP_ASSOCIATION: ("ec2", "disassociate_address", "AssociationId"),
        ResourceType.EC2_NAT_GATEWAY: ("ec2", "delete_nat_gateway", "NatGatewayId"),
        ResourceType.EC2_INSTANCE: ("ec2", "terminate_instances", "InstanceIds"),
        ResourceType.EC2_ROUTE_TABLE_ASSOCIATION: ("ec2", "disassociate_route_table", "AssociationId"),
        ResourceType.IAM_USER: ("iam", "delete_user", "UserName"),
        ResourceType.IAM_ROLE: ("iam", "delete_role", "RoleName"),
        ResourceType.IAM_INSTANCE_PROFILE: ("iam", "delete_instance_profile", "InstanceProfileName"),
        ResourceType.AUTOSCALING_LAUNCH_CONFIGURATION: (
            "autoscaling",
            "delete_launch_configuration",
            "LaunchConfigurationName",
        ),
        ResourceType.AUTOSCALING_GROUP: ("autoscaling", "delete_auto_scaling_group", "AutoScalingGroupName"),
        ResourceType.ELB_LOAD_BALANCER: ("elb", "delete_load_balancer", "LoadBalancerName"),
        ResourceType.ROUTE53_HOSTED_ZONE: ("route53", "delete_hosted_zone", "Id"),
        ResourceType.S3_BUCKET: ("s3", "delete_bucket", "Bucket"),
    }

    # Describe method mapping: resource_type -> (service, method, id_field, result_key)
    # A singular id_field means one call per name.
    DESCRIBE_METHODS = {
        ResourceType.EC2_VPC: ("ec2", "describe_vpcs", "VpcIds", "Vpcs"),
        ResourceType.EC2_VPN_GATEWAY: ("ec2", "describe_vpn_gateways", "VpnGatewayIds", "VpnGateways"),
        ResourceType.EC2_SECURITY_GROUP: ("ec2", "describe_security_groups", "GroupIds", "SecurityGroups"),
        ResourceType.EC2_ROUTE_TABLE: ("ec2", "describe_route_tables", "RouteTableIds", "RouteTables"),
        ResourceType.EC2_SUBNET: ("ec2", "describe_subnets", "SubnetIds", "Subnets"),
        ResourceType.EC2_VOLUME: ("ec2", "describe_volumes", "VolumeIds", "Volumes"),
        ResourceType.EC2_CUSTOMER_GATEWAY: (
            "ec2",
            "describe_customer_gateways",
            "CustomerGatewayIds",
            "CustomerGateways",
        ),
        ResourceType.EC2_VPN_CONNECTION: ("ec2", "describe_vpn_connections", "VpnConnectionIds", "VpnConnections"),
        ResourceType.EC2_NETWORK_ACL: ("ec2", "describe_network_acls", "NetworkAclIds", "NetworkAcls"),
        ResourceType.EC2_NETWORK_INTERFACE: (
            "ec2",
            "describe_network_interfaces",
            "NetworkInterfaceIds",
            "NetworkInterfaces",
        ),
        ResourceType.EC2_INTERNET_GATEWAY: (
            "ec2",
            "describe_internet_gateways",
            "InternetGatewayIds",
            "InternetGateways",
        ),
        ResourceType.EC2_EIP: ("ec2", "describe_addresses", "AllocationIds", "Addresses"),
        ResourceType.EC2_NAT_GATEWAY: ("ec2", "describe_nat_gateways", "NatGatewayIds", "NatGateways"),
        ResourceType.EC2_INSTANCE: ("ec2", "describe_instances", "InstanceIds", "Reservations"),
        ResourceType.IAM_USER: ("iam", "get_user", "UserName", "User"),
        ResourceType.IAM_ROLE: ("iam", "get_role", "RoleName", "Role"),
        ResourceType.IAM_INSTANCE_PROFILE: ("iam", "get_instance_profile", "InstanceProfileName", "InstanceProfile"),
        ResourceType.AUTOSCALING_LAUNCH_CONFIGURATION: (
            "autoscaling",
            "describe_launch_configurations",
            "LaunchConfigurationNames",
            "LaunchConfigurations",
        ),
        ResourceType.AUTOSCALING_GROUP: (
            "autoscaling",
            "describe_auto_scaling_groups",
            "AutoScalingGroupNames",
            "AutoScalingGroups",
        ),
        ResourceType.ELB_LOAD_BALANCER: (
            "elb",
            "describe_load_balancers",
            "LoadBalancerNames",
            "LoadBalancerDescriptions",
        ),
        ResourceType.ROUTE53_HOSTED_ZONE: ("route53", "get_hosted_zone", "Id", "HostedZone"),
    }

    def __init__(
        self,
        resource_type: ResourceType,
        resource_names: Optional[List[str]] = None,
        region: Optional[str] = None,
        aws_profile: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: int = 3,
        diagnostics: Callable[[str], None] = emit_error,
    ) -> None:
        """Initialize resource deleter.

        Args:
            resource_type: Type of every resource this deleter owns
            resource_names: Names of the resources to delete (optional)
            region: AWS region (optional)
            aws_profile: AWS profile name (optional)
            timeout: Per-call timeout in seconds (optional)
            max_retries: Maximum number of attempts per resource (default: 3)
            diagnostics: Callback receiving diagnostic messages (default: JSON line on stdout)
        """
        super().__init__(resource_type, resource_names)
        self.region = region
        self.aws_profile = aws_profile
        self.timeout = timeout
        self.max_retries = max_retries
        self._diagnostics = diagnostics
        self._clients: Dict[str, Any] = {}

    def request_resources(self) -> List[Dict[str, Any]]:
        """Fetch the full resource descriptions for the owned names.

        Types with no describe call are returned as {"Name": name} stubs.
        """
        if not self.resource_names:
            return []

        if self.resource_type not in self.DESCRIBE_METHODS:
            return [{"Name": name} for name in self.resource_names]

        service, method, id_field, result_key = self.DESCRIBE_METHODS[self.resource_type]
        describe = getattr(self._client(service), method)

        # Plural form indicates a list parameter and a list result
        if id_field.endswith("s"):
            response = describe(**{id_field: list(self.resource_names)})
            items = response.get(result_key, [])
            if self.resource_type is ResourceType.EC2_INSTANCE:
                return [instance for reservation in items for instance in reservation.get("Instances", [])]
            return list(items)

        return [describe(**{id_field: name})[result_key] for name in self.resource_names]

    def delete_resources(self, config: DeleteConfig) -> None:
        if config.dry_run:
            logger.info(f"Dry run: skipping deletion of {len(self.resource_names)} {self.resource_type}")
            return

        for name in self.resource_names:
            success, error = self.delete_resource(name, config.logger)
            if success:
                continue

            config.logger.log(LogEntry.from_exception(str(self.resource_type), name, error))

            message = f"Failed to delete {self.resource_type} {name}: {error}"
            if not config.ignore_errors:
                raise DeletionError(message, resource_type=str(self.resource_type), resource_name=name)

            # Failures that do not stop the bucket are reported per resource
            self._diagnostics(message)

    def delete_resource(self, name: str, failure_log: FailureLog) -> Tuple[bool, Optional[Exception]]:
        """Delete one resource, retrying while dependency violations persist.

        Args:
            name: Resource name
            failure_log: Log receiving failures of child resources removed first

        Returns:
            Tuple of (success: bool, error: Optional[Exception])
        """
        if self.resource_type not in self.DELETION_METHODS:
            return (False, ValueError(f"Unsupported resource type: {self.resource_type}"))

        error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            error = self._attempt_deletion(name, failure_log)
            if error is None:
                logger.info(f"Successfully deleted {self.resource_type}: {name}")
                return (True, None)

            if _error_code(error) != "DependencyViolation" or attempt == self.max_retries - 1:
                break

            wait_time = 2**attempt  # Exponential backoff
            logger.debug(
                f"Dependency violation for {name}, "
                f"retrying in {wait_time}s (attempt {attempt + 1}/{self.max_retries})"
            )
            time.sleep(wait_time)

        logger.error(f"Failed to delete {self.resource_type} {name}: {error}")
        return (False, error)

    def _attempt_deletion(self, name: str, failure_log: FailureLog) -> Optional[Exception]:
        """Attempt a single deletion, returning the error or None on success."""
        service, method, id_field = self.DELETION_METHODS[self.resource_type]

        try:
            client = self._client(service)

            prepare = self.PREPARE_METHODS.get(self.resource_type)
            if prepare is not None:
                prepare(self, client, name, failure_log)

            getattr(client, method)(**self._build_deletion_params(id_field, name))
            return None

        except ClientError as e:
            if _is_already_deleted(_error_code(e)):
                logger.info(f"Resource {name} already deleted")
                return None
            return e

        except BotoCoreError as e:
            return e

    def _build_deletion_params(self, id_field: str, name: str) -> Dict[str, Any]:
        """Build deletion parameters for boto3 call."""
        # Handle list parameters (e.g., InstanceIds)
        if id_field.endswith("s"):
            return {id_field: [name]}

        if self.resource_type is ResourceType.AUTOSCALING_GROUP:
            # Terminate instances along with the group
            return {id_field: name, "ForceDelete": True}

        return {id_field: name}

    def _client(self, service: str) -> Any:
        if service not in self._clients:
            self._clients[service] = create_boto_client(
                service_name=service,
                region_name=self.region,
                profile_name=self.aws_profile,
                timeout=self.timeout,
            )
        return self._clients[service]

    def _log_child_failure(
        self,
        failure_log: FailureLog,
        child_type: str,
        child_name: str,
        parent_name: str,
        error: Exception,
    ) -> None:
        failure_log.log(
            LogEntry.from_exception(
                child_type,
                child_name,
                error,
                parent_resource_type=str(self.resource_type),
                parent_resource_name=parent_name,
            )
        )

    def _detach_internet_gateway(self, client: Any, name: str, failure_log: FailureLog) -> None:
        response = client.describe_internet_gateways(InternetGatewayIds=[name])
        for gateway in response.get("InternetGateways", []):
            for attachment in gateway.get("Attachments", []):
                vpc_id = attachment["VpcId"]
                try:
                    client.detach_internet_gateway(InternetGatewayId=name, VpcId=vpc_id)
                except ClientError as e:
                    self._log_child_failure(failure_log, "AWS::EC2::VPCGatewayAttachment", vpc_id, name, e)

    def _detach_vpn_gateway(self, client: Any, name: str, failure_log: FailureLog) -> None:
        response = client.describe_vpn_gateways(VpnGatewayIds=[name])
        for gateway in response.get("VpnGateways", []):
            for attachment in gateway.get("VpcAttachments", []):
                if attachment.get("State") != "attached":
                    continue
                vpc_id = attachment["VpcId"]
                try:
                    client.detach_vpn_gateway(VpnGatewayId=name, VpcId=vpc_id)
                except ClientError as e:
                    self._log_child_failure(failure_log, "AWS::EC2::VPCGatewayAttachment", vpc_id, name, e)

    def _clean_iam_role(self, client: Any, name: str, failure_log: FailureLog) -> None:
        for page in client.get_paginator("list_role_policies").paginate(RoleName=name):
            for policy_name in page.get("PolicyNames", []):
                try:
                    client.delete_role_policy(RoleName=name, PolicyName=policy_name)
                except ClientError as e:
                    self._log_child_failure(failure_log, "AWS::IAM::Policy", policy_name, name, e)

        for page in client.get_paginator("list_attached_role_policies").paginate(RoleName=name):
            for policy in page.get("AttachedPolicies", []):
                try:
                    client.detach_role_policy(RoleName=name, PolicyArn=policy["PolicyArn"])
                except ClientError as e:
                    self._log_child_failure(failure_log, "AWS::IAM::ManagedPolicy", policy["PolicyArn"], name, e)

        for page in client.get_paginator("list_instance_profiles_for_role").paginate(RoleName=name):
            for profile in page.get("InstanceProfiles", []):
                profile_name = profile["InstanceProfileName"]
                try:
                    client.remove_role_from_instance_profile(InstanceProfileName=profile_name, RoleName=name)
                except ClientError as e:
                    self._log_child_failure(failure_log, str(ResourceType.IAM_INSTANCE_PROFILE), profile_name, name, e)

    def _clean_instance_profile(self, client: Any, name: str, failure_log: FailureLog) -> None:
        profile = client.get_instance_profile(InstanceProfileName=name)["InstanceProfile"]
        for role in profile.get("Roles", []):
            try:
                client.remove_role_from_instance_profile(InstanceProfileName=name, RoleName=role["RoleName"])
            except ClientError as e:
                self._log_child_failure(failure_log, str(ResourceType.IAM_ROLE), role["RoleName"], name, e)

    def _delete_record_sets(self, client: Any, name: str, failure_log: FailureLog) -> None:
        """Remove every record set except the zone apex SOA and NS records."""
        apex = client.get_hosted_zone(Id=name)["HostedZone"]["Name"]

        for page in client.get_paginator("list_resource_record_sets").paginate(HostedZoneId=name):
            for record_set in page.get("ResourceRecordSets", []):
                if record_set["Type"] in ("SOA", "NS") and record_set["Name"] == apex:
                    continue
                try:
                    client.change_resource_record_sets(
                        HostedZoneId=name,
                        ChangeBatch={"Changes": [{"Action": "DELETE", "ResourceRecordSet": record_set}]},
                    )
                except ClientError as e:
                    self._log_child_failure(failure_log, "AWS::Route53::RecordSet", record_set["Name"], name, e)

    def _empty_bucket(self, client: Any, name: str, failure_log: FailureLog) -> None:
        """Delete every object version and delete marker in a bucket."""
        objects: List[Dict[str, str]] = []
        for page in client.get_paginator("list_object_versions").paginate(Bucket=name):
            for version in page.get("Versions", []) + page.get("DeleteMarkers", []):
                objects.append({"Key": version["Key"], "VersionId": version["VersionId"]})

        for start in range(0, len(objects), S3_DELETE_BATCH_SIZE):
            batch = objects[start : start + S3_DELETE_BATCH_SIZE]
            response = client.delete_objects(Bucket=name, Delete={"Objects": batch, "Quiet": True})
            for failed in response.get("Errors", []):
                failure_log.log(
                    LogEntry(
                        resource_type="AWS::S3::Object",
                        resource_name=failed.get("Key", ""),
                        parent_resource_type=str(self.resource_type),
                        parent_resource_name=name,
                        aws_error_code=failed.get("Code", ""),
                        aws_error_message=failed.get("Message", ""),
                    )
                )

    # Steps run before the delete call: resource_type -> method(self, client, name, failure_log)
    PREPARE_METHODS: Dict[ResourceType, Callable[..., None]] = {
        ResourceType.EC2_INTERNET_GATEWAY: _detach_internet_gateway,
        ResourceType.EC2_VPN_GATEWAY: _detach_vpn_gateway,
        ResourceType.IAM_ROLE: _clean_iam_role,
        ResourceType.IAM_INSTANCE_PROFILE: _clean_instance_profile,
        ResourceType.ROUTE53_HOSTED_ZONE: _delete_record_sets,
        ResourceType.S3_BUCKET: _empty_bucket,
    }


def _error_code(error: Optional[Exception]) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "Unknown")
    return ""


def _is_already_deleted(code: str) -> bool:
    return code in ALREADY_DELETED_CODES or code.endswith(".NotFound")


def init_resource_deleter(
    resource_type: ResourceType,
    resource_names: List[str],
    region: Optional[str] = None,
    aws_profile: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ResourceDeleter:
    """Create the deleter for a resource type."""
    return BotoResourceDeleter(
        resource_type,
        resource_names,
        region=region,
        aws_profile=aws_profile,
        timeout=timeout,
    )
