"""boto3 client factory.

All provider calls go through clients built here so region, profile and
per-call timeouts are applied in one place.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Any:
    """Create a boto3 client for a service.

    Args:
        service_name: AWS service name (e.g., "ec2", "resourcegroupstaggingapi")
        region_name: AWS region (optional, falls back to the session default)
        profile_name: AWS profile name (optional)
        timeout: Connect/read timeout in seconds applied to every call (optional)

    Returns:
        boto3 client for the service
    """
    session = boto3.Session(profile_name=profile_name, region_name=region_name)

    client_config = None
    if timeout is not None:
        client_config = BotoConfig(connect_timeout=timeout, read_timeout=timeout)

    logger.debug(f"Creating {service_name} client (region={region_name}, profile={profile_name}, timeout={timeout})")
    return session.client(service_name, config=client_config)
