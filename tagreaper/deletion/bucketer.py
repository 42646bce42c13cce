"""Group discovered ARNs into per-type buckets."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from tagreaper.models.resource_type import ResourceType, parse_arn

logger = logging.getLogger(__name__)

# Resource type -> resource names, in first-seen order
ResourceBuckets = Dict[ResourceType, List[str]]


def bucket_arns(arns: Iterable[str]) -> ResourceBuckets:
    """Decompose ARNs and group the resource names by resource type.

    Malformed ARNs and ARNs with an empty name are dropped. A resource name is
    kept only the first time it is seen, even if it reappears under another
    type, so every name lands in at most one bucket. Buckets are only created
    for types that receive a name.

    Args:
        arns: ARNs accumulated over the whole run

    Returns:
        Mapping of resource type to resource names
    """
    buckets: ResourceBuckets = {}
    seen = set()

    for arn in arns:
        parsed = parse_arn(arn)
        if parsed is None or not parsed.resource_name:
            logger.debug(f"Dropping unrecognised ARN: {arn}")
            continue

        if parsed.resource_name in seen:
            continue
        seen.add(parsed.resource_name)

        buckets.setdefault(parsed.resource_type, []).append(parsed.resource_name)

    return buckets
