"""Deletion executor.

Walks ordered buckets back to front so the resources other resources depend
on are deleted last.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from tagreaper.deletion.deleter import ResourceDeleter
from tagreaper.deletion.orderer import OrderedBuckets
from tagreaper.models.delete_config import DeleteConfig
from tagreaper.models.resource_type import ResourceType
from tagreaper.utils.diagnostics import emit_error

logger = logging.getLogger(__name__)

DeleterFactory = Callable[[ResourceType, List[str]], ResourceDeleter]


@dataclass
class ExecutionResult:
    """Outcome of one executor pass.

    Attributes:
        visited: Resource types in the order they were visited
        failed: Resource types whose deletion stopped with an error
        dry_run: Whether destructive calls were skipped
    """

    visited: List[ResourceType] = field(default_factory=list)
    failed: List[ResourceType] = field(default_factory=list)
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.failed


class DeletionExecutor:
    """Run per-type deleters in dependency-safe order.

    A bucket that fails is reported as a one-line diagnostic and the executor
    moves on; every bucket is visited exactly once.

    Attributes:
        deleter_factory: Builds the deleter for a (resource type, names) bucket
    """

    def __init__(
        self,
        deleter_factory: DeleterFactory,
        diagnostics: Callable[[str], None] = emit_error,
    ) -> None:
        self.deleter_factory = deleter_factory
        self._diagnostics = diagnostics

    def execute(self, ordered: OrderedBuckets, config: DeleteConfig) -> ExecutionResult:
        """Delete every bucket, last-ranked first.

        Args:
            ordered: Buckets in the orderer's sequence
            config: Deletion settings shared by every deleter

        Returns:
            ExecutionResult with the visit order and failed buckets
        """
        result = ExecutionResult(dry_run=config.dry_run)

        for resource_type, names in reversed(ordered):
            result.visited.append(resource_type)

            if config.dry_run:
                logger.info(f"Dry run: would delete {len(names)} {resource_type}: {', '.join(names)}")
                continue

            logger.info(f"Deleting {len(names)} {resource_type}")
            try:
                deleter = self.deleter_factory(resource_type, names)
                deleter.delete_resources(config)
            except Exception as e:
                # Log the error but continue with the remaining buckets
                result.failed.append(resource_type)
                logger.debug(f"Deletion of {resource_type} stopped", exc_info=True)
                self._diagnostics(str(e))

        return result
