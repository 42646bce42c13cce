"""Resource cleaner for tag-driven deletion runs.

Main orchestrator: discovers ARNs for every tag filter document, buckets them
by type, optionally expands the buckets to their dependencies, orders them and
hands them to the executor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from tagreaper.deletion.bucketer import bucket_arns
from tagreaper.deletion.dependency import DependencyExpander
from tagreaper.deletion.executor import DeleterFactory, DeletionExecutor, ExecutionResult
from tagreaper.deletion.orderer import DELETE_ORDER, OrderedBuckets, organize_by_delete_order
from tagreaper.discovery.discoverer import ResourceDiscoverer
from tagreaper.models.delete_config import DeleteConfig
from tagreaper.models.resource_type import ResourceType
from tagreaper.models.tag_filter import TagFilterDocument

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """Outcome of one delete run.

    Attributes:
        arns: Every discovered ARN, once each, in discovery order
        ordered: Buckets in deletion-order sequence (executed back to front)
        execution: Executor outcome, None when nothing was discovered
    """

    arns: List[str] = field(default_factory=list)
    ordered: OrderedBuckets = field(default_factory=list)
    execution: Optional[ExecutionResult] = None


class ResourceCleaner:
    """Resource cleaner orchestrator.

    Coordinates discovery, bucketing, dependency expansion, ordering and
    deletion for one run. All collaborators are injected so each stage can be
    replaced in tests.

    Attributes:
        discoverer: Resolves tag filter documents to ARNs
        executor: Runs deleters in order
        expander: Dependency expander, None to delete only tagged resources
        precedence: Reverse deletion order of resource types
    """

    def __init__(
        self,
        discoverer: ResourceDiscoverer,
        deleter_factory: DeleterFactory,
        expander: Optional[DependencyExpander] = None,
        precedence: Sequence[ResourceType] = DELETE_ORDER,
    ) -> None:
        """Initialize resource cleaner.

        Args:
            discoverer: Resource discoverer
            deleter_factory: Builds the deleter for a (resource type, names) bucket
            expander: Dependency expander (optional)
            precedence: Reverse deletion order (default: DELETE_ORDER)
        """
        self.discoverer = discoverer
        self.executor = DeletionExecutor(deleter_factory)
        self.expander = expander
        self.precedence = precedence

    def discover(self, documents: Iterable[TagFilterDocument]) -> List[str]:
        """Discover ARNs for every document, keeping the first occurrence of each."""
        arns: List[str] = []
        seen = set()

        for document in documents:
            for arn in self.discoverer.discover(document):
                if arn not in seen:
                    seen.add(arn)
                    arns.append(arn)

        logger.info(f"Discovered {len(arns)} resource(s)")
        return arns

    def plan(self, arns: Iterable[str]) -> OrderedBuckets:
        """Bucket ARNs, expand dependencies if enabled, and order the buckets."""
        buckets = bucket_arns(arns)
        if not buckets:
            return []

        if self.expander is not None:
            buckets = self.expander.expand(buckets)

        return organize_by_delete_order(buckets, self.precedence)

    def execute(self, documents: Iterable[TagFilterDocument], config: DeleteConfig) -> CleanupResult:
        """Run discovery and deletion for a stream of tag filter documents.

        Args:
            documents: Tag filter documents (decoding errors propagate from the iterator)
            config: Deletion settings

        Returns:
            CleanupResult with discovered ARNs, deletion order and executor outcome
        """
        arns = self.discover(documents)
        ordered = self.plan(arns)

        result = CleanupResult(arns=arns, ordered=ordered)
        if not ordered:
            return result

        result.execution = self.executor.execute(ordered, config)
        return result
