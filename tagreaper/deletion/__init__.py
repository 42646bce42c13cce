"""Ordered resource deletion.

This module groups discovered ARNs by resource type, orders the groups so
dependent resources go first, deletes them, and reports failures.

Classes:
    ResourceCleaner: Main orchestrator for a delete run
    DependencyExpander: Grows a bucketed resource set to its dependents
    ResourceDeleter: Per-type deletion interface
    DeletionExecutor: Runs deleters in dependency-safe order
    FailureLog: Failed deletion log storage and retrieval
    ReportRenderer: Human-readable failure report
"""

from __future__ import annotations

__all__ = [
    "ResourceCleaner",
    "DependencyExpander",
    "ResourceDeleter",
    "DeletionExecutor",
    "FailureLog",
    "ReportRenderer",
]
