"""Deletion configuration shared by every deleter in a run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tagreaper.deletion.audit import FailureLog


@dataclass(frozen=True)
class DeleteConfig:
    """Read-only settings for one deletion run.

    Attributes:
        ignore_errors: Keep deleting the rest of a bucket after a resource fails
        dry_run: Visit every bucket without issuing destructive calls
        logger: Sink that records one LogEntry per failed deletion
    """

    ignore_errors: bool
    dry_run: bool
    logger: "FailureLog"
