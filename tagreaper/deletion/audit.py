"""Failed deletion log storage.

Every failed deletion in a run is appended to a log file as its own YAML
document. The file is truncated when the run logs its first failure, so a run
without failures (or a dry run) leaves an earlier log in place. It is read back
only when a report is requested.

Storage structure:
    ./delete-log-data-2025-3-7.log
        ---
        ResourceType: AWS::EC2::Subnet
        ResourceName: subnet-0a1b2c
        ...
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

import yaml

from tagreaper.models.log_entry import LogEntry

logger = logging.getLogger(__name__)


def log_file_name(day: Optional[date] = None) -> str:
    """Build the log file name for a day (month and day are not zero-padded)."""
    day = day or date.today()
    return f"delete-log-data-{day.year}-{day.month}-{day.day}.log"


class FailureLog:
    """Append-only sink of LogEntry records backed by a file.

    Attributes:
        path: Log file path
        entries: Entries logged during this run, in order
    """

    def __init__(self, path: Union[str, Path]) -> None:
        """Initialize the log without touching the file.

        Args:
            path: Log file path
        """
        self.path = Path(path)
        self.entries: List[LogEntry] = []
        self._opened = False

    @classmethod
    def for_today(cls, log_dir: Union[str, Path] = ".") -> "FailureLog":
        """Create the log for today's date in a directory."""
        return cls(Path(log_dir) / log_file_name())

    def log(self, entry: LogEntry) -> None:
        """Append one failed deletion to the log.

        The first entry of a run replaces any file left by an earlier run.
        """
        self.entries.append(entry)
        if not self._opened:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        mode = "a" if self._opened else "w"
        self._opened = True
        with open(self.path, mode) as f:
            yaml.safe_dump(entry.to_dict(), f, default_flow_style=False, sort_keys=False, explicit_start=True)
        logger.debug(f"Logged failed deletion of {entry.resource_type} {entry.resource_name}")

    def read_entries(self) -> List[LogEntry]:
        """Read this run's entries back from disk."""
        if not self._opened:
            return []
        return read_log_file(self.path)


def read_log_file(path: Union[str, Path]) -> List[LogEntry]:
    """Load every LogEntry from a log file.

    Args:
        path: Log file path

    Returns:
        Entries in file order

    Raises:
        FileNotFoundError: If the log file does not exist
        yaml.YAMLError: If the file is not valid YAML
    """
    with open(path, "r") as f:
        return [LogEntry.from_dict(document) for document in yaml.safe_load_all(f) if document]
