"""Failed deletion report rendering."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Union

from tagreaper.deletion.audit import read_log_file
from tagreaper.models.log_entry import LogEntry

LOG_TAIL = "================================================="

LOG_HEAD = LOG_TAIL + "\n== Log Report: Failed Resource Deletion Events ==\n" + LOG_TAIL


class ReportRenderer:
    """Render failure log entries as a human-readable report."""

    def format_entry(self, entry: LogEntry) -> str:
        """Format one entry as a single line.

        With a parent, the parent clause is always followed by the AWS error
        clause. Without one, the AWS error clause takes precedence over the
        local error clause.

        Args:
            entry: Failed deletion record

        Returns:
            e.g. "Failed to delete AWS::EC2::Subnet subnet-1 (DependencyViolation: in use)"
        """
        message = f"Failed to delete {entry.resource_type} {entry.resource_name}"

        if entry.has_parent:
            message = f"{message} from {entry.parent_resource_type} {entry.parent_resource_name}"
            message = f"{message} ({entry.aws_error_code}: {entry.aws_error_message})"
        elif entry.has_aws_error:
            message = f"{message} ({entry.aws_error_code}: {entry.aws_error_message})"
        elif entry.error_message:
            message = f"{message} ({entry.error_message})"

        return message

    def render(self, entries: Iterable[LogEntry]) -> str:
        """Render entries between the report header and footer banners."""
        lines = [LOG_HEAD]
        lines.extend(self.format_entry(entry) for entry in entries)
        lines.append(LOG_TAIL)
        return "\n".join(lines)

    def render_file(self, path: Union[str, Path]) -> str:
        """Render the report for a failure log file.

        Raises:
            FileNotFoundError: If the log file does not exist
        """
        return self.render(read_log_file(path))
