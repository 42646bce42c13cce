"""Tests for the failed deletion log.

Test coverage for YAML log file storage and retrieval.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
import yaml

from tagreaper.deletion.audit import FailureLog, log_file_name, read_log_file
from tagreaper.models.log_entry import LogEntry


class TestLogFileName:
    """Test suite for log_file_name."""

    def test_month_and_day_are_not_zero_padded(self) -> None:
        """Test the date format of the log file name."""
        assert log_file_name(date(2025, 3, 7)) == "delete-log-data-2025-3-7.log"
        assert log_file_name(date(2025, 11, 21)) == "delete-log-data-2025-11-21.log"


class TestFailureLog:
    """Test suite for FailureLog."""

    @pytest.fixture
    def log_path(self, tmp_path: Path) -> Path:
        return tmp_path / "logs" / "delete-log-data-2025-3-7.log"

    def test_init_leaves_earlier_log_untouched(self, log_path: Path) -> None:
        """Test creating the log does not truncate a file left by an earlier run."""
        log_path.parent.mkdir(parents=True)
        log_path.write_text("---\nResourceType: old\n")

        failure_log = FailureLog(log_path)

        assert log_path.read_text() == "---\nResourceType: old\n"
        assert failure_log.read_entries() == []

    def test_init_does_not_create_file(self, log_path: Path) -> None:
        """Test no directory or file appears until something is logged."""
        FailureLog(log_path)

        assert not log_path.parent.exists()

    def test_first_entry_replaces_earlier_log(self, log_path: Path) -> None:
        """Test the first failure of a run truncates the earlier log before writing."""
        log_path.parent.mkdir(parents=True)
        log_path.write_text("---\nResourceType: old\nResourceName: stale\n")
        entry = LogEntry(resource_type="AWS::EC2::VPC", resource_name="vpc-1", error_message="boom")

        failure_log = FailureLog(log_path)
        failure_log.log(entry)

        assert "stale" not in log_path.read_text()
        assert failure_log.read_entries() == [entry]

    def test_log_creates_directory(self, log_path: Path) -> None:
        """Test the log directory is created on the first entry."""
        FailureLog(log_path).log(LogEntry(resource_type="AWS::S3::Bucket", resource_name="b", error_message="x"))

        assert log_path.exists()

    def test_log_appends_yaml_documents(self, log_path: Path) -> None:
        """Test each entry is written as its own YAML document."""
        failure_log = FailureLog(log_path)
        first = LogEntry(
            resource_type="AWS::EC2::Subnet",
            resource_name="subnet-1",
            aws_error_code="DependencyViolation",
            aws_error_message="in use",
        )
        second = LogEntry(resource_type="AWS::S3::Bucket", resource_name="logs", error_message="timed out")

        failure_log.log(first)
        failure_log.log(second)

        documents = list(yaml.safe_load_all(log_path.read_text()))
        assert len(documents) == 2
        assert documents[0]["ResourceName"] == "subnet-1"
        assert documents[0]["AWSErrorCode"] == "DependencyViolation"
        assert documents[1]["ErrMsg"] == "timed out"
        assert failure_log.entries == [first, second]

    def test_read_entries_returns_logged_entries(self, log_path: Path) -> None:
        """Test entries read back from disk equal the logged ones."""
        failure_log = FailureLog(log_path)
        entry = LogEntry(
            resource_type="AWS::Route53::RecordSet",
            resource_name="www.example.com.",
            parent_resource_type="AWS::Route53::HostedZone",
            parent_resource_name="Z1",
            aws_error_code="InvalidChangeBatch",
            aws_error_message="bad",
        )
        failure_log.log(entry)

        assert failure_log.read_entries() == [entry]

    def test_empty_log_reads_no_entries(self, log_path: Path) -> None:
        """Test a run without failures has an empty log."""
        assert FailureLog(log_path).read_entries() == []

    def test_for_today_uses_dated_file_name(self, tmp_path: Path) -> None:
        """Test the log is placed in the directory under today's name."""
        failure_log = FailureLog.for_today(tmp_path)

        assert failure_log.path == tmp_path / log_file_name()


class TestReadLogFile:
    """Test suite for read_log_file."""

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Test reading a missing log raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            read_log_file(tmp_path / "missing.log")
