"""Tests for failed deletion report rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from tagreaper.deletion.audit import FailureLog
from tagreaper.deletion.reporter import LOG_HEAD, LOG_TAIL, ReportRenderer
from tagreaper.models.log_entry import LogEntry


class TestReportRenderer:
    """Test suite for ReportRenderer."""

    @pytest.fixture
    def renderer(self) -> ReportRenderer:
        return ReportRenderer()

    def test_entry_with_aws_error(self, renderer: ReportRenderer) -> None:
        """Test an AWS error is shown as code and message."""
        entry = LogEntry(
            resource_type="AWS::EC2::Subnet",
            resource_name="subnet-1",
            aws_error_code="DependencyViolation",
            aws_error_message="in use",
        )

        assert renderer.format_entry(entry) == (
            "Failed to delete AWS::EC2::Subnet subnet-1 (DependencyViolation: in use)"
        )

    def test_entry_with_local_error(self, renderer: ReportRenderer) -> None:
        """Test a local error message is shown when there is no AWS error."""
        entry = LogEntry(resource_type="AWS::S3::Bucket", resource_name="logs", error_message="timed out")

        assert renderer.format_entry(entry) == "Failed to delete AWS::S3::Bucket logs (timed out)"

    def test_aws_error_takes_precedence_over_local_error(self, renderer: ReportRenderer) -> None:
        """Test only the AWS error clause is shown when both are set."""
        entry = LogEntry(
            resource_type="AWS::S3::Bucket",
            resource_name="logs",
            aws_error_code="AccessDenied",
            aws_error_message="denied",
            error_message="timed out",
        )

        assert renderer.format_entry(entry) == "Failed to delete AWS::S3::Bucket logs (AccessDenied: denied)"

    def test_entry_with_parent_always_has_aws_clause(self, renderer: ReportRenderer) -> None:
        """Test the parent clause is followed by the AWS clause, even when empty."""
        with_error = LogEntry(
            resource_type="AWS::Route53::RecordSet",
            resource_name="www.example.com.",
            parent_resource_type="AWS::Route53::HostedZone",
            parent_resource_name="Z1",
            aws_error_code="InvalidChangeBatch",
            aws_error_message="bad",
        )
        without_error = LogEntry(
            resource_type="AWS::IAM::Policy",
            resource_name="p",
            parent_resource_type="AWS::IAM::Role",
            parent_resource_name="r",
            error_message="ignored",
        )

        assert renderer.format_entry(with_error) == (
            "Failed to delete AWS::Route53::RecordSet www.example.com. from AWS::Route53::HostedZone Z1 "
            "(InvalidChangeBatch: bad)"
        )
        assert renderer.format_entry(without_error) == "Failed to delete AWS::IAM::Policy p from AWS::IAM::Role r (: )"

    def test_entry_without_errors(self, renderer: ReportRenderer) -> None:
        """Test an entry without any error has no trailing clause."""
        entry = LogEntry(resource_type="AWS::EC2::VPC", resource_name="vpc-1")

        assert renderer.format_entry(entry) == "Failed to delete AWS::EC2::VPC vpc-1"

    def test_render_wraps_lines_in_banners(self, renderer: ReportRenderer) -> None:
        """Test the report starts with the header banner and ends with the footer."""
        entries = [
            LogEntry(resource_type="AWS::EC2::VPC", resource_name="vpc-1", error_message="a"),
            LogEntry(resource_type="AWS::EC2::VPC", resource_name="vpc-2", error_message="b"),
        ]

        lines = renderer.render(entries).split("\n")

        assert lines[:3] == LOG_HEAD.split("\n")
        assert lines[1] == "== Log Report: Failed Resource Deletion Events =="
        assert lines[3:5] == [
            "Failed to delete AWS::EC2::VPC vpc-1 (a)",
            "Failed to delete AWS::EC2::VPC vpc-2 (b)",
        ]
        assert lines[-1] == LOG_TAIL
        assert len(lines) == 6

    def test_render_empty(self, renderer: ReportRenderer) -> None:
        """Test an empty report is just the banners."""
        assert renderer.render([]) == LOG_HEAD + "\n" + LOG_TAIL

    def test_render_file(self, renderer: ReportRenderer, tmp_path: Path) -> None:
        """Test rendering straight from a failure log file."""
        failure_log = FailureLog(tmp_path / "delete.log")
        failure_log.log(LogEntry(resource_type="AWS::EC2::VPC", resource_name="vpc-1", error_message="a"))

        report = renderer.render_file(failure_log.path)

        assert "Failed to delete AWS::EC2::VPC vpc-1 (a)" in report
