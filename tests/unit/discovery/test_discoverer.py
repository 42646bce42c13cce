"""Tests for ResourceDiscoverer.

Backends are replaced with Mocks specced on the capability interfaces, so no
AWS access is needed.
"""

from __future__ import annotations

from typing import List
from unittest.mock import Mock

import pytest

from tagreaper.discovery.backends import (
    AutoScalingBackend,
    DiscoveryBackends,
    HostedZoneBackend,
    TaggingBackend,
)
from tagreaper.discovery.discoverer import (
    EMPTY_DOCUMENT_MESSAGE,
    NO_MATCH_MESSAGE,
    PAGE_SIZE,
    ResourceDiscoverer,
    build_auto_scaling_filters,
    chunked,
    filter_hosted_zones,
)
from tagreaper.models.resource_type import ResourceType
from tests.fixtures.aws import asg_arn, client_error, document, ec2_arn, tag


@pytest.fixture
def backends() -> DiscoveryBackends:
    """Backends that find nothing unless a test says otherwise."""
    tagging = Mock(spec=TaggingBackend)
    tagging.get_resources_page.return_value = ([], None)

    auto_scaling = Mock(spec=AutoScalingBackend)
    auto_scaling.describe_tags_page.return_value = ([], None)
    auto_scaling.describe_group_arns.return_value = []

    hosted_zones = Mock(spec=HostedZoneBackend)
    hosted_zones.list_hosted_zone_ids.return_value = []
    hosted_zones.list_tags_for_zones.return_value = []

    return DiscoveryBackends(tagging=tagging, auto_scaling=auto_scaling, hosted_zones=hosted_zones)


@pytest.fixture
def messages() -> List[str]:
    return []


def make_discoverer(backends: DiscoveryBackends, messages: List[str], **kwargs) -> ResourceDiscoverer:
    return ResourceDiscoverer(backends, diagnostics=messages.append, **kwargs)


class TestTaggedDiscovery:
    """Test suite for the tagging API path."""

    def test_follows_pagination_until_token_is_empty(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test three pages are requested when two continuation tokens are returned."""
        backends.tagging.get_resources_page.side_effect = [
            ([ec2_arn("vpc", "vpc-1")], "t1"),
            ([ec2_arn("subnet", "subnet-1")], "t2"),
            ([ec2_arn("volume", "vol-1")], None),
        ]
        doc = document(tag("env", ["staging"]))

        arns = make_discoverer(backends, messages).discover_tagged(doc)

        assert arns == [
            ec2_arn("vpc", "vpc-1"),
            ec2_arn("subnet", "subnet-1"),
            ec2_arn("volume", "vol-1"),
        ]
        assert backends.tagging.get_resources_page.call_count == 3
        tokens = [c.args[3] for c in backends.tagging.get_resources_page.call_args_list]
        assert tokens == [None, "t1", "t2"]
        first_call = backends.tagging.get_resources_page.call_args_list[0]
        assert first_call.args[0] == [{"Key": "env", "Values": ["staging"]}]
        assert first_call.args[2] == PAGE_SIZE
        assert messages == []

    def test_empty_first_page_reports_no_match(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test an empty result emits the no-match diagnostic."""
        arns = make_discoverer(backends, messages).discover_tagged(document(tag("env")))

        assert arns == []
        assert messages == [NO_MATCH_MESSAGE]

    def test_error_keeps_partial_results(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test a failing page stops pagination but keeps earlier pages."""
        backends.tagging.get_resources_page.side_effect = [
            ([ec2_arn("vpc", "vpc-1")], "t1"),
            client_error("ThrottlingException", "slow down", "GetResources"),
        ]

        arns = make_discoverer(backends, messages).discover_tagged(document(tag("env")))

        assert arns == [ec2_arn("vpc", "vpc-1")]
        assert len(messages) == 1
        assert "slow down" in messages[0]

    def test_allow_list_narrows_type_filters(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test the allow-list maps to namespace filters, skipping unknown and unsupported types."""
        discoverer = make_discoverer(
            backends,
            messages,
            resource_types=[
                "AWS::EC2::VPC",
                "AWS::EC2::Subnet",
                "AWS::S3::Bucket",
                "AWS::AutoScaling::AutoScalingGroup",
                "AWS::Nope::Thing",
            ],
        )

        assert discoverer.resource_type_filters() == ["ec2", "s3"]

        discoverer.discover_tagged(document(tag("env")))
        assert backends.tagging.get_resources_page.call_args.args[1] == ["ec2", "s3"]


class TestAutoScalingDiscovery:
    """Test suite for the auto-scaling fallback."""

    def test_resolves_group_names_to_arns(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test names from the tag index are deduplicated and resolved."""
        backends.auto_scaling.describe_tags_page.side_effect = [
            (["web", "api"], "n1"),
            (["web"], None),
        ]
        backends.auto_scaling.describe_group_arns.return_value = [asg_arn("web"), asg_arn("api")]
        doc = document(tag("env", ["staging"]))

        arns = make_discoverer(backends, messages).discover_auto_scaling_groups(ResourceType.AUTOSCALING_GROUP, doc)

        assert arns == [asg_arn("web"), asg_arn("api")]
        backends.auto_scaling.describe_group_arns.assert_called_once_with(["web", "api"])
        first_call = backends.auto_scaling.describe_tags_page.call_args_list[0]
        assert first_call.args == (
            [{"Name": "key", "Values": ["env"]}, {"Name": "value", "Values": ["staging"]}],
            PAGE_SIZE,
            None,
        )

    def test_no_names_skips_resolution(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test nothing is resolved when the tag index has no matches."""
        arns = make_discoverer(backends, messages).discover_auto_scaling_groups(
            ResourceType.AUTOSCALING_GROUP, document(tag("env"))
        )

        assert arns == []
        backends.auto_scaling.describe_group_arns.assert_not_called()

    def test_tag_error_still_resolves_collected_names(
        self, backends: DiscoveryBackends, messages: List[str]
    ) -> None:
        """Test names found before a failing page are still resolved."""
        backends.auto_scaling.describe_tags_page.side_effect = [
            (["web"], "n1"),
            client_error("Throttling", "slow down", "DescribeTags"),
        ]
        backends.auto_scaling.describe_group_arns.return_value = [asg_arn("web")]

        arns = make_discoverer(backends, messages).discover_auto_scaling_groups(
            ResourceType.AUTOSCALING_GROUP, document(tag("env"))
        )

        assert arns == [asg_arn("web")]
        assert len(messages) == 1

    def test_launch_configurations_are_not_discovered(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test launch configurations yield nothing since they cannot be tagged."""
        arns = make_discoverer(backends, messages).discover_auto_scaling_groups(
            ResourceType.AUTOSCALING_LAUNCH_CONFIGURATION, document(tag("env"))
        )

        assert arns == []
        backends.auto_scaling.describe_tags_page.assert_not_called()


class TestHostedZoneDiscovery:
    """Test suite for the Route53 fallback."""

    def test_tags_are_requested_in_batches_of_ten(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test 23 zones produce batches of 10, 10 and 3."""
        zone_ids = [f"Z{i:02d}" for i in range(23)]
        backends.hosted_zones.list_hosted_zone_ids.return_value = zone_ids

        make_discoverer(backends, messages).discover_hosted_zones(ResourceType.ROUTE53_HOSTED_ZONE, document(tag("env")))

        batches = [c.args[0] for c in backends.hosted_zones.list_tags_for_zones.call_args_list]
        assert [len(b) for b in batches] == [10, 10, 3]
        assert batches[0] == zone_ids[:10]
        assert batches[2] == zone_ids[20:]

    def test_matches_are_collected_across_batches(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test matching zones from every batch are returned."""
        zone_ids = [f"Z{i:02d}" for i in range(12)]
        backends.hosted_zones.list_hosted_zone_ids.return_value = zone_ids
        backends.hosted_zones.list_tags_for_zones.side_effect = [
            [("Z01", {"env": "staging"}), ("Z02", {"env": "prod"})],
            [("Z11", {"env": "staging"})],
        ]

        arns = make_discoverer(backends, messages).discover_hosted_zones(
            ResourceType.ROUTE53_HOSTED_ZONE, document(tag("env", ["staging"]))
        )

        assert arns == [
            "arn:aws:route53:::hostedzone/Z01",
            "arn:aws:route53:::hostedzone/Z11",
        ]

    def test_batch_error_stops_and_keeps_matches(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test a failing batch is reported and stops the remaining batches."""
        backends.hosted_zones.list_hosted_zone_ids.return_value = [f"Z{i:02d}" for i in range(25)]
        backends.hosted_zones.list_tags_for_zones.side_effect = [
            [("Z00", {"env": "staging"})],
            client_error("Throttling", "Rate exceeded", "ListTagsForResources"),
            [("Z20", {"env": "staging"})],
        ]

        arns = make_discoverer(backends, messages).discover_hosted_zones(
            ResourceType.ROUTE53_HOSTED_ZONE, document(tag("env"))
        )

        assert arns == ["arn:aws:route53:::hostedzone/Z00"]
        assert backends.hosted_zones.list_tags_for_zones.call_count == 2
        assert len(messages) == 1
        assert "Rate exceeded" in messages[0]

    def test_listing_error_returns_nothing(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test a failing zone listing is reported."""
        backends.hosted_zones.list_hosted_zone_ids.side_effect = client_error("AccessDenied", "no")

        arns = make_discoverer(backends, messages).discover_hosted_zones(
            ResourceType.ROUTE53_HOSTED_ZONE, document(tag("env"))
        )

        assert arns == []
        assert len(messages) == 1


class TestDiscover:
    """Test suite for the combined discovery of one document."""

    def test_tagged_results_come_before_fallback_results(
        self, backends: DiscoveryBackends, messages: List[str]
    ) -> None:
        """Test the output order is tagging API, auto-scaling, then hosted zones."""
        backends.tagging.get_resources_page.return_value = ([ec2_arn("vpc", "vpc-1")], None)
        backends.auto_scaling.describe_tags_page.return_value = (["web"], None)
        backends.auto_scaling.describe_group_arns.return_value = [asg_arn("web")]
        backends.hosted_zones.list_hosted_zone_ids.return_value = ["Z1"]
        backends.hosted_zones.list_tags_for_zones.return_value = [("Z1", {"env": "staging"})]

        arns = make_discoverer(backends, messages).discover(document(tag("env")))

        assert arns == [ec2_arn("vpc", "vpc-1"), asg_arn("web"), "arn:aws:route53:::hostedzone/Z1"]

    def test_empty_document_is_skipped(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test a document without filters queries nothing, since it would match every resource."""
        backends.tagging.get_resources_page.return_value = ([ec2_arn("vpc", "vpc-prod")], None)

        arns = make_discoverer(backends, messages).discover(document())

        assert arns == []
        assert messages == [EMPTY_DOCUMENT_MESSAGE]
        backends.tagging.get_resources_page.assert_not_called()
        backends.auto_scaling.describe_tags_page.assert_not_called()
        backends.hosted_zones.list_hosted_zone_ids.assert_not_called()

    def test_discover_tagged_never_sends_empty_filters(self, backends: DiscoveryBackends, messages: List[str]) -> None:
        """Test the tagging API is not queried without tag filters."""
        assert make_discoverer(backends, messages).discover_tagged(document()) == []
        backends.tagging.get_resources_page.assert_not_called()


class TestHelpers:
    """Test suite for discovery helper functions."""

    def test_chunked(self) -> None:
        """Test slicing into fixed-size batches."""
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([], 10)) == []

    def test_build_auto_scaling_filters_without_values(self) -> None:
        """Test a filter without values produces only a key filter."""
        assert build_auto_scaling_filters(document(tag("env"))) == [{"Name": "key", "Values": ["env"]}]

    def test_filter_hosted_zones_requires_all_filters(self) -> None:
        """Test zones must match every filter in the document."""
        tag_sets = [
            ("Z1", {"env": "staging", "team": "core"}),
            ("Z2", {"env": "staging"}),
            ("Z3", {"team": "core"}),
        ]

        assert filter_hosted_zones(tag_sets, document(tag("env", ["staging"]), tag("team"))) == ["Z1"]
