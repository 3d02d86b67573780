"""Unit tests for zim/report.py"""

import pytest

from zim.aggregator import PullEventAggregator
from zim.log_extractor import LogEventExtractor, get_extraction_strategy
from zim.report import (
    RULE_WIDTH,
    ReportRow,
    ReportSummary,
    build_report,
    describe_period,
    render_report,
)


class TestDescribePeriod:
    """Tests for describe_period()"""

    @pytest.mark.parametrize(
        "since, expected",
        [
            ("24", "Last 24 hours"),
            ("1", "Last 1 hour"),
            (" 6 ", "Last 6 hours"),
            (48, "Last 48 hours"),
            ("2024-05-01", "Since 2024-05-01"),
            ("yesterday", "Since yesterday"),
        ],
    )
    def test_period(self, since, expected):
        assert describe_period(since) == expected


class TestBuildReport:
    """Tests for build_report()"""

    def test_example_scenario(self):
        """Two tags of repo/a and a digest of repo/b, with only repo/a running"""
        lines = [
            'crio[1]: msg="Pulled image: repo/a:v1"',
            'crio[1]: msg="Pulled image: repo/a:v2"',
            'crio[1]: msg="Pulled image: repo/b@sha256:deadbeef"',
        ]
        events = LogEventExtractor(get_extraction_strategy("plain")).extract_events(lines)
        counts = PullEventAggregator().add_all(events).counts()

        report = build_report(counts, {"repo/a"}, "Last 24 hours")

        assert report.rows == [
            ReportRow(rank=1, identity="repo/a", count=2, in_use=True),
            ReportRow(rank=2, identity="repo/b", count=1, in_use=False),
        ]
        assert report.summary == ReportSummary(
            total_pulls=3, unique_images=2, active_images=1, period="Last 24 hours"
        )

    def test_ranked_by_count_descending(self):
        report = build_report({"low": 1, "high": 5, "mid": 3}, set(), "p")

        assert [row.identity for row in report.rows] == ["high", "mid", "low"]
        assert [row.rank for row in report.rows] == [1, 2, 3]

    def test_ties_keep_discovery_order(self):
        counts = {"first": 2, "second": 2, "third": 2}

        first_run = build_report(counts, set(), "p")
        second_run = build_report(dict(counts), set(), "p")

        assert [row.identity for row in first_run.rows] == ["first", "second", "third"]
        assert first_run == second_run

    def test_in_use_is_set_membership(self):
        counts = {"repo/a": 1, "repo/b": 1, "repo/c": 1}
        live = {"repo/b", "repo/unpulled"}

        report = build_report(counts, live, "p")

        for row in report.rows:
            assert row.in_use == (row.identity in live)
        assert report.summary.active_images == 1

    def test_live_images_without_pulls_are_not_listed(self):
        report = build_report({"repo/a": 1}, {"repo/a", "repo/z"}, "p")
        assert [row.identity for row in report.rows] == ["repo/a"]

    def test_empty_counts(self):
        report = build_report({}, {"repo/a"}, "Last 2 hours")

        assert report.rows == []
        assert report.summary == ReportSummary(0, 0, 0, "Last 2 hours")

    def test_to_dict(self):
        report = build_report({"repo/a": 2}, {"repo/a"}, "Last 24 hours")

        assert report.to_dict() == {
            "summary": {"total_pulls": 2, "unique_images": 1, "active_images": 1, "period": "Last 24 hours"},
            "images": [{"rank": 1, "identity": "repo/a", "count": 2, "in_use": True}],
        }


class TestRenderReport:
    """Tests for render_report()"""

    def test_layout(self):
        report = build_report({"repo/a": 2, "repo/b": 1}, {"repo/a"}, "Last 24 hours")
        lines = render_report(report).splitlines()

        assert lines[0] == "Image Pull Statistics (Last 24 hours):"
        assert lines[1] == "=" * RULE_WIDTH
        assert lines[2].split() == ["No.", "Image", "Name", "Pull", "Count", "In", "Use"]
        assert lines[4].split() == ["1", "repo/a", "2", "Yes"]
        assert lines[5].split() == ["2", "repo/b", "1", "No"]
        assert lines[6] == "=" * RULE_WIDTH
        assert lines[7] == ""
        assert lines[8:] == [
            "Summary:",
            "- Period: Last 24 hours",
            "- Total pull events: 3",
            "- Unique images with pulls: 2",
            "- Currently active images: 1",
        ]

    def test_empty_report(self):
        text = render_report(build_report({}, set(), "Since 2024-05-01"))

        assert "(no pull events matched)" in text
        assert "- Total pull events: 0" in text
        assert text.endswith("- Currently active images: 0\n")

    def test_image_names_are_not_reformatted(self):
        """Identities that look like numbers stay text"""
        text = render_report(build_report({"1e10": 1, "007": 1}, set(), "p"))

        assert "1e10" in text
        assert "007" in text

    def test_render_is_deterministic(self):
        counts = {"c": 1, "a": 3, "b": 3}
        assert render_report(build_report(counts, {"a"}, "p")) == render_report(build_report(counts, {"a"}, "p"))
