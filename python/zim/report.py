#!/usr/bin/env python3
"""
Reconciliation of pull counts against the images running in the cluster,
and rendering of the ranked pull statistics table.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Mapping, Set

from tabulate import tabulate

from zim.utils.logging_utils import get_logger

logger = get_logger(__name__)

TABLE_HEADERS = ["No.", "Image Name", "Pull Count", "In Use"]
RULE_WIDTH = 71


@dataclass(frozen=True)
class ReportRow:
    """One ranked image in the report"""
    rank: int
    identity: str
    count: int
    in_use: bool


@dataclass(frozen=True)
class ReportSummary:
    """Totals shown below the table"""
    total_pulls: int
    unique_images: int
    active_images: int
    period: str


@dataclass
class Report:
    """Ranked pull statistics for one run"""
    rows: List[ReportRow]
    summary: ReportSummary

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "summary": asdict(self.summary),
            "images": [asdict(row) for row in self.rows],
        }


def describe_period(since: str) -> str:
    """Human readable window: '24' -> 'Last 24 hours', '2024-01-01' -> 'Since 2024-01-01'."""
    since = str(since).strip()
    if since.isdigit():
        hours = int(since)
        return f"Last {hours} hour" if hours == 1 else f"Last {hours} hours"
    return f"Since {since}"


def build_report(counts: Mapping[str, int], live_images: Set[str], period: str) -> Report:
    """Rank images by pull count and mark the ones running in the cluster.

    Args:
        counts: Identity -> pull count, in first-discovery order
        live_images: Normalized identities referenced by running pods
        period: Description of the pull-event window

    Returns:
        Report with rows ordered by count descending; ties keep discovery order
    """
    # sorted() is stable, so equal counts stay in discovery order
    ranked = sorted(counts.items(), key=lambda item: -item[1])

    rows = [
        ReportRow(rank=rank, identity=identity, count=count, in_use=identity in live_images)
        for rank, (identity, count) in enumerate(ranked, 1)
    ]

    summary = ReportSummary(
        total_pulls=sum(row.count for row in rows),
        unique_images=len(rows),
        active_images=sum(1 for row in rows if row.in_use),
        period=period,
    )
    logger.debug(
        f"Built report: {summary.unique_images} images, {summary.total_pulls} pulls, "
        f"{summary.active_images} in use"
    )
    return Report(rows=rows, summary=summary)


def render_report(report: Report) -> str:
    """Render the report as a fixed-width table followed by a summary block."""
    lines = [
        f"Image Pull Statistics ({report.summary.period}):",
        "=" * RULE_WIDTH,
    ]

    if report.rows:
        table_rows = [
            [str(row.rank), row.identity, str(row.count), "Yes" if row.in_use else "No"]
            for row in report.rows
        ]
        table = tabulate(
            table_rows,
            headers=TABLE_HEADERS,
            tablefmt="simple",
            disable_numparse=True,
            colalign=("right", "left", "right", "left"),
        )
        lines.extend(table.splitlines())
    else:
        lines.append("(no pull events matched)")

    lines.append("=" * RULE_WIDTH)
    lines.append("")
    lines.append("Summary:")
    lines.append(f"- Period: {report.summary.period}")
    lines.append(f"- Total pull events: {report.summary.total_pulls}")
    lines.append(f"- Unique images with pulls: {report.summary.unique_images}")
    lines.append(f"- Currently active images: {report.summary.active_images}")
    return "\n".join(lines) + "\n"
