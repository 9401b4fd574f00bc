"""
Slack presentation of confirmations and analytics reports.
"""

from datetime import date, datetime
from typing import Any

from leave_agent.models import AggregationReport, Leave, LeaveStats, LeaveType, QueryType

LEAVE_LABELS = {
    LeaveType.WFH: ("🏠", "WFH", "🏠 Working remotely"),
    LeaveType.FULL_DAY: ("🌴", "full day leave", "🌴 Out of office"),
    LeaveType.HALF_DAY: ("🌓", "half day leave", "🌓 Partially available"),
    LeaveType.LATE_ARRIVAL: ("⏰", "late arrival", "⏰ Arriving late"),
    LeaveType.EARLY_DEPARTURE: ("🏃", "early departure", "🏃 Leaving early"),
}

REPORT_TITLE = "📊 Leave Statistics Report"
GENERIC_FAILURE = "❌ Failed to get leave statistics"

# Slack rejects messages with more blocks than this
MAX_BLOCKS = 50
STATS_PER_SECTION = 10


def format_timestamp(value: datetime) -> str:
    """Format like "Jan 2, 2006 3:04 PM"."""
    hour = value.hour % 12 or 12
    return f"{value:%b} {value.day}, {value.year} {hour}:{value:%M %p}"


def format_day(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def confirmation_text(leave: Leave) -> str:
    try:
        emoji, label, status = LEAVE_LABELS[leave.leave_type]
    except KeyError as e:
        raise ValueError(f"Unknown leave type: {leave.leave_type!r}") from e

    return (
        f"{emoji} Your {label} has been recorded!\n"
        f"📅 From: {format_timestamp(leave.start_time)}\n"
        f"📅 To: {format_timestamp(leave.end_time)}\n"
        f"📝 Reason: {leave.reason or '-'}\n\n"
        f"Status: {status}\n"
        "Have a great day! 🌟"
    )


def rejection_text(message: str) -> str:
    return f"❌ Unable to process leave request: {message}"


def _section(text: str) -> dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _header() -> dict[str, Any]:
    return {"type": "header", "text": {"type": "plain_text", "text": REPORT_TITLE}}


def stats_text(stat: LeaveStats) -> str:
    return (
        f"*{stat.username}*\n"
        f"• Leave Count: {stat.leave_count}\n"
        f"• Types: {stat.leave_types}\n"
        f"• Total Hours: {stat.total_hours:.1f}"
    )


def stats_sections(stats: list[LeaveStats], room: int) -> list[dict[str, Any]]:
    """
    Pack stat rows into at most room sections, STATS_PER_SECTION rows each.

    Rows that do not fit are summarized in a final "and N more" section.
    """
    chunks = [stats[i : i + STATS_PER_SECTION] for i in range(0, len(stats), STATS_PER_SECTION)]
    if len(chunks) > room:
        chunks = chunks[: room - 1]
        hidden = len(stats) - sum(len(chunk) for chunk in chunks)
    else:
        hidden = 0

    sections = [_section("\n\n".join(stats_text(stat) for stat in chunk)) for chunk in chunks]
    if hidden:
        sections.append(_section(f"…and {hidden} more employees"))
    return sections


def report_blocks(report: AggregationReport) -> list[dict[str, Any]]:
    blocks = [_header()]

    if report.query_type == QueryType.TOP_EMPLOYEE:
        blocks.append(_section(f"👑 *Employee with Most Leaves*\n\n{stats_text(report.stats[0])}"))
        return blocks

    if report.query_type == QueryType.PERIOD_STATS:
        blocks.append(
            _section(
                f"*Period:* {format_day(report.start_date)} to {format_day(report.end_date)}"
            )
        )
        if not report.stats:
            blocks.append(_section("No leave was recorded in this period."))
        blocks.extend(stats_sections(report.stats, MAX_BLOCKS - len(blocks)))
        return blocks

    if report.query_type == QueryType.EMPLOYEE_STATS:
        blocks.extend(stats_sections(report.stats, MAX_BLOCKS - len(blocks)))
        return blocks

    raise ValueError(f"Unhandled query type: {report.query_type!r}")


def notice_blocks(message: str) -> list[dict[str, Any]]:
    return [_header(), _section(message)]


def fallback_text(report: AggregationReport) -> str:
    """Plain-text summary shown in notifications for block messages."""
    if not report.stats:
        return REPORT_TITLE
    return f"{REPORT_TITLE}: " + ", ".join(
        f"{stat.username} ({stat.leave_count})" for stat in report.stats
    )
