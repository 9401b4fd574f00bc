"""
Tests for Slack message formatting.
"""

from datetime import date, time, timedelta

import pytest

from leave_agent.formatting import (
    MAX_BLOCKS,
    REPORT_TITLE,
    confirmation_text,
    fallback_text,
    format_timestamp,
    notice_blocks,
    rejection_text,
    report_blocks,
)
from leave_agent.models import AggregationReport, LeaveStats, LeaveType, QueryType

ALICE = LeaveStats(username="alice", leave_count=3, leave_types="FULL_DAY, WFH", total_hours=27)
BOB = LeaveStats(username="bob", leave_count=1, leave_types="HALF_DAY", total_hours=4)


def block_texts(blocks):
    return [block["text"]["text"] for block in blocks]


class TestConfirmation:
    def test_full_day(self, leave_factory, clock):
        leave = leave_factory(day=clock.today() + timedelta(days=1), reason="family function")

        assert confirmation_text(leave) == (
            "🌴 Your full day leave has been recorded!\n"
            "📅 From: Mar 11, 2026 9:00 AM\n"
            "📅 To: Mar 11, 2026 6:00 PM\n"
            "📝 Reason: family function\n\n"
            "Status: 🌴 Out of office\n"
            "Have a great day! 🌟"
        )

    @pytest.mark.parametrize(
        "leave_type, expected",
        [
            (LeaveType.WFH, "🏠 Your WFH has been recorded!"),
            (LeaveType.HALF_DAY, "🌓 Your half day leave has been recorded!"),
            (LeaveType.LATE_ARRIVAL, "⏰ Your late arrival has been recorded!"),
            (LeaveType.EARLY_DEPARTURE, "🏃 Your early departure has been recorded!"),
        ],
    )
    def test_opening_line_per_type(self, leave_factory, leave_type, expected):
        text = confirmation_text(leave_factory(leave_type=leave_type))

        assert text.splitlines()[0] == expected

    def test_empty_reason(self, leave_factory):
        assert "📝 Reason: -" in confirmation_text(leave_factory(reason=""))


def test_format_timestamp_midnight_and_noon(clock):
    day = date(2026, 1, 2)

    assert format_timestamp(clock.at(day, time(0, 5))) == "Jan 2, 2026 12:05 AM"
    assert format_timestamp(clock.at(day, time(12, 30))) == "Jan 2, 2026 12:30 PM"


def test_rejection_text():
    assert rejection_text("End time must be after start time") == (
        "❌ Unable to process leave request: End time must be after start time"
    )


class TestReportBlocks:
    def test_top_employee(self):
        blocks = report_blocks(AggregationReport(query_type=QueryType.TOP_EMPLOYEE, stats=[ALICE]))

        assert blocks[0] == {"type": "header", "text": {"type": "plain_text", "text": REPORT_TITLE}}
        assert block_texts(blocks)[1] == (
            "👑 *Employee with Most Leaves*\n\n"
            "*alice*\n• Leave Count: 3\n• Types: FULL_DAY, WFH\n• Total Hours: 27.0"
        )

    def test_period_stats(self):
        report = AggregationReport(
            query_type=QueryType.PERIOD_STATS,
            stats=[ALICE, BOB],
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
        )

        texts = block_texts(report_blocks(report))

        assert texts[1] == "*Period:* Mar 1, 2024 to Mar 31, 2024"
        assert len(texts) == 3
        assert texts[2].startswith("*alice*")
        assert "\n\n*bob*\n" in texts[2]

    def test_many_employees_packed_into_sections(self):
        stats = [
            LeaveStats(username=f"user{i:03d}", leave_count=1, leave_types="WFH", total_hours=9)
            for i in range(60)
        ]
        report = AggregationReport(
            query_type=QueryType.PERIOD_STATS,
            stats=stats,
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
        )

        texts = block_texts(report_blocks(report))

        assert len(texts) == 8
        assert all(f"*user{i:03d}*" in "".join(texts) for i in range(60))

    def test_overflow_summarized_within_block_limit(self):
        stats = [
            LeaveStats(username=f"user{i:04d}", leave_count=1, leave_types="WFH", total_hours=9)
            for i in range(600)
        ]
        report = AggregationReport(
            query_type=QueryType.PERIOD_STATS,
            stats=stats,
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
        )

        blocks = report_blocks(report)

        assert len(blocks) == MAX_BLOCKS
        assert blocks[-1]["text"]["text"] == "…and 130 more employees"
        assert "*user0469*" in blocks[-2]["text"]["text"]

    def test_empty_period(self):
        report = AggregationReport(
            query_type=QueryType.PERIOD_STATS,
            stats=[],
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
        )

        assert block_texts(report_blocks(report))[-1] == "No leave was recorded in this period."

    def test_employee_stats(self):
        report = AggregationReport(query_type=QueryType.EMPLOYEE_STATS, stats=[BOB], username="bob")

        blocks = report_blocks(report)

        assert len(blocks) == 2
        assert "• Total Hours: 4.0" in blocks[1]["text"]["text"]


def test_notice_blocks():
    blocks = notice_blocks("No leave records found for *dave*.")

    assert block_texts(blocks) == [REPORT_TITLE, "No leave records found for *dave*."]


def test_fallback_text():
    report = AggregationReport(query_type=QueryType.PERIOD_STATS, stats=[ALICE, BOB])

    assert fallback_text(report) == f"{REPORT_TITLE}: alice (3), bob (1)"
    assert fallback_text(report.model_copy(update={"stats": []})) == REPORT_TITLE
