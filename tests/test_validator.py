"""
Tests for LeaveValidator date rules.
Clock is frozen at 2026-03-10 11:00 Asia/Kolkata.
"""

from datetime import datetime, time, timedelta, timezone

import pytest

from leave_agent.models import CandidateLeave, LeaveType
from leave_agent.validator import LeaveValidator, RejectionReason, human_date


@pytest.fixture
def validator(clock):
    return LeaveValidator(clock, max_advance_days=30)


@pytest.fixture
def candidate(clock):
    """Valid candidate for a day offset from today."""

    def make(days=0, start=time(9, 0), end=time(18, 0), leave_type=LeaveType.FULL_DAY):
        day = clock.today() + timedelta(days=days)
        return CandidateLeave(
            is_valid=True,
            start_time=clock.at(day, start),
            end_time=clock.at(day, end),
            duration_label="9 hours",
            reason="family function",
            leave_type=leave_type,
        )

    return make


class TestPastDates:
    @pytest.mark.parametrize("leave_type", list(LeaveType))
    def test_yesterday_rejected_for_every_type(self, validator, candidate, leave_type):
        """A start date before today is rejected whatever the leave type."""
        outcome = validator.validate(candidate(days=-1, leave_type=leave_type))

        assert outcome.accepted is False
        assert outcome.reason == RejectionReason.PAST_DATE
        assert "past dates" in outcome.message

    def test_earlier_today_is_not_past(self, validator, candidate):
        """09:00 today is accepted at 11:00 because dates, not instants, are compared."""
        outcome = validator.validate(candidate(days=0))

        assert outcome.accepted is True

    def test_late_evening_utc_counts_as_next_local_day(self, validator):
        """20:00 UTC on the 9th is 01:30 on the 10th in Kolkata, i.e. today."""
        outcome = validator.validate(
            CandidateLeave(
                is_valid=True,
                start_time=datetime(2026, 3, 9, 20, 0, tzinfo=timezone.utc),
                end_time=datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc),
                duration_label="7 hours",
                reason="",
                leave_type=LeaveType.LATE_ARRIVAL,
            )
        )

        assert outcome.accepted is True


class TestAdvanceLimit:
    def test_max_date_is_inclusive(self, validator, candidate):
        """today + 30 days is still accepted."""
        outcome = validator.validate(candidate(days=30))

        assert outcome.accepted is True

    def test_day_after_max_rejected_with_max_date(self, validator, candidate):
        """today + 31 days is rejected and the message names the maximum date."""
        outcome = validator.validate(candidate(days=31))

        assert outcome.accepted is False
        assert outcome.reason == RejectionReason.TOO_FAR_IN_ADVANCE
        assert "April 9, 2026" in outcome.message

    def test_far_future_rejected(self, validator, candidate):
        outcome = validator.validate(candidate(days=90))

        assert outcome.reason == RejectionReason.TOO_FAR_IN_ADVANCE


class TestOrdering:
    def test_end_before_start_rejected(self, validator, candidate):
        outcome = validator.validate(candidate(days=1, start=time(18, 0), end=time(9, 0)))

        assert outcome.accepted is False
        assert outcome.reason == RejectionReason.END_BEFORE_START

    def test_zero_length_rejected(self, validator, candidate):
        """end == start violates start < end."""
        outcome = validator.validate(candidate(days=1, start=time(9, 0), end=time(9, 0)))

        assert outcome.reason == RejectionReason.END_BEFORE_START

    def test_past_date_checked_before_ordering(self, validator, candidate):
        outcome = validator.validate(candidate(days=-2, start=time(18, 0), end=time(9, 0)))

        assert outcome.reason == RejectionReason.PAST_DATE


class TestAcceptance:
    def test_full_day_today_accepted(self, validator, candidate):
        """FULL_DAY 09:00-18:00 today is accepted unchanged."""
        original = candidate(days=0)
        outcome = validator.validate(original)

        assert outcome.accepted is True
        assert outcome.reason is None
        assert outcome.candidate.leave_type == LeaveType.FULL_DAY
        assert outcome.candidate.duration_label == "9 hours"
        assert outcome.candidate.start_time == original.start_time

    def test_accepted_times_expressed_in_org_zone(self, validator):
        outcome = validator.validate(
            CandidateLeave(
                is_valid=True,
                start_time=datetime(2026, 3, 11, 3, 30, tzinfo=timezone.utc),
                end_time=datetime(2026, 3, 11, 12, 30, tzinfo=timezone.utc),
                duration_label="9 hours",
                reason="",
                leave_type=LeaveType.WFH,
            )
        )

        assert outcome.accepted is True
        assert outcome.candidate.start_time.utcoffset() == timedelta(hours=5, minutes=30)
        assert outcome.candidate.start_time.hour == 9

    def test_declined_candidate_cannot_be_validated(self, validator):
        with pytest.raises(ValueError):
            validator.validate(CandidateLeave(is_valid=False, error_message="not a leave"))


def test_human_date_format():
    assert human_date(datetime(2026, 1, 2).date()) == "January 2, 2026"
