"""
Temporal business rules for leave records.

The language model is asked to apply the same rules, but its answer is
never trusted: every candidate it declares valid passes through here before
it can be stored.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum

from leave_agent.clock import Clock
from leave_agent.models import CandidateLeave
from leave_agent.observability import trace_span

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    PAST_DATE = "past date"
    TOO_FAR_IN_ADVANCE = "too far in advance"
    END_BEFORE_START = "end before start"


@dataclass(frozen=True)
class ValidationOutcome:
    """Terminal state of one validation pass."""

    accepted: bool
    candidate: CandidateLeave
    reason: RejectionReason | None = None
    message: str = ""


def human_date(day: date) -> str:
    """Format like "January 2, 2006"."""
    return f"{day:%B} {day.day}, {day.year}"


class LeaveValidator:
    """
    Single-pass accept/reject state machine.

    Steps, in order:
    1. normalize both timestamps to the organization zone
    2. derive start date, today and the maximum allowed date
    3. reject a start date before today
    4. reject a start date after the maximum allowed date
    5. reject an end time that is not after the start time
    6. accept
    """

    def __init__(self, clock: Clock, max_advance_days: int = 30):
        self.clock = clock
        self.max_advance_days = max_advance_days

    def validate(self, candidate: CandidateLeave) -> ValidationOutcome:
        if not candidate.is_valid:
            raise ValueError("Only candidates declared valid by the interpreter can be validated")
        if candidate.start_time is None or candidate.end_time is None:
            raise ValueError("Valid candidate is missing its start or end time")

        with trace_span("validate_leave", leave_type=candidate.leave_type):
            start_time = self.clock.localize(candidate.start_time)
            end_time = self.clock.localize(candidate.end_time)

            start_date = self.clock.civil_date(start_time)
            today = self.clock.today()
            max_date = self.clock.max_allowed_date(self.max_advance_days)

            if start_date < today:
                return self._reject(
                    candidate,
                    RejectionReason.PAST_DATE,
                    "Cannot request leave for past dates",
                )

            if start_date > max_date:
                return self._reject(
                    candidate,
                    RejectionReason.TOO_FAR_IN_ADVANCE,
                    f"Cannot request leave more than {self.max_advance_days} days in advance "
                    f"(maximum allowed date is {human_date(max_date)})",
                )

            if end_time <= start_time:
                return self._reject(
                    candidate,
                    RejectionReason.END_BEFORE_START,
                    "End time must be after start time",
                )

            normalized = candidate.model_copy(
                update={"start_time": start_time, "end_time": end_time}
            )
            return ValidationOutcome(accepted=True, candidate=normalized)

    def _reject(
        self, candidate: CandidateLeave, reason: RejectionReason, message: str
    ) -> ValidationOutcome:
        logger.info(f"Leave rejected: reason={reason.value}")
        return ValidationOutcome(accepted=False, candidate=candidate, reason=reason, message=message)
