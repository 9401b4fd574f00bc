"""
Domain records and the reply schemas of the language model service.

The reply schemas are deliberately strict: anything the model sends that
does not fit is a parse failure, never a silently defaulted value.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated

from dateutil import parser
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictBool, StrictStr


class LeaveType(str, Enum):
    WFH = "WFH"
    FULL_DAY = "FULL_DAY"
    HALF_DAY = "HALF_DAY"
    LATE_ARRIVAL = "LATE_ARRIVAL"
    EARLY_DEPARTURE = "EARLY_DEPARTURE"


class QueryType(str, Enum):
    TOP_EMPLOYEE = "top_employee"
    PERIOD_STATS = "period_stats"
    EMPLOYEE_STATS = "employee_stats"


def _iso_timestamp(value):
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError("timestamp must be an ISO-8601 string")
    return parser.isoparse(value)


def _iso_date(value):
    if value is None or isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("date must be a YYYY-MM-DD string")
    value = value.strip()
    if not value:
        return None
    return datetime.strptime(value, "%Y-%m-%d").date()


def _optional_text(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _lowercase(value):
    if isinstance(value, str):
        return value.strip().lower() or None
    return value


IsoTimestamp = Annotated[datetime, BeforeValidator(_iso_timestamp)]
IsoDate = Annotated[date | None, BeforeValidator(_iso_date)]
OptionalText = Annotated[StrictStr | None, BeforeValidator(_optional_text)]


# ---------------------------------------------------------------------------
# Reply schemas
# ---------------------------------------------------------------------------


class LeaveReplyHeader(BaseModel):
    """The part of a leave reply that is present even when it is not valid."""

    model_config = ConfigDict(extra="ignore")

    is_valid: StrictBool
    error: OptionalText = None


class ValidLeaveReply(BaseModel):
    """Fields required once the service declares a reply valid."""

    model_config = ConfigDict(extra="ignore")

    leave_type: LeaveType
    start_time: IsoTimestamp
    end_time: IsoTimestamp
    duration: StrictStr = Field(min_length=1)
    reason: StrictStr


class QueryReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query_type: Annotated[QueryType | None, BeforeValidator(_lowercase)] = None
    start_date: IsoDate = None
    end_date: IsoDate = None
    username: OptionalText = None
    error: OptionalText = None


# ---------------------------------------------------------------------------
# Pipeline records
# ---------------------------------------------------------------------------


class CandidateLeave(BaseModel):
    """Unvalidated leave interpretation. Never persisted as such."""

    is_valid: bool
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_label: str = ""
    reason: str = ""
    leave_type: LeaveType | None = None
    error_message: str | None = None


class Leave(BaseModel):
    """A recorded leave. Immutable once stored."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    username: str
    original_text: str
    start_time: datetime
    end_time: datetime
    duration_label: str
    reason: str
    leave_type: LeaveType
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600


class QueryIntent(BaseModel):
    query_type: QueryType
    start_date: date | None = None
    end_date: date | None = None
    username: str | None = None
    error_message: str | None = None


class LeaveStats(BaseModel):
    username: str
    leave_count: int
    leave_types: str
    total_hours: float


class AggregationReport(BaseModel):
    query_type: QueryType
    stats: list[LeaveStats]
    start_date: date | None = None
    end_date: date | None = None
    username: str | None = None
