"""
Prompt templates for the language model service.

The leave prompt restates the same date rules LeaveValidator enforces, so
that most out-of-range requests are already answered with is_valid=false.
"""

from dataclasses import dataclass
from datetime import date, datetime

LEAVE_SYSTEM_PROMPT = (
    "You are a date-aware assistant that turns attendance messages into JSON. "
    "Use the current year for all dates. Reply with a single JSON object and never use markdown."
)

QUERY_SYSTEM_PROMPT = (
    "You classify leave and attendance analytics questions and reply with structured JSON. "
    "Never return markdown, code blocks or plain text."
)


@dataclass(frozen=True)
class LeaveContext:
    """Calendar facts the model needs to resolve relative dates."""

    now: datetime
    today: date
    tomorrow: date
    max_date: date
    workday_start: str
    workday_end: str
    timezone_label: str
    sent_at: datetime | None = None


LEAVE_PROMPT = """Extract leave or attendance details from this message. Return a JSON object only.

Message: "{text}"
Current time: {now}{sent_at_line}

Calendar:
- Today's date: {today}
- Tomorrow's date: {tomorrow}
- Maximum allowed date: {max_date}
- Default working hours: {workday_start} to {workday_end}
- Timezone: {timezone_label}
- Current year: {year}

leave_type must be exactly one of:
- "WFH" when working from home
- "FULL_DAY" for a full day of leave
- "HALF_DAY" for half a day of leave
- "LATE_ARRIVAL" when arriving late
- "EARLY_DEPARTURE" when leaving early

Validation rules:
- Leave cannot be requested for a date before {today}
- Leave cannot be requested for a date after {max_date}
- The start time must be before the end time
- If a rule is broken set is_valid to false and explain why in "error"
- If the message is not about leave or attendance at all, set is_valid to false and leave "error" empty
- Express every timestamp with the UTC offset of {timezone_label}

Times:
- "today" means {today}, "tomorrow" means {tomorrow}
- FULL_DAY and WFH run from {workday_start} to {workday_end}
- HALF_DAY runs either from {workday_start} to 13:00 or from 14:00 to {workday_end}
- LATE_ARRIVAL runs from {workday_start} to the stated arrival time
- EARLY_DEPARTURE runs from the stated departure time to {workday_end}

Reply with these fields:
{{
    "is_valid": true,
    "leave_type": "FULL_DAY",
    "start_time": "{today}T09:00:00{offset}",
    "end_time": "{today}T18:00:00{offset}",
    "duration": "9 hours",
    "reason": "reason for the leave, empty string if none was given",
    "error": ""
}}"""


QUERY_PROMPT = """Classify this leave analytics question and return a JSON object only.

Question: "{text}"
Current time: {now}

query_type must be exactly one of:
- "top_employee": who has taken the most leave overall
- "period_stats": leave per employee between two dates (needs start_date and end_date)
- "employee_stats": leave taken by one named employee (needs username)

Rules:
1. Dates are YYYY-MM-DD; resolve "this month", "last week" and similar against the current time.
2. Usernames are Slack handles; drop a leading "@".
3. If the question cannot be answered with one of the query types, put the reason in "error".
4. Never add markdown, bullet points or commentary.

Reply with these fields:
{{
    "query_type": "period_stats",
    "start_date": "2024-03-01",
    "end_date": "2024-03-31",
    "username": "",
    "error": ""
}}"""


def build_leave_prompt(text: str, context: LeaveContext) -> str:
    sent_at_line = f"\nMessage sent at: {context.sent_at.isoformat()}" if context.sent_at else ""
    return LEAVE_PROMPT.format(
        text=text,
        now=context.now.isoformat(),
        sent_at_line=sent_at_line,
        today=context.today.isoformat(),
        tomorrow=context.tomorrow.isoformat(),
        max_date=context.max_date.isoformat(),
        workday_start=context.workday_start,
        workday_end=context.workday_end,
        timezone_label=context.timezone_label,
        year=context.now.year,
        offset=_utc_offset(context.now),
    )


def build_query_prompt(text: str, now: datetime) -> str:
    return QUERY_PROMPT.format(text=text, now=now.isoformat())


def _utc_offset(value: datetime) -> str:
    raw = value.strftime("%z") or "+0000"
    return f"{raw[:3]}:{raw[3:5]}"
