"""
Pytest configuration and fixtures.
Shared clock, fake language model and seeded leave store.
"""

import json
from datetime import datetime, time, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from leave_agent.clock import Clock
from leave_agent.config import Settings
from leave_agent.models import Leave, LeaveType
from leave_agent.repository import InMemoryLeaveRepository
from leave_agent.services import build_services

ORG_TIMEZONE = "Asia/Kolkata"


class FakeCompletion:
    """Stands in for litellm.completion and replays queued replies in order."""

    def __init__(self):
        self.replies: list = []
        self.calls: list[dict] = []

    def reply_with(self, reply) -> "FakeCompletion":
        """Queue a dict (sent as JSON), a raw string, or an exception to raise."""
        self.replies.append(json.dumps(reply) if isinstance(reply, dict) else reply)
        return self

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])

    @property
    def last_prompt(self) -> str:
        return self.calls[-1]["messages"][-1]["content"]


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment."""
    return Settings(
        openai_api_key="test-key",
        litellm_model="gpt-4o-mini",
        org_timezone=ORG_TIMEZONE,
        snowflake_account="",
        slack_bot_token="",
        slack_app_token="",
        circuit_breaker_failure_threshold=3,
    )


@pytest.fixture
def clock():
    """Clock frozen at 2026-03-10 11:00 in the organization zone."""
    return Clock(ORG_TIMEZONE, now_fn=lambda zone: datetime(2026, 3, 10, 11, 0, tzinfo=zone))


@pytest.fixture
def fake_llm():
    return FakeCompletion()


@pytest.fixture
def leave_factory(clock):
    """Build Leave records on the organization calendar."""

    def make(
        username="alice",
        day=None,
        start=time(9, 0),
        end=time(18, 0),
        leave_type=LeaveType.FULL_DAY,
        reason="personal",
    ):
        day = day or clock.today()
        return Leave(
            username=username,
            original_text=f"{leave_type.value} on {day}",
            start_time=clock.at(day, start),
            end_time=clock.at(day, end),
            duration_label="9 hours",
            reason=reason,
            leave_type=leave_type,
        )

    return make


@pytest.fixture
def repository(clock):
    return InMemoryLeaveRepository(clock)


@pytest.fixture
def seeded_repository(clock, leave_factory):
    """alice and bob tie on three leaves each, carol has one."""
    today = clock.today()
    return InMemoryLeaveRepository(
        clock,
        [
            leave_factory("bob", today - timedelta(days=3)),
            leave_factory("bob", today - timedelta(days=2), leave_type=LeaveType.WFH),
            leave_factory(
                "bob", today - timedelta(days=1), end=time(13, 0), leave_type=LeaveType.HALF_DAY
            ),
            leave_factory("alice", today - timedelta(days=5)),
            leave_factory("alice", today - timedelta(days=4)),
            leave_factory(
                "alice", today, start=time(16, 0), leave_type=LeaveType.EARLY_DEPARTURE
            ),
            leave_factory("carol", today - timedelta(days=20), leave_type=LeaveType.WFH),
        ],
    )


@pytest.fixture
def services(test_settings, clock, repository, fake_llm):
    return build_services(test_settings, clock=clock, repository=repository, completion_fn=fake_llm)


@pytest.fixture
def test_client():
    """Create FastAPI test client."""
    from leave_agent.main import app

    return TestClient(app)
