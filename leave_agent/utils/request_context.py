"""
Event-scoped execution context.

Each inbound Slack event or command is handled on its own worker thread.
This module keeps the identity of the event being handled in thread-local
storage so that log lines emitted deep inside the gateway or the repository
can be traced back to the message that caused them.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager

_tls = threading.local()


def set_event_context(event_id: str | None, user_id: str | None) -> None:
    """Bind the current worker thread to an inbound event."""
    _tls.event_id = event_id
    _tls.user_id = user_id


def get_event_id() -> str | None:
    return getattr(_tls, "event_id", None)


def get_event_user() -> str | None:
    return getattr(_tls, "user_id", None)


def clear_event_context() -> None:
    """Release the binding once the event has been handled."""
    for attr in ("event_id", "user_id"):
        if hasattr(_tls, attr):
            delattr(_tls, attr)


@contextmanager
def event_context(event_id: str | None, user_id: str | None):
    """Bind the current thread to an event for the duration of a with-block."""
    set_event_context(event_id, user_id)
    try:
        yield
    finally:
        clear_event_context()
