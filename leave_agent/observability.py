"""
Logging set-up and lightweight execution tracing.

Every suspension point of a worker (the language model call, the repository
call) is wrapped in trace_span so that a stalled or slow dependency shows up
as a latency record tagged with the event that was waiting on it.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from leave_agent.utils.request_context import get_event_id, get_event_user

logger = logging.getLogger("leave_agent.trace")

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[event=%(event_id)s user=%(event_user)s] %(message)s"
)


class EventContextFilter(logging.Filter):
    """Attach the event handled by the current thread, and its sender, to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.event_id = get_event_id() or "-"
        record.event_user = get_event_user() or "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, EventContextFilter) for f in handler.filters):
            handler.addFilter(EventContextFilter())

    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("snowflake.connector").setLevel(logging.WARNING)


@contextmanager
def trace_span(name: str, **metadata):
    """
    Measure execution duration of an operation.

    Always logs completion, also when the body raises, and never
    suppresses the exception.

    Example log:
    [TRACE] interpret_leave duration_ms=812.40 event=C024BE91L:1712312345.000200
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000

        metadata.setdefault("event", get_event_id() or "-")
        meta = " ".join(f"{k}={v}" for k, v in metadata.items())
        logger.info("[TRACE] %s duration_ms=%.2f %s", name, duration_ms, meta)
