"""
At-most-once guard for inbound events.

Slack redelivers events it believes were not acknowledged in time, and the
same message can reach several workers at once. observe() is the only way
into the seen set and performs the membership test and the insert under a
single lock.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class DeduplicationGuard:
    """
    Process-wide set of event identities already accepted for processing.

    Identities are never removed, also when the handler later fails: an
    event that was observed once is never processed again.
    """

    def __init__(self):
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def observe(self, event_id: str) -> bool:
        """Return True the first time event_id is seen, False on every later call."""
        with self._lock:
            if event_id in self._seen:
                first = False
            else:
                self._seen.add(event_id)
                first = True

        if not first:
            logger.debug(f"Skipping duplicate event {event_id}")
        return first

    def __contains__(self, event_id: str) -> bool:
        with self._lock:
            return event_id in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
