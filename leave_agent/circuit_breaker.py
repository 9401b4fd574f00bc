"""
Circuit breaker for the language model service and the leave store.

Many Slack workers share one breaker per dependency, so every state
transition happens under the breaker's lock.
"""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitBreakerOpenError(RuntimeError):
    """The dependency is considered down and the call was not attempted."""


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure breaker shared by concurrent workers.

    CLOSED opens after failure_threshold failures in a row. Once timeout
    seconds have passed since it opened, exactly one caller is let through
    as a trial: success closes the circuit, failure opens it again. Every
    other caller is rejected while the trial is running.
    """

    def __init__(self, failure_threshold: int = 5, timeout: int = 60, name: str = "CircuitBreaker"):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout = timeout

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at: float | None = None
        self._trial_in_flight = False
        self._lock = threading.Lock()

        logger.info(f"{name}: threshold={failure_threshold} failures, reset after {timeout}s")

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Run func unless the circuit is open.

        Raises:
            CircuitBreakerOpenError: the call was refused
            Exception: whatever func raised, unchanged
        """
        self._admit()

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise

        self._on_success()
        return result

    def _admit(self) -> None:
        with self._lock:
            if self.state == CircuitState.CLOSED:
                return

            if self.state == CircuitState.OPEN and self._reset_due():
                self._transition(CircuitState.HALF_OPEN)

            if self.state == CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return

        raise CircuitBreakerOpenError(f"{self.name} is OPEN, call refused")

    def _on_success(self) -> None:
        with self._lock:
            self.failure_count = 0
            self.opened_at = None
            self._trial_in_flight = False
            if self.state != CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)

    def _on_failure(self, error: Exception) -> None:
        with self._lock:
            self.failure_count += 1
            trial_failed = self._trial_in_flight
            self._trial_in_flight = False
            logger.error(
                f"{self.name}: failure {self.failure_count}/{self.failure_threshold}: {error}"
            )

            if trial_failed or self.failure_count >= self.failure_threshold:
                self.opened_at = time.monotonic()
                if self.state != CircuitState.OPEN:
                    self._transition(CircuitState.OPEN)

    def _reset_due(self) -> bool:
        return self.opened_at is None or time.monotonic() - self.opened_at >= self.timeout

    def _transition(self, new_state: CircuitState) -> None:
        # caller holds the lock
        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"{self.name}: {self.state.name} -> {new_state.name}")
        self.state = new_state

    def get_state(self) -> dict:
        """Snapshot for /health and /metrics."""
        with self._lock:
            return {
                "name": self.name,
                "state": self.state.value,
                "failure_count": self.failure_count,
                "failure_threshold": self.failure_threshold,
                "opened_at": self.opened_at,
            }
