"""
Gateway to the language model service.

Turns a free-text attendance message into a CandidateLeave. The model is an
untrusted oracle: its reply is parsed into strict schemas and every
structural violation becomes an InterpretationParseError. Nothing here
decides whether a leave is acceptable; that is LeaveValidator's job.
"""

import json
import logging
import re
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import litellm
from pydantic import ValidationError

from leave_agent.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from leave_agent.clock import Clock
from leave_agent.config import Settings
from leave_agent.errors import InterpretationParseError, InterpretationServiceError
from leave_agent.models import CandidateLeave, LeaveReplyHeader, ValidLeaveReply
from leave_agent.observability import trace_span
from leave_agent.prompts import LEAVE_SYSTEM_PROMPT, LeaveContext, build_leave_prompt

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```[a-zA-Z]*")


def strip_formatting_noise(content: str) -> str:
    """Remove code fences, stray backticks and surrounding whitespace."""
    cleaned = CODE_FENCE_PATTERN.sub("", content)
    return cleaned.strip().strip("`").strip()


class InterpretationGateway:
    """
    Request/response client for the language model service.

    One instance is built at start-up and shared by every worker; it holds
    no per-request state.
    """

    def __init__(
        self,
        clock: Clock,
        settings: Settings,
        circuit_breaker: CircuitBreaker | None = None,
        completion_fn: Callable[..., Any] | None = None,
    ):
        """
        Args:
            clock: Organization clock used to build the calendar context
            settings: Model name, timeout, temperatures and working hours
            circuit_breaker: Breaker shared by all calls to the service
            completion_fn: litellm.completion compatible callable, replaced in tests
        """
        self.clock = clock
        self.settings = settings
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout,
            name="LLMCircuitBreaker",
        )
        self._completion = completion_fn or litellm.completion

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        """
        Send one chat completion and return the raw reply text.

        Raises:
            InterpretationServiceError: the service is unreachable, timed out,
                or the circuit is open
            InterpretationParseError: the reply carries no text
        """
        request = {
            "model": self.settings.litellm_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "timeout": self.settings.llm_timeout_seconds,
        }
        if self.settings.openai_api_key:
            request["api_key"] = self.settings.openai_api_key

        try:
            response = self.circuit_breaker.call(self._completion, **request)
        except CircuitBreakerOpenError as e:
            raise InterpretationServiceError(str(e)) from e
        except Exception as e:
            raise InterpretationServiceError(f"Language model request failed: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise InterpretationParseError("Language model reply has no message content") from e

        if not isinstance(content, str) or not content.strip():
            raise InterpretationParseError("Language model reply is empty")

        logger.debug(f"Raw language model reply: {content}")
        return content

    def decode(self, content: str) -> dict[str, Any]:
        """Strip formatting noise and decode the reply into a JSON object."""
        cleaned = strip_formatting_noise(content)
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise InterpretationParseError(f"Reply is not valid JSON: {e}", raw_reply=content) from e

        if not isinstance(payload, dict):
            raise InterpretationParseError("Reply is not a JSON object", raw_reply=content)
        return payload

    # ------------------------------------------------------------------
    # Leave parsing
    # ------------------------------------------------------------------

    def leave_context(self, event_timestamp: str | None = None) -> LeaveContext:
        now = self.clock.now()
        today = self.clock.civil_date(now)

        sent_at = None
        if event_timestamp:
            try:
                sent_at = self.clock.from_epoch(event_timestamp)
            except (TypeError, ValueError, OverflowError):
                logger.debug(f"Ignoring unparseable event timestamp {event_timestamp!r}")

        return LeaveContext(
            now=now,
            today=today,
            tomorrow=today + timedelta(days=1),
            max_date=self.clock.max_allowed_date(self.settings.max_advance_days),
            workday_start=self.settings.workday_start,
            workday_end=self.settings.workday_end,
            timezone_label=self.settings.org_timezone_label,
            sent_at=sent_at,
        )

    def parse_leave(self, text: str, event_timestamp: str | None = None) -> CandidateLeave:
        """
        Interpret an attendance message.

        A reply with is_valid=false is returned as-is, carrying the model's
        error text. A valid reply must contain every leave field.

        Raises:
            InterpretationServiceError: service failure
            InterpretationParseError: reply violates the leave schema
        """
        prompt = build_leave_prompt(text, self.leave_context(event_timestamp))

        with trace_span("interpret_leave", model=self.settings.litellm_model):
            content = self.complete(
                LEAVE_SYSTEM_PROMPT, prompt, self.settings.leave_parse_temperature
            )

        payload = self.decode(content)
        return self._candidate_from_payload(payload, content)

    def _candidate_from_payload(self, payload: dict[str, Any], raw: str) -> CandidateLeave:
        try:
            header = LeaveReplyHeader.model_validate(payload)
        except ValidationError as e:
            raise InterpretationParseError(f"Invalid leave reply: {e}", raw_reply=raw) from e

        if not header.is_valid:
            return CandidateLeave(is_valid=False, error_message=header.error)

        try:
            reply = ValidLeaveReply.model_validate(payload)
        except ValidationError as e:
            raise InterpretationParseError(f"Incomplete leave reply: {e}", raw_reply=raw) from e

        return CandidateLeave(
            is_valid=True,
            start_time=self.clock.localize(reply.start_time),
            end_time=self.clock.localize(reply.end_time),
            duration_label=reply.duration,
            reason=reply.reason,
            leave_type=reply.leave_type,
            error_message=header.error,
        )
