"""
End-to-end handling of one inbound message or analytics question.

Inbound message:
    dedup guard -> interpretation -> validation -> leave store

Analytics question:
    query classifier -> aggregation dispatcher -> leave store

Interpretation and persistence failures propagate to the caller after being
logged with the event id and the raw text. Nothing is retried here.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from leave_agent.dedup import DeduplicationGuard
from leave_agent.dispatcher import AggregationDispatcher
from leave_agent.errors import LeaveAgentError
from leave_agent.interpreter import InterpretationGateway
from leave_agent.models import AggregationReport, CandidateLeave, Leave
from leave_agent.query_classifier import QueryClassifier
from leave_agent.repository import LeaveRepository
from leave_agent.validator import LeaveValidator, ValidationOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundMessage:
    event_id: str
    text: str
    user_id: str
    channel_id: str
    timestamp: str | None = None


class OutcomeStatus(Enum):
    DUPLICATE = "duplicate"
    NOT_A_REQUEST = "not_a_request"
    REJECTED = "rejected"
    RECORDED = "recorded"


@dataclass(frozen=True)
class MessageOutcome:
    status: OutcomeStatus
    leave: Leave | None = None
    message: str = ""


class LeavePipeline:
    def __init__(
        self,
        guard: DeduplicationGuard,
        gateway: InterpretationGateway,
        validator: LeaveValidator,
        repository: LeaveRepository,
    ):
        self.guard = guard
        self.gateway = gateway
        self.validator = validator
        self.repository = repository

    def interpret(
        self, text: str, event_timestamp: str | None = None
    ) -> tuple[CandidateLeave, ValidationOutcome | None]:
        """Interpret and validate without storing anything."""
        candidate = self.gateway.parse_leave(text, event_timestamp)
        if not candidate.is_valid:
            return candidate, None
        return candidate, self.validator.validate(candidate)

    def handle_message(
        self, message: InboundMessage, resolve_username: Callable[[str], str]
    ) -> MessageOutcome:
        """
        Process one inbound message at most once.

        The event id is marked as seen before any work starts, so a handler
        that fails half-way is not run again on redelivery.
        """
        if not self.guard.observe(message.event_id):
            return MessageOutcome(status=OutcomeStatus.DUPLICATE)

        try:
            username = resolve_username(message.user_id)
            candidate, outcome = self.interpret(message.text, message.timestamp)

            if outcome is None:
                if candidate.error_message:
                    logger.info(f"Interpreter declined request: {candidate.error_message}")
                    return MessageOutcome(
                        status=OutcomeStatus.REJECTED, message=candidate.error_message
                    )
                return MessageOutcome(status=OutcomeStatus.NOT_A_REQUEST)

            if not outcome.accepted:
                return MessageOutcome(status=OutcomeStatus.REJECTED, message=outcome.message)

            accepted = outcome.candidate
            leave = Leave(
                username=username,
                original_text=message.text,
                start_time=accepted.start_time,
                end_time=accepted.end_time,
                duration_label=accepted.duration_label,
                reason=accepted.reason,
                leave_type=accepted.leave_type,
            )
            leave_id = self.repository.create(leave)
            logger.info(f"Recorded {leave.leave_type.value} for {username} as leave {leave_id}")
            return MessageOutcome(
                status=OutcomeStatus.RECORDED, leave=leave.model_copy(update={"id": leave_id})
            )

        except LeaveAgentError:
            logger.error(
                f"Failed to handle event {message.event_id} from {message.user_id}: "
                f"text={message.text!r}",
                exc_info=True,
            )
            raise


class AnalyticsPipeline:
    def __init__(self, classifier: QueryClassifier, dispatcher: AggregationDispatcher):
        self.classifier = classifier
        self.dispatcher = dispatcher

    def handle_query(self, text: str) -> AggregationReport:
        try:
            intent = self.classifier.classify(text)
            return self.dispatcher.dispatch(intent)
        except LeaveAgentError as e:
            logger.warning(f"Analytics query {text!r} failed: {type(e).__name__}: {e}")
            raise
