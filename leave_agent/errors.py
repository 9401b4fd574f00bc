"""
Exception taxonomy for the leave pipeline.

Validation rejections are not errors and never appear here: they are
returned as a ValidationOutcome.
"""


class LeaveAgentError(Exception):
    """Base class for every failure raised by this package."""


class TransportError(LeaveAgentError):
    """Reaching or posting to the chat service failed. Logged, never retried."""


class InterpretationServiceError(LeaveAgentError):
    """The language model service was unreachable or returned unusable content."""


class InterpretationParseError(InterpretationServiceError):
    """The service replied, but the reply violates the expected schema."""

    def __init__(self, message: str, raw_reply: str | None = None):
        super().__init__(message)
        self.raw_reply = raw_reply


class QueryUnresolvedError(LeaveAgentError):
    """An analytics question could not be turned into an executable intent."""


class PersistenceError(LeaveAgentError):
    """A storage read or write failed. The record is not durably stored."""


class NoDataCondition(LeaveAgentError):
    """A query ran successfully but matched zero rows."""
