"""
Analytics question classification.

Uses the same gateway as leave parsing, with the query schema. Anything the
model returns that cannot be executed as-is raises QueryUnresolvedError.
"""

import logging

from pydantic import ValidationError

from leave_agent.errors import InterpretationParseError, QueryUnresolvedError
from leave_agent.interpreter import InterpretationGateway
from leave_agent.models import QueryIntent, QueryReply, QueryType
from leave_agent.observability import trace_span
from leave_agent.prompts import QUERY_SYSTEM_PROMPT, build_query_prompt

logger = logging.getLogger(__name__)


class QueryClassifier:
    def __init__(self, gateway: InterpretationGateway):
        self.gateway = gateway

    def classify(self, text: str) -> QueryIntent:
        """
        Turn an analytics question into a QueryIntent.

        Raises:
            InterpretationServiceError: service failure
            InterpretationParseError: reply is not a query object
            QueryUnresolvedError: the model reported an error, or the intent
                lacks what its query type needs
        """
        if not text or not text.strip():
            raise QueryUnresolvedError("Please ask a question, e.g. /query who took the most leave?")

        prompt = build_query_prompt(text, self.gateway.clock.now())
        with trace_span("classify_query", model=self.gateway.settings.litellm_model):
            content = self.gateway.complete(
                QUERY_SYSTEM_PROMPT, prompt, self.gateway.settings.query_parse_temperature
            )

        payload = self.gateway.decode(content)

        # a reported error takes precedence over the rest of the reply
        error = payload.get("error")
        if isinstance(error, str) and error.strip():
            logger.info(f"Query could not be resolved: {error}")
            raise QueryUnresolvedError(error.strip())

        try:
            reply = QueryReply.model_validate(payload)
        except ValidationError as e:
            raise InterpretationParseError(f"Invalid query reply: {e}", raw_reply=content) from e

        return self._intent_from_reply(reply)

    def _intent_from_reply(self, reply: QueryReply) -> QueryIntent:
        if reply.query_type is None:
            raise QueryUnresolvedError("I could not tell which statistics you are asking for.")

        if reply.query_type == QueryType.TOP_EMPLOYEE:
            return QueryIntent(query_type=reply.query_type)

        if reply.query_type == QueryType.PERIOD_STATS:
            if reply.start_date is None or reply.end_date is None:
                raise QueryUnresolvedError("Please include the period you are asking about.")
            if reply.start_date > reply.end_date:
                raise QueryUnresolvedError(
                    f"The period starts ({reply.start_date}) after it ends ({reply.end_date})."
                )
            return QueryIntent(
                query_type=reply.query_type,
                start_date=reply.start_date,
                end_date=reply.end_date,
            )

        if reply.query_type == QueryType.EMPLOYEE_STATS:
            if not reply.username:
                raise QueryUnresolvedError("Please include the employee you are asking about.")
            return QueryIntent(query_type=reply.query_type, username=reply.username.lstrip("@"))

        raise QueryUnresolvedError(f"Unsupported query type: {reply.query_type}")
