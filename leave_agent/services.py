"""
Process-wide collaborators.

Built once at start-up and shared read-only by every worker. The dedup
guard is the only member with mutable shared state.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from leave_agent.clock import Clock
from leave_agent.config import Settings, settings
from leave_agent.dedup import DeduplicationGuard
from leave_agent.dispatcher import AggregationDispatcher
from leave_agent.interpreter import InterpretationGateway
from leave_agent.pipeline import AnalyticsPipeline, LeavePipeline
from leave_agent.query_classifier import QueryClassifier
from leave_agent.repository import LeaveRepository, build_repository
from leave_agent.validator import LeaveValidator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    clock: Clock
    guard: DeduplicationGuard
    gateway: InterpretationGateway
    validator: LeaveValidator
    repository: LeaveRepository
    classifier: QueryClassifier
    dispatcher: AggregationDispatcher
    leave_pipeline: LeavePipeline
    analytics_pipeline: AnalyticsPipeline

    def circuit_breakers(self) -> dict[str, dict]:
        states = {"llm": self.gateway.circuit_breaker.get_state()}
        breaker = getattr(self.repository, "circuit_breaker", None)
        if breaker is not None:
            states["storage"] = breaker.get_state()
        return states


def build_services(
    config: Settings,
    clock: Clock | None = None,
    repository: LeaveRepository | None = None,
    completion_fn: Callable[..., Any] | None = None,
) -> Services:
    clock = clock or Clock(config.org_timezone)
    repository = repository or build_repository(config, clock)
    gateway = InterpretationGateway(clock, config, completion_fn=completion_fn)
    guard = DeduplicationGuard()
    validator = LeaveValidator(clock, max_advance_days=config.max_advance_days)
    classifier = QueryClassifier(gateway)
    dispatcher = AggregationDispatcher(repository)

    return Services(
        settings=config,
        clock=clock,
        guard=guard,
        gateway=gateway,
        validator=validator,
        repository=repository,
        classifier=classifier,
        dispatcher=dispatcher,
        leave_pipeline=LeavePipeline(guard, gateway, validator, repository),
        analytics_pipeline=AnalyticsPipeline(classifier, dispatcher),
    )


# Global services instance
_services: Services | None = None


def get_services() -> Services:
    """Get or create the global services instance."""
    global _services
    if _services is None:
        logger.info("Initializing leave agent services")
        _services = build_services(settings)
    return _services
