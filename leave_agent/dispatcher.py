"""
Executes a QueryIntent against the leave store.

Each query type maps to exactly one repository aggregation. Empty results
are only an error where a single answer was asked for.
"""

import logging

from leave_agent.errors import NoDataCondition, QueryUnresolvedError
from leave_agent.models import AggregationReport, QueryIntent, QueryType
from leave_agent.repository import LeaveRepository

logger = logging.getLogger(__name__)

NO_LEAVE_RECORDS = (
    "No leave records found for any employee. "
    "Please ensure that leave data is available for this period."
)


class AggregationDispatcher:
    def __init__(self, repository: LeaveRepository):
        self.repository = repository

    def dispatch(self, intent: QueryIntent) -> AggregationReport:
        """
        Run the aggregation selected by intent.query_type.

        Raises:
            NoDataCondition: top_employee over an empty store, or
                employee_stats for a user without records
            QueryUnresolvedError: the intent lacks what its type needs
            PersistenceError: the store failed
        """
        logger.info(f"Dispatching {intent.query_type.value} query")

        if intent.query_type == QueryType.TOP_EMPLOYEE:
            return self._top_employee()
        if intent.query_type == QueryType.PERIOD_STATS:
            return self._period_stats(intent)
        if intent.query_type == QueryType.EMPLOYEE_STATS:
            return self._employee_stats(intent)

        raise ValueError(f"Unhandled query type: {intent.query_type!r}")

    def _top_employee(self) -> AggregationReport:
        top = self.repository.top_employee()
        if top is None:
            raise NoDataCondition(NO_LEAVE_RECORDS)
        return AggregationReport(query_type=QueryType.TOP_EMPLOYEE, stats=[top])

    def _period_stats(self, intent: QueryIntent) -> AggregationReport:
        if intent.start_date is None or intent.end_date is None:
            raise QueryUnresolvedError("A period query needs both a start and an end date.")

        stats = self.repository.stats_by_period(intent.start_date, intent.end_date)
        return AggregationReport(
            query_type=QueryType.PERIOD_STATS,
            stats=stats,
            start_date=intent.start_date,
            end_date=intent.end_date,
        )

    def _employee_stats(self, intent: QueryIntent) -> AggregationReport:
        if not intent.username:
            raise QueryUnresolvedError("An employee query needs a username.")

        stats = self.repository.stats_for_user(intent.username)
        if not stats:
            raise NoDataCondition(
                f"No leave records found for *{intent.username}*. Please check if the username "
                "is correct or if they have taken any leave."
            )
        return AggregationReport(
            query_type=QueryType.EMPLOYEE_STATS, stats=stats, username=intent.username
        )
