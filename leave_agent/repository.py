"""
Leave persistence gateway.

Snowflake is the system of record. When no Snowflake account is configured
(local development, tests) an in-memory store with the same contract is
used instead.

Aggregations rank employees by leave count, descending, and break ties by
username, ascending.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Protocol

from snowflake.snowpark import Session
from snowflake.snowpark.functions import col, count, datediff, listagg, lit
from snowflake.snowpark.functions import sum as sum_

from leave_agent.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from leave_agent.clock import Clock
from leave_agent.config import Settings
from leave_agent.errors import PersistenceError
from leave_agent.models import Leave, LeaveStats
from leave_agent.observability import trace_span

logger = logging.getLogger(__name__)


class LeaveRepository(Protocol):
    def create(self, leave: Leave) -> int: ...

    def stats_by_period(self, start: date, end: date) -> list[LeaveStats]: ...

    def top_employee(self) -> LeaveStats | None: ...

    def stats_for_user(self, username: str) -> list[LeaveStats]: ...

    def on_leave(self, day: date) -> list[str]: ...

    def close(self) -> None: ...


def summarize(leaves: list[Leave]) -> list[LeaveStats]:
    """Group leaves by username and rank the groups."""
    groups: dict[str, list[Leave]] = {}
    for leave in leaves:
        groups.setdefault(leave.username, []).append(leave)

    stats = [
        LeaveStats(
            username=username,
            leave_count=len(items),
            leave_types=", ".join(sorted({item.leave_type.value for item in items})),
            total_hours=sum(item.hours for item in items),
        )
        for username, items in groups.items()
    ]
    return sorted(stats, key=lambda s: (-s.leave_count, s.username))


class InMemoryLeaveRepository:
    """Process-local store used when Snowflake is not configured."""

    def __init__(self, clock: Clock, leaves: list[Leave] | None = None):
        self.clock = clock
        self._leaves: list[Leave] = []
        self._next_id = 1
        self._lock = threading.Lock()

        for leave in leaves or []:
            self.create(leave)

    def create(self, leave: Leave) -> int:
        now = self.clock.now()
        with self._lock:
            leave_id = self._next_id
            self._next_id += 1
            self._leaves.append(
                leave.model_copy(update={"id": leave_id, "created_at": now, "updated_at": now})
            )
        return leave_id

    def all(self) -> list[Leave]:
        with self._lock:
            return list(self._leaves)

    def stats_by_period(self, start: date, end: date) -> list[LeaveStats]:
        return summarize(
            [
                leave
                for leave in self.all()
                if start <= self.clock.civil_date(leave.start_time) <= end
            ]
        )

    def top_employee(self) -> LeaveStats | None:
        stats = summarize(self.all())
        return stats[0] if stats else None

    def stats_for_user(self, username: str) -> list[LeaveStats]:
        return summarize([leave for leave in self.all() if leave.username == username])

    def on_leave(self, day: date) -> list[str]:
        day_start = self.clock.start_of_day(day)
        day_end = self.clock.start_of_day(day + timedelta(days=1))
        return sorted(
            {
                leave.username
                for leave in self.all()
                if leave.start_time < day_end and leave.end_time > day_start
            }
        )

    def close(self) -> None:
        pass


class SnowflakeLeaveRepository:
    """
    Snowpark-backed store.

    Reads and writes go through the DataFrame API so user text never ends up
    inside a SQL string. Every call is wrapped by a circuit breaker and any
    failure surfaces as PersistenceError; nothing is retried.
    """

    COLUMNS = [
        "ID",
        "USERNAME",
        "ORIGINAL_TEXT",
        "START_TIME",
        "END_TIME",
        "DURATION",
        "REASON",
        "LEAVE_TYPE",
        "CREATED_AT",
        "UPDATED_AT",
    ]

    def __init__(
        self,
        settings: Settings,
        clock: Clock,
        session: Session | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ):
        self.settings = settings
        self.clock = clock
        self.table = settings.snowflake_leaves_table.upper()
        self.sequence = f"{self.table}_ID_SEQ"
        self.session = session
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout,
            name="SnowflakeCircuitBreaker",
        )

        if self.session is None:
            self._initialize_session()

    def _initialize_session(self):
        connection_params = {
            "account": self.settings.snowflake_account,
            "user": self.settings.snowflake_user,
            "password": self.settings.snowflake_password,
            "warehouse": self.settings.snowflake_warehouse,
            "database": self.settings.snowflake_database,
            "schema": self.settings.snowflake_schema,
        }
        try:
            self.session = Session.builder.configs(connection_params).create()
        except Exception as e:
            raise PersistenceError(f"Failed to initialize Snowflake session: {e}") from e
        logger.info("Snowflake session initialized successfully")

    @contextmanager
    def _guarded(self, operation: str, **metadata):
        with trace_span(f"snowflake_{operation}", **metadata):
            try:
                yield
            except PersistenceError:
                raise
            except CircuitBreakerOpenError as e:
                raise PersistenceError(str(e)) from e
            except Exception as e:
                raise PersistenceError(f"Snowflake {operation} failed: {e}") from e

    def ensure_schema(self) -> None:
        """Create the id sequence and the leaves table when missing."""
        ddl = [
            f"CREATE SEQUENCE IF NOT EXISTS {self.sequence}",
            f"""CREATE TABLE IF NOT EXISTS {self.table} (
                ID NUMBER PRIMARY KEY,
                USERNAME VARCHAR(255) NOT NULL,
                ORIGINAL_TEXT VARCHAR NOT NULL,
                START_TIME TIMESTAMP_TZ NOT NULL,
                END_TIME TIMESTAMP_TZ NOT NULL,
                DURATION VARCHAR(255) NOT NULL,
                REASON VARCHAR NOT NULL,
                LEAVE_TYPE VARCHAR(50) NOT NULL,
                CREATED_AT TIMESTAMP_TZ NOT NULL,
                UPDATED_AT TIMESTAMP_TZ NOT NULL
            )""",
        ]
        with self._guarded("ensure_schema"):
            for statement in ddl:
                self.circuit_breaker.call(lambda s=statement: self.session.sql(s).collect())
        logger.info(f"Snowflake table {self.table} is ready")

    def create(self, leave: Leave) -> int:
        with self._guarded("create", username=leave.username):
            return self.circuit_breaker.call(self._insert, leave)

    def _insert(self, leave: Leave) -> int:
        leave_id = int(self.session.sql(f"SELECT {self.sequence}.NEXTVAL AS ID").collect()[0]["ID"])
        now = self.clock.now()
        row = [
            leave_id,
            leave.username,
            leave.original_text,
            leave.start_time,
            leave.end_time,
            leave.duration_label,
            leave.reason,
            leave.leave_type.value,
            now,
            now,
        ]
        self.session.create_dataframe([row], schema=self.COLUMNS).write.mode(
            "append"
        ).save_as_table(self.table)
        logger.info(f"Stored leave {leave_id} for {leave.username}")
        return leave_id

    def _aggregate(self, frame, limit: int | None = None) -> list[LeaveStats]:
        grouped = (
            frame.group_by("USERNAME")
            .agg(
                count(lit(1)).alias("LEAVE_COUNT"),
                listagg("LEAVE_TYPE", ", ", is_distinct=True)
                .within_group(col("LEAVE_TYPE").asc())
                .alias("LEAVE_TYPES"),
                (sum_(datediff("second", col("START_TIME"), col("END_TIME"))) / lit(3600)).alias(
                    "TOTAL_HOURS"
                ),
            )
            .sort(col("LEAVE_COUNT").desc(), col("USERNAME").asc())
        )
        if limit is not None:
            grouped = grouped.limit(limit)
        return [
            LeaveStats(
                username=row["USERNAME"],
                leave_count=int(row["LEAVE_COUNT"]),
                leave_types=row["LEAVE_TYPES"] or "",
                total_hours=float(row["TOTAL_HOURS"] or 0),
            )
            for row in grouped.collect()
        ]

    def stats_by_period(self, start: date, end: date) -> list[LeaveStats]:
        lower = self.clock.start_of_day(start)
        upper = self.clock.start_of_day(end + timedelta(days=1))

        def query():
            frame = self.session.table(self.table).filter(
                (col("START_TIME") >= lit(lower)) & (col("START_TIME") < lit(upper))
            )
            return self._aggregate(frame)

        with self._guarded("stats_by_period", start=start, end=end):
            return self.circuit_breaker.call(query)

    def top_employee(self) -> LeaveStats | None:
        def query():
            return self._aggregate(self.session.table(self.table), limit=1)

        with self._guarded("top_employee"):
            stats = self.circuit_breaker.call(query)
        return stats[0] if stats else None

    def stats_for_user(self, username: str) -> list[LeaveStats]:
        def query():
            frame = self.session.table(self.table).filter(col("USERNAME") == username)
            return self._aggregate(frame)

        with self._guarded("stats_for_user", username=username):
            return self.circuit_breaker.call(query)

    def on_leave(self, day: date) -> list[str]:
        day_start = self.clock.start_of_day(day)
        day_end = self.clock.start_of_day(day + timedelta(days=1))

        def query():
            rows = (
                self.session.table(self.table)
                .filter((col("START_TIME") < lit(day_end)) & (col("END_TIME") > lit(day_start)))
                .select("USERNAME")
                .distinct()
                .sort(col("USERNAME").asc())
                .collect()
            )
            return [row["USERNAME"] for row in rows]

        with self._guarded("on_leave", day=day):
            return self.circuit_breaker.call(query)

    def get_circuit_breaker_state(self) -> dict:
        return self.circuit_breaker.get_state()

    def close(self):
        if self.session:
            self.session.close()
            logger.info("Snowflake session closed")


def build_repository(settings: Settings, clock: Clock) -> LeaveRepository:
    """Snowflake when an account is configured, in-memory otherwise."""
    if not settings.snowflake_account:
        logger.warning("SNOWFLAKE_ACCOUNT not set, leaves are kept in memory only")
        return InMemoryLeaveRepository(clock)

    repository = SnowflakeLeaveRepository(settings, clock)
    repository.ensure_schema()
    return repository
