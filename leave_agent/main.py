"""
FastAPI application serving the Slack Leave Agent.
Hosts the Slack Socket Mode connection and exposes HTTP endpoints for
parsing, analytics and monitoring.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import date, timedelta

import uvicorn
from fastapi import FastAPI, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from leave_agent.config import settings
from leave_agent.errors import (
    InterpretationServiceError,
    NoDataCondition,
    PersistenceError,
    QueryUnresolvedError,
)
from leave_agent.models import AggregationReport, CandidateLeave, LeaveStats
from leave_agent.observability import configure_logging
from leave_agent.services import get_services

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


# Pydantic models for API
class LeaveParseRequest(BaseModel):
    """Request model for the leave parsing endpoint."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"message": "WFH tomorrow, waiting for a plumber"}}
    )

    message: str = Field(..., min_length=1, description="Attendance message to interpret")
    timestamp: str | None = Field(None, description="Optional Slack-style epoch timestamp")


class LeaveParseResponse(BaseModel):
    """Interpretation and validation result. Nothing is stored."""

    candidate: CandidateLeave
    accepted: bool
    rejection_reason: str | None = None
    message: str | None = None


class QueryRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"example": {"query": "Who took the most leave this month?"}}
    )

    query: str = Field(..., min_length=1, description="Analytics question")


class PeriodStatsResponse(BaseModel):
    start_date: date
    end_date: date
    stats: list[LeaveStats]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    circuit_breakers: dict
    observed_events: int


def last_month(today: date) -> tuple[date, date]:
    first_of_this_month = today.replace(day=1)
    end = first_of_this_month - timedelta(days=1)
    return end.replace(day=1), end


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Slack Leave Agent")
    logger.info(f"Environment: {settings.environment}")

    services = get_services()
    socket_handler = None

    if settings.slack_enabled:
        from leave_agent.slack_app import start_socket_mode

        try:
            socket_handler = start_socket_mode(services)
        except Exception as e:
            logger.error(f"Failed to connect to Slack: {e}", exc_info=True)
    else:
        logger.warning("Slack tokens not configured, running HTTP endpoints only")

    yield

    logger.info("Shutting down Slack Leave Agent")
    if socket_handler is not None:
        socket_handler.close()
    services.repository.close()


# Create FastAPI app
app = FastAPI(
    title="Slack Leave Agent API",
    description="Records attendance messages from Slack and answers leave analytics questions",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"message": "Slack Leave Agent API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Service status with circuit breaker states."""
    services = get_services()
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        circuit_breakers=services.circuit_breakers(),
        observed_events=len(services.guard),
    )


@app.get("/ready")
def ready():
    return {"status": "ready"}


@app.post("/api/leave", response_model=LeaveParseResponse, tags=["Leave"])
def parse_leave(request: LeaveParseRequest):
    """
    Interpret and validate an attendance message without recording it.

    Example request:
    ```json
    {"message": "Taking a half day tomorrow afternoon for a doctor's visit"}
    ```
    """
    services = get_services()
    try:
        candidate, outcome = services.leave_pipeline.interpret(request.message, request.timestamp)
    except InterpretationServiceError as e:
        logger.error(f"Error in /api/leave: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The language model service could not interpret this message.",
        ) from e

    if outcome is None:
        return LeaveParseResponse(
            candidate=candidate, accepted=False, message=candidate.error_message
        )

    return LeaveParseResponse(
        candidate=outcome.candidate,
        accepted=outcome.accepted,
        rejection_reason=outcome.reason.value if outcome.reason else None,
        message=outcome.message or None,
    )


@app.post("/api/leave/query", response_model=AggregationReport, tags=["Analytics"])
def leave_query(request: QueryRequest):
    """Answer a natural-language analytics question."""
    services = get_services()
    try:
        return services.analytics_pipeline.handle_query(request.query)
    except NoDataCondition as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except QueryUnresolvedError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    except InterpretationServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The language model service could not interpret this question.",
        ) from e
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Leave statistics are temporarily unavailable.",
        ) from e


@app.get("/api/leave/stats", response_model=PeriodStatsResponse, tags=["Analytics"])
def period_stats(
    start_date: date | None = Query(None, description="Inclusive, defaults to last month"),
    end_date: date | None = Query(None, description="Inclusive, defaults to last month"),
):
    """Per-employee leave statistics for a period, last calendar month by default."""
    services = get_services()
    default_start, default_end = last_month(services.clock.today())
    start_date = start_date or default_start
    end_date = end_date or default_end

    if start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start_date must not be after end_date",
        )

    try:
        stats = services.repository.stats_by_period(start_date, end_date)
    except PersistenceError as e:
        logger.error(f"Error in /api/leave/stats: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Leave statistics are temporarily unavailable.",
        ) from e

    return PeriodStatsResponse(start_date=start_date, end_date=end_date, stats=stats)


@app.get("/api/leave/today", tags=["Analytics"])
def on_leave_today():
    """Employees with a leave overlapping today."""
    services = get_services()
    today = services.clock.today()
    try:
        usernames = services.repository.on_leave(today)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Leave records are temporarily unavailable.",
        ) from e
    return {"date": today.isoformat(), "usernames": usernames}


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Circuit breaker state and dedup counters."""
    services = get_services()
    return {
        "circuit_breakers": services.circuit_breakers(),
        "observed_events": len(services.guard),
        "environment": settings.environment,
    }


if __name__ == "__main__":
    uvicorn.run(
        "leave_agent.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
