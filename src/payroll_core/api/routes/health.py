"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from payroll_core.api.dependencies import Breaker, DbSession
from payroll_core.directory import GET_EMPLOYEE_KEY

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str
    employee_directory: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
def health_check(db: DbSession, breaker: Breaker) -> HealthResponse:
    """Check API, database and employee directory circuit."""
    db_status = "unhealthy"
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)

    directory_status = "circuit_open" if breaker.is_open(GET_EMPLOYEE_KEY) else "available"

    return HealthResponse(
        status="healthy" if db_status == "healthy" and directory_status == "available" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        employee_directory=directory_status,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
def readiness_check() -> dict[str, str]:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
