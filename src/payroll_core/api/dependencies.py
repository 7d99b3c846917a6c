"""FastAPI dependencies for dependency injection."""

from collections.abc import Iterator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session, sessionmaker

from payroll_core.config import get_settings
from payroll_core.database import init_db
from payroll_core.directory import build_circuit_breaker, build_employee_directory
from payroll_core.resilience import CircuitBreaker
from payroll_core.services import PayrollAuditLogger, PayrollRunService


def get_session_factory() -> sessionmaker[Session]:
    """Get the process-wide session factory."""
    _, factory = init_db()
    return factory


def get_db_session(
    factory: Annotated[sessionmaker[Session], Depends(get_session_factory)],
) -> Iterator[Session]:
    """Get database session dependency."""
    with factory() as session:
        yield session


@lru_cache(maxsize=1)
def _shared_breaker() -> CircuitBreaker:
    return build_circuit_breaker(get_settings(), get_session_factory())


def get_circuit_breaker() -> CircuitBreaker:
    """One breaker per process so every request sees the same failure counts."""
    return _shared_breaker()


def get_actor(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Acting user for audit entries; falls back to the configured system actor."""
    return x_user_id or get_settings().audit_default_actor


# Type aliases for cleaner dependency injection
DbSession = Annotated[Session, Depends(get_db_session)]
SessionFactory = Annotated[sessionmaker[Session], Depends(get_session_factory)]
Breaker = Annotated[CircuitBreaker, Depends(get_circuit_breaker)]
Actor = Annotated[str, Depends(get_actor)]


def get_run_service(
    factory: SessionFactory,
    breaker: Breaker,
    actor: Actor,
) -> PayrollRunService:
    settings = get_settings()
    return PayrollRunService(
        factory,
        lambda session: build_employee_directory(settings, session, breaker),
        settings=settings,
        actor=actor,
    )


def get_audit_logger(db: DbSession, actor: Actor) -> PayrollAuditLogger:
    return PayrollAuditLogger(db, actor)


RunService = Annotated[PayrollRunService, Depends(get_run_service)]
AuditLogger = Annotated[PayrollAuditLogger, Depends(get_audit_logger)]
