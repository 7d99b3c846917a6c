"""Builds the configured employee directory."""

from __future__ import annotations

import os
import tempfile

import httpx
from sqlalchemy.orm import Session, sessionmaker

from payroll_core.config import Settings
from payroll_core.directory.base import DirectoryTransientError
from payroll_core.directory.local import LocalEmployeeDirectory
from payroll_core.directory.remote import RemoteEmployeeDirectory, TokenProvider
from payroll_core.directory.resilient import ResilientEmployeeDirectory
from payroll_core.resilience import (
    CircuitBreaker,
    CircuitStateStore,
    FileCircuitStateStore,
    InMemoryCircuitStateStore,
    RetryHelper,
    SqlCircuitStateStore,
)


def build_circuit_breaker(
    settings: Settings,
    session_factory: sessionmaker[Session] | None = None,
) -> CircuitBreaker:
    """Create the process-wide breaker. Share the result across workers."""
    store: CircuitStateStore
    if settings.circuit_state_backend == "file":
        path = settings.circuit_state_path or os.path.join(
            tempfile.gettempdir(), "payroll_circuit_breaker.json"
        )
        store = FileCircuitStateStore(path)
    elif settings.circuit_state_backend == "sql":
        if session_factory is None:
            raise ValueError("CIRCUIT_STATE_BACKEND=sql needs a session factory")
        store = SqlCircuitStateStore(session_factory)
    else:
        store = InMemoryCircuitStateStore()

    return CircuitBreaker(
        store=store,
        failure_threshold=settings.circuit_failure_threshold,
        cooldown_seconds=settings.circuit_cooldown_seconds,
    )


def build_employee_directory(
    settings: Settings,
    session: Session,
    breaker: CircuitBreaker,
    token_provider: TokenProvider | None = None,
    http_client: httpx.Client | None = None,
) -> ResilientEmployeeDirectory:
    """Pick local or remote lookups from ``settings.directory_mode``."""
    if settings.directory_mode == "remote":
        if token_provider is None and settings.directory_api_token:
            token = settings.directory_api_token
            token_provider = lambda: token  # noqa: E731
        inner = RemoteEmployeeDirectory(
            settings.directory_base_url,
            timeout=settings.directory_timeout_seconds,
            token_provider=token_provider,
            client=http_client,
        )
    else:
        inner = LocalEmployeeDirectory(session)

    retry = RetryHelper(
        max_attempts=settings.retry_max_attempts,
        base_delay_ms=settings.retry_base_delay_ms,
        max_delay_ms=settings.retry_max_delay_ms,
        transient=(DirectoryTransientError,),
    )
    return ResilientEmployeeDirectory(inner, breaker, retry)
