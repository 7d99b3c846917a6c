"""Shared circuit breaker state."""

from __future__ import annotations

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_core.models.base import Base


class CircuitStateRow(Base):
    """Failure counter for one breaker key."""

    __tablename__ = "circuit_breaker_state"

    breaker_key: Mapped[str] = mapped_column(String, primary_key=True)
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Unix seconds; NULL until the first failure
    last_failure_time: Mapped[float | None] = mapped_column(Float, nullable=True)
