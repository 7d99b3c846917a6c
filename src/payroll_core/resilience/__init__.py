"""Circuit breaker and retry helpers for remote dependencies."""

from payroll_core.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    CircuitStateStore,
    FileCircuitStateStore,
    InMemoryCircuitStateStore,
    SqlCircuitStateStore,
)
from payroll_core.resilience.retry import RetryHelper

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "CircuitStateStore",
    "FileCircuitStateStore",
    "InMemoryCircuitStateStore",
    "RetryHelper",
    "SqlCircuitStateStore",
]
