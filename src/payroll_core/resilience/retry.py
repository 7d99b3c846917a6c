"""Retry with exponential backoff."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryHelper:
    """Calls a function until it returns a truthy result.

    A falsy result or a ``transient`` exception triggers another attempt
    after ``min(max_delay, base_delay * 2**(attempt - 1))``. The exception
    from the final attempt propagates. If every attempt returned a falsy
    value, the last one is returned. Exceptions outside ``transient`` are
    never retried.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay_ms: int = 100,
        max_delay_ms: int = 2000,
        transient: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.transient = transient
        self.sleep = sleep

    def delay_seconds(self, attempt: int) -> float:
        """Backoff after the given 1-based attempt."""
        return min(self.max_delay_ms, self.base_delay_ms * 2 ** (attempt - 1)) / 1000

    def execute(self, fn: Callable[[], T], key: str = "") -> T | None:
        result: T | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = fn()
            except self.transient as exc:
                if attempt >= self.max_attempts:
                    logger.warning(
                        "Retry %s exhausted after %d attempts: %s", key, attempt, exc
                    )
                    raise
                logger.info("Retry %s attempt %d failed: %s", key, attempt, exc)
            else:
                if result:
                    return result
                if attempt >= self.max_attempts:
                    break

            self.sleep(self.delay_seconds(attempt))
        return result
