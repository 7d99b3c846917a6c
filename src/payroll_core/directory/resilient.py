"""Circuit breaker and retry around an employee directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from payroll_core.directory.base import (
    DirectoryTransientError,
    EmployeeDirectoryClient,
    EmployeeRecord,
)
from payroll_core.resilience import CircuitBreaker, RetryHelper

logger = logging.getLogger(__name__)

GET_EMPLOYEE_KEY = "hrcore.get_employee"


@dataclass(frozen=True)
class _Answer:
    """A lookup the directory answered, found or not. Always truthy."""

    record: EmployeeRecord | None

    def __bool__(self) -> bool:
        return True


class ResilientEmployeeDirectory:
    """Wraps a directory client with a shared breaker and retry.

    When the breaker is open, or every retry failed, lookups return None
    without raising; the two cases are logged as "directory unavailable"
    so they can be told apart from a genuine "employee not found".
    """

    def __init__(
        self,
        inner: EmployeeDirectoryClient,
        breaker: CircuitBreaker,
        retry: RetryHelper | None = None,
        breaker_key: str = GET_EMPLOYEE_KEY,
    ):
        self.inner = inner
        self.breaker = breaker
        self.retry = retry or RetryHelper(transient=(DirectoryTransientError,))
        self.breaker_key = breaker_key

    def get_employee_by_id(self, employee_id: str) -> EmployeeRecord | None:
        if not self.breaker.allow(self.breaker_key):
            logger.warning(
                "Employee directory unavailable (circuit %s open); skipping lookup of %s",
                self.breaker_key,
                employee_id,
            )
            return None

        def fetch() -> _Answer:
            return _Answer(self.inner.get_employee_by_id(employee_id))

        try:
            answer = self.retry.execute(fetch, key=f"{self.breaker_key}:{employee_id}")
        except (DirectoryTransientError, ValueError) as exc:
            self.breaker.record_failure(self.breaker_key)
            logger.warning(
                "Employee directory unavailable for %s after retries: %s", employee_id, exc
            )
            return None

        self.breaker.record_success(self.breaker_key)
        record = answer.record if answer else None
        if record is None:
            logger.info("Employee %s not found in directory", employee_id)
        return record

    def get_employees_by_ids(self, employee_ids: Iterable[str]) -> dict[str, EmployeeRecord]:
        result: dict[str, EmployeeRecord] = {}
        for employee_id in sorted(set(employee_ids)):
            record = self.get_employee_by_id(employee_id)
            if record is not None:
                result[employee_id] = record
        return result

    def is_employee_active(self, employee_id: str) -> bool:
        record = self.get_employee_by_id(employee_id)
        return record is not None and record.is_active

    def get_employee_department_id(self, employee_id: str) -> str | None:
        record = self.get_employee_by_id(employee_id)
        return record.department_id if record is not None else None
