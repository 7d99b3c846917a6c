"""Employee directory protocol and record type.

The payroll core never reads employee tables directly. Every lookup goes
through an ``EmployeeDirectoryClient``; whether the directory lives in the
same deployment or behind HTTP is a configuration choice.
"""

from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Protocol


class DirectoryTransientError(Exception):
    """A lookup failed for infrastructure reasons and may succeed on retry."""

    def __init__(self, message: str, employee_id: str | None = None):
        self.employee_id = employee_id
        super().__init__(message)


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class EmployeeRecord:
    """Read-only copy of the employee data a computation needs."""

    id: str
    first_name: str = ""
    last_name: str = ""
    base_salary: Decimal | None = None
    position: str | None = None
    department_id: str | None = None
    employment_type: str | None = None
    status: str = "active"

    employee_code: str | None = None
    email: str | None = None
    phone: str | None = None
    department_name: str | None = None
    position_id: str | None = None
    hire_date: datetime.date | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status.lower() == "active"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EmployeeRecord:
        """Build from a row or API payload, accepting snake_case or camelCase keys."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Employee payload is not an object: {type(data).__name__}")
        employee_id = _pick(data, "id", "employee_id", "employeeId")
        if employee_id is None:
            raise ValueError("Employee payload has no id")

        salary = _pick(data, "base_salary", "baseSalary")
        if salary is not None and not isinstance(salary, Decimal):
            try:
                salary = Decimal(str(salary))
            except InvalidOperation:
                raise ValueError(f"Employee {employee_id} has malformed base_salary {salary!r}") from None

        hire_date = _pick(data, "hire_date", "hireDate")
        if isinstance(hire_date, datetime.datetime):
            hire_date = hire_date.date()
        elif isinstance(hire_date, str):
            hire_date = datetime.date.fromisoformat(hire_date[:10])

        return cls(
            id=str(employee_id),
            first_name=_pick(data, "first_name", "firstName") or "",
            last_name=_pick(data, "last_name", "lastName") or "",
            base_salary=salary,
            position=_as_str(_pick(data, "position", "position_name", "positionName")),
            department_id=_as_str(_pick(data, "department_id", "departmentId")),
            employment_type=_as_str(_pick(data, "employment_type", "employmentType")),
            status=str(_pick(data, "status") or "active"),
            employee_code=_as_str(_pick(data, "employee_code", "employeeCode")),
            email=_as_str(_pick(data, "email")),
            phone=_as_str(_pick(data, "phone")),
            department_name=_as_str(_pick(data, "department_name", "departmentName")),
            position_id=_as_str(_pick(data, "position_id", "positionId")),
            hire_date=hire_date,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["base_salary"] = None if self.base_salary is None else str(self.base_salary)
        data["hire_date"] = None if self.hire_date is None else self.hire_date.isoformat()
        return data


class EmployeeDirectoryClient(Protocol):
    """Protocol for employee directory lookups.

    Implementations return ``None`` for an employee the directory does not
    know and raise ``DirectoryTransientError`` when the directory could not
    answer at all.
    """

    def get_employee_by_id(self, employee_id: str) -> EmployeeRecord | None:
        """Fetch one employee, or None if not found."""
        ...

    def get_employees_by_ids(self, employee_ids: Iterable[str]) -> dict[str, EmployeeRecord]:
        """Fetch several employees. Unknown ids are simply absent from the result."""
        ...

    def is_employee_active(self, employee_id: str) -> bool:
        """True only for a known employee whose status is active."""
        ...

    def get_employee_department_id(self, employee_id: str) -> str | None:
        """Department id of the employee, or None."""
        ...
