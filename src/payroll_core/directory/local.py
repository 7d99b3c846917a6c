"""In-process employee directory backed by the shared database."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from payroll_core.directory.base import DirectoryTransientError, EmployeeRecord
from payroll_core.models import Employee

logger = logging.getLogger(__name__)


def _to_record(employee: Employee) -> EmployeeRecord:
    return EmployeeRecord(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        base_salary=employee.base_salary,
        position=employee.position,
        department_id=employee.department_id,
        employment_type=employee.employment_type,
        status=employee.status,
        employee_code=employee.employee_code,
        email=employee.email,
        phone=employee.phone,
        department_name=employee.department.name if employee.department else None,
        hire_date=employee.hire_date,
    )


class LocalEmployeeDirectory:
    """Reads the employee tables of the same deployment."""

    def __init__(self, session: Session):
        self.session = session

    def get_employee_by_id(self, employee_id: str) -> EmployeeRecord | None:
        try:
            employee = self.session.scalar(
                select(Employee)
                .options(selectinload(Employee.department))
                .where(Employee.id == employee_id)
            )
        except SQLAlchemyError as exc:
            raise DirectoryTransientError(
                f"Employee lookup failed: {exc}", employee_id=employee_id
            ) from exc
        return _to_record(employee) if employee is not None else None

    def get_employees_by_ids(self, employee_ids: Iterable[str]) -> dict[str, EmployeeRecord]:
        ids = sorted(set(employee_ids))
        if not ids:
            return {}
        try:
            employees = self.session.scalars(
                select(Employee)
                .options(selectinload(Employee.department))
                .where(Employee.id.in_(ids))
            ).all()
        except SQLAlchemyError as exc:
            raise DirectoryTransientError(f"Batch employee lookup failed: {exc}") from exc
        return {employee.id: _to_record(employee) for employee in employees}

    def is_employee_active(self, employee_id: str) -> bool:
        record = self.get_employee_by_id(employee_id)
        return record is not None and record.is_active

    def get_employee_department_id(self, employee_id: str) -> str | None:
        record = self.get_employee_by_id(employee_id)
        return record.department_id if record is not None else None
