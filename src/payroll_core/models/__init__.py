"""SQLAlchemy ORM models for the payroll computation core."""

from payroll_core.models.audit import AuditImmutabilityError, PayrollAuditLog
from payroll_core.models.base import Base, ImmutableRecordError, TimestampMixin
from payroll_core.models.circuit import CircuitStateRow
from payroll_core.models.employee import Department, Employee
from payroll_core.models.payroll import (
    AttendanceRecordRow,
    ContributionRateRow,
    EmployeeAllowanceRow,
    PayrollComputationRecord,
    PayrollPolicyRow,
    TaxBracketRow,
)

__all__ = [
    "AttendanceRecordRow",
    "AuditImmutabilityError",
    "Base",
    "CircuitStateRow",
    "ContributionRateRow",
    "Department",
    "Employee",
    "EmployeeAllowanceRow",
    "ImmutableRecordError",
    "PayrollAuditLog",
    "PayrollComputationRecord",
    "PayrollPolicyRow",
    "TaxBracketRow",
    "TimestampMixin",
]
