"""Payroll policy, input, and computation result models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_core.models.base import Base, ImmutableRecordError, JSONType, TimestampMixin


# ===== Policies & Rates =====


class PayrollPolicyRow(Base, TimestampMixin):
    """Typed key/value payroll policy."""

    __tablename__ = "payroll_policies"

    policy_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    policy_key: Mapped[str] = mapped_column(String, nullable=False)
    policy_value: Mapped[str] = mapped_column(String, nullable=False)
    data_type: Mapped[str] = mapped_column(String, nullable=False, default="string")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        UniqueConstraint("policy_key", name="payroll_policies_key_unique"),
        CheckConstraint(
            "data_type IN ('boolean', 'number', 'percentage', 'string')",
            name="payroll_policies_data_type_check",
        ),
        CheckConstraint(
            "status IN ('active', 'inactive')",
            name="payroll_policies_status_check",
        ),
    )


class ContributionRateRow(Base, TimestampMixin):
    """Statutory contribution rate (rates are percentages, e.g. 4.5)."""

    __tablename__ = "contribution_rates"

    rate_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contribution_type: Mapped[str] = mapped_column(String, nullable=False)
    employee_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    employer_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False, default=0)
    salary_ceiling: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    salary_floor: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        UniqueConstraint(
            "contribution_type", "effective_date", name="contribution_rates_type_date_unique"
        ),
        CheckConstraint("employee_rate >= 0", name="contribution_rates_employee_rate_check"),
        CheckConstraint("employer_rate >= 0", name="contribution_rates_employer_rate_check"),
    )


class TaxBracketRow(Base, TimestampMixin):
    """Annual progressive tax bracket (excess_rate is a fraction, e.g. 0.20)."""

    __tablename__ = "tax_brackets"

    bracket_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    effective_year: Mapped[int] = mapped_column(Integer, nullable=False)
    bracket_min: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    bracket_max: Mapped[Decimal | None] = mapped_column(Numeric(16, 2), nullable=True)
    base_tax: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=0)
    excess_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)

    __table_args__ = (
        UniqueConstraint("effective_year", "bracket_min", name="tax_brackets_year_min_unique"),
        CheckConstraint(
            "bracket_max IS NULL OR bracket_max > bracket_min",
            name="tax_brackets_range_check",
        ),
    )


# ===== Inputs =====


class AttendanceRecordRow(Base, TimestampMixin):
    """Daily attendance entry. Written by the timekeeping module."""

    __tablename__ = "attendance_records"

    attendance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=0)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=0)
    is_overtime: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_night_shift: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_special_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('present', 'absent', 'leave')",
            name="attendance_records_status_check",
        ),
        Index("ix_attendance_employee_date", "employee_id", "attendance_date"),
    )


class EmployeeAllowanceRow(Base, TimestampMixin):
    """Allowance granted to an employee."""

    __tablename__ = "employee_allowances"

    allowance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    allowance_name: Mapped[str] = mapped_column(String, nullable=False)
    fixed_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    percentage_amount: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'revoked')",
            name="employee_allowances_status_check",
        ),
    )


# ===== Computation Results =====


class PayrollComputationRecord(Base, TimestampMixin):
    """Persisted computation result. Insert-only; re-runs add a new row."""

    __tablename__ = "payroll_computations"

    computation_seq: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)
    run_id: Mapped[str | None] = mapped_column(String, nullable=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    base_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    present_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    absent_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    leave_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    working_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    night_differential_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    overtime_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    night_differential_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    holiday_pay_regular: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    holiday_pay_special: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    hazard_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    allowances: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    deductions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    inputs_fingerprint: Mapped[str] = mapped_column(String, nullable=False)
    engine_version: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index(
            "ix_payroll_computations_employee_period",
            "employee_id",
            "period_start",
            "period_end",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_computations_period_check"),
    )


@event.listens_for(PayrollComputationRecord, "before_update")
def _reject_computation_update(mapper, connection, target) -> None:
    raise ImmutableRecordError(
        "PayrollComputationRecord", str(target.computation_seq), "update"
    )


@event.listens_for(PayrollComputationRecord, "before_delete")
def _reject_computation_delete(mapper, connection, target) -> None:
    raise ImmutableRecordError(
        "PayrollComputationRecord", str(target.computation_seq), "delete"
    )
