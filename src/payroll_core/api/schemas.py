"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Computation schemas
# ============================================================================


class ComputeRequest(BaseModel):
    """Schema for computing payroll for a set of employees."""

    employee_ids: list[str] = Field(min_length=1)
    period_start: date
    period_end: date
    run_id: str | None = None

    @model_validator(mode="after")
    def check_period(self) -> "ComputeRequest":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class ComputationSummaryResponse(BaseModel):
    """Per-employee result of a compute request."""

    employee_id: str
    calculation_id: UUID
    gross_pay: Decimal
    deductions: dict[str, Decimal]
    total_deductions: Decimal
    net_pay: Decimal


class EmployeeError(BaseModel):
    """Why one employee could not be computed."""

    employee_id: str
    error: str


class ComputeResponse(BaseModel):
    """Schema for a compute request response."""

    run_id: str | None
    period_start: date
    period_end: date
    computed: int
    error_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    results: list[ComputationSummaryResponse]
    errors: list[EmployeeError]


class ComputationRecordResponse(BaseModel):
    """Schema for a stored computation."""

    model_config = ConfigDict(from_attributes=True)

    computation_seq: int
    calculation_id: UUID
    run_id: str | None = None
    employee_id: str
    period_start: date
    period_end: date
    base_salary: Decimal
    daily_rate: Decimal
    hourly_rate: Decimal
    present_days: int
    absent_days: int
    leave_days: int
    working_hours: Decimal
    overtime_hours: Decimal
    overtime_amount: Decimal
    night_differential_hours: Decimal
    night_differential_amount: Decimal
    holiday_pay_regular: Decimal
    holiday_pay_special: Decimal
    hazard_pay: Decimal
    allowances: Decimal
    gross_pay: Decimal
    deductions: dict[str, Any]
    total_deductions: Decimal
    net_pay: Decimal
    inputs_fingerprint: str
    engine_version: str


# ============================================================================
# Audit schemas
# ============================================================================


class AuditLogResponse(BaseModel):
    """Schema for one audit entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action_type: str
    payroll_run_id: str | None = None
    payslip_id: str | None = None
    employee_id: str | None = None
    performed_by: str
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    reason: str | None = None
    action_date: datetime


class AuditLogListResponse(BaseModel):
    """Schema for listing audit entries."""

    items: list[AuditLogResponse]
    total: int
    page: int
    page_size: int


class ComplianceReportRow(BaseModel):
    """Audit activity for one action type."""

    action_type: str
    count: int
    unique_employees: int
    unique_runs: int


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str | None = None
