"""Type definitions for the computation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Coerce a numeric column or JSON value to Decimal without float drift."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class AttendanceRecord:
    """One day of attendance as read from the timekeeping module."""

    employee_id: str
    attendance_date: date
    status: str
    total_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    is_overtime: bool = False
    is_night_shift: bool = False
    is_holiday: bool = False
    is_special_holiday: bool = False

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "attendance_date": self.attendance_date.isoformat(),
            "status": self.status,
            "total_hours": str(self.total_hours),
            "overtime_hours": str(self.overtime_hours),
            "is_overtime": self.is_overtime,
            "is_night_shift": self.is_night_shift,
            "is_holiday": self.is_holiday,
            "is_special_holiday": self.is_special_holiday,
        }


@dataclass(frozen=True)
class AttendanceSummary:
    """Attendance totals for one employee over one period."""

    present_days: int = 0
    absent_days: int = 0
    leave_days: int = 0
    total_days: int = 0
    working_hours: Decimal = ZERO
    overtime_hours_regular: Decimal = ZERO
    overtime_hours_holiday: Decimal = ZERO
    overtime_hours_special: Decimal = ZERO
    night_shift_hours: Decimal = ZERO
    regular_holiday_days: int = 0
    special_holiday_days: int = 0

    @property
    def overtime_hours(self) -> Decimal:
        return (
            self.overtime_hours_regular
            + self.overtime_hours_holiday
            + self.overtime_hours_special
        )


@dataclass(frozen=True)
class AllowanceGrant:
    """An approved allowance. Exactly one of the amounts is expected."""

    name: str
    fixed_amount: Decimal | None = None
    percentage_amount: Decimal | None = None


@dataclass(frozen=True)
class AllowanceLine:
    """Allowance amount actually paid this period."""

    name: str
    amount: Decimal

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "amount": str(self.amount)}


@dataclass(frozen=True)
class GrossPayBreakdown:
    """Gross pay components.

    ``daily_rate``, ``hourly_rate`` and the three overtime buckets keep full
    precision so that derived amounts do not compound rounding. Every other
    amount is already rounded to cents.
    """

    base_salary: Decimal
    daily_rate: Decimal
    hourly_rate: Decimal
    attendance: AttendanceSummary
    overtime_regular: Decimal
    overtime_holiday: Decimal
    overtime_special: Decimal
    night_differential_amount: Decimal
    holiday_pay_regular: Decimal
    holiday_pay_special: Decimal
    hazard_pay: Decimal
    allowances: Decimal
    allowances_detail: tuple[AllowanceLine, ...] = ()

    @property
    def overtime_amount(self) -> Decimal:
        return round_to_cents(
            self.overtime_regular + self.overtime_holiday + self.overtime_special
        )

    @property
    def gross_pay(self) -> Decimal:
        return (
            self.base_salary
            + self.overtime_amount
            + self.night_differential_amount
            + self.holiday_pay_regular
            + self.holiday_pay_special
            + self.hazard_pay
            + self.allowances
        )

    def to_dict(self) -> dict[str, Any]:
        """External gross salary format (rates rounded for reporting)."""
        att = self.attendance
        return {
            "base_salary": round_to_cents(self.base_salary),
            "hourly_rate": round_to_cents(self.hourly_rate),
            "daily_rate": round_to_cents(self.daily_rate),
            "present_days": att.present_days,
            "absent_days": att.absent_days,
            "leave_days": att.leave_days,
            "working_hours": att.working_hours,
            "overtime_hours": att.overtime_hours,
            "overtime_amount": self.overtime_amount,
            "night_differential_hours": att.night_shift_hours,
            "night_differential_amount": self.night_differential_amount,
            "holiday_pay_regular": self.holiday_pay_regular,
            "holiday_pay_special": self.holiday_pay_special,
            "hazard_pay": self.hazard_pay,
            "allowances": self.allowances,
            "allowances_detail": [line.to_dict() for line in self.allowances_detail],
            "gross_pay": self.gross_pay,
        }


@dataclass(frozen=True)
class DeductionBreakdown:
    """Statutory deductions for one gross amount.

    ``contributions`` maps lower-cased contribution type to the employee
    share. Employer shares are informational and never deducted.
    """

    contributions: dict[str, Decimal]
    withholding_tax: Decimal
    taxable_income: Decimal
    employer_contributions: dict[str, Decimal] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return sum(self.contributions.values(), ZERO) + self.withholding_tax

    def to_dict(self) -> dict[str, Decimal]:
        """External deductions format: one key per type, then bir_tax and total."""
        result: dict[str, Decimal] = dict(self.contributions)
        result["bir_tax"] = self.withholding_tax
        result["total"] = self.total
        return result


@dataclass(frozen=True)
class PayrollComputationResult:
    """Full result of computing one employee for one period."""

    employee_id: str
    period_start: date
    period_end: date
    calculation_id: UUID
    inputs_fingerprint: str
    engine_version: str
    gross: GrossPayBreakdown
    deductions: DeductionBreakdown

    @property
    def gross_pay(self) -> Decimal:
        return self.gross.gross_pay

    @property
    def total_deductions(self) -> Decimal:
        return self.deductions.total

    @property
    def net_pay(self) -> Decimal:
        return self.gross_pay - self.total_deductions

    def to_summary_dict(self) -> dict[str, Any]:
        """JSON-safe summary stored in audit entries and API responses."""
        gross = self.gross.to_dict()
        summary: dict[str, Any] = {
            "calculation_id": str(self.calculation_id),
            "employee_id": self.employee_id,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "inputs_fingerprint": self.inputs_fingerprint,
            "engine_version": self.engine_version,
        }
        for key, value in gross.items():
            summary[key] = str(value) if isinstance(value, Decimal) else value
        summary["deductions"] = {k: str(v) for k, v in self.deductions.to_dict().items()}
        summary["employer_contributions"] = {
            k: str(v) for k, v in self.deductions.employer_contributions.items()
        }
        summary["total_deductions"] = str(self.total_deductions)
        summary["net_pay"] = str(self.net_pay)
        return summary
