"""Gross pay calculation from base salary, attendance and allowances."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from payroll_core.calculators.policy_store import PolicyContext
from payroll_core.calculators.types import (
    ZERO,
    AllowanceGrant,
    AllowanceLine,
    AttendanceSummary,
    GrossPayBreakdown,
    round_to_cents,
)

WORKING_DAYS_PER_MONTH = Decimal("22")
HOURS_PER_DAY = Decimal("8")
HUNDRED = Decimal("100")


class GrossPayCalculator:
    """Derives gross pay components for one employee and period.

    Rates assume a fixed 22-day month of 8-hour days. Each component is
    rounded to cents as it is computed, so gross is a sum of rounded
    amounts. Overtime buckets are the exception: they are summed first and
    rounded once. Base salary is paid in full regardless of absences.
    """

    def __init__(self, context: PolicyContext):
        self.context = context

    def is_hazard_eligible(self, position: str | None) -> bool:
        """Case-insensitive substring match against the configured roles."""
        if not position:
            return False
        lowered = position.lower()
        return any(role.lower() in lowered for role in self.context.hazard_positions)

    def allowance_lines(
        self, base_salary: Decimal, grants: Iterable[AllowanceGrant]
    ) -> tuple[AllowanceLine, ...]:
        lines = []
        for grant in grants:
            if grant.fixed_amount:
                amount = round_to_cents(grant.fixed_amount)
            elif grant.percentage_amount is not None:
                amount = round_to_cents(base_salary * grant.percentage_amount / HUNDRED)
            else:
                continue
            lines.append(AllowanceLine(name=grant.name, amount=amount))
        return tuple(lines)

    def calculate(
        self,
        base_salary: Decimal,
        position: str | None,
        attendance: AttendanceSummary,
        allowances: Iterable[AllowanceGrant] = (),
    ) -> GrossPayBreakdown:
        if base_salary < ZERO:
            raise ValueError(f"Base salary cannot be negative: {base_salary}")

        ctx = self.context
        base = round_to_cents(base_salary)
        daily_rate = base / WORKING_DAYS_PER_MONTH
        hourly_rate = daily_rate / HOURS_PER_DAY

        overtime_regular = (
            attendance.overtime_hours_regular * hourly_rate * ctx.number("overtime_rate_regular")
        )
        overtime_holiday = (
            attendance.overtime_hours_holiday * hourly_rate * ctx.number("overtime_rate_holiday")
        )
        overtime_special = (
            attendance.overtime_hours_special
            * hourly_rate
            * ctx.number("overtime_rate_special_holiday")
        )

        night_differential = round_to_cents(
            attendance.night_shift_hours
            * hourly_rate
            * ctx.number("night_differential_percent")
            / HUNDRED
        )

        holiday_regular = round_to_cents(
            attendance.regular_holiday_days * daily_rate * ctx.number("holiday_pay_regular")
        )
        holiday_special = round_to_cents(
            attendance.special_holiday_days * daily_rate * ctx.number("holiday_pay_special")
        )

        hazard_pay = ZERO
        if self.is_hazard_eligible(position):
            hazard_pay = round_to_cents(
                daily_rate * ctx.number("hazard_pay_percent") / HUNDRED * attendance.present_days
            )

        lines = self.allowance_lines(base, allowances)
        allowances_total = sum((line.amount for line in lines), ZERO)

        return GrossPayBreakdown(
            base_salary=base,
            daily_rate=daily_rate,
            hourly_rate=hourly_rate,
            attendance=attendance,
            overtime_regular=overtime_regular,
            overtime_holiday=overtime_holiday,
            overtime_special=overtime_special,
            night_differential_amount=night_differential,
            holiday_pay_regular=holiday_regular,
            holiday_pay_special=holiday_special,
            hazard_pay=round_to_cents(hazard_pay),
            allowances=allowances_total,
            allowances_detail=lines,
        )
