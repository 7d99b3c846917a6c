"""Attendance aggregation for a pay period."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_core.calculators.types import ZERO, AttendanceRecord, AttendanceSummary, to_decimal
from payroll_core.models import AttendanceRecordRow


def summarize(records: Iterable[AttendanceRecord]) -> AttendanceSummary:
    """Reduce attendance rows to period totals.

    Buckets are additive: an overtime hour on a night shift during a
    holiday counts toward overtime, night differential and holiday totals.
    Overtime buckets only take rows flagged ``is_overtime``:

    - regular: neither holiday nor special holiday
    - holiday: holiday but not special holiday
    - special: special holiday

    Holiday days worked only count present rows flagged ``is_holiday``;
    ``is_special_holiday`` then picks the special rate.
    """
    present = absent = leave = total_days = 0
    regular_holidays = special_holidays = 0
    working_hours = ZERO
    ot_regular = ot_holiday = ot_special = ZERO
    night_hours = ZERO

    for record in records:
        total_days += 1
        if record.status == "present":
            present += 1
            working_hours += record.total_hours
            if record.is_holiday:
                if record.is_special_holiday:
                    special_holidays += 1
                else:
                    regular_holidays += 1
        elif record.status == "absent":
            absent += 1
        elif record.status == "leave":
            leave += 1

        if record.is_overtime:
            if record.is_special_holiday:
                ot_special += record.overtime_hours
            elif record.is_holiday:
                ot_holiday += record.overtime_hours
            else:
                ot_regular += record.overtime_hours

        if record.is_night_shift:
            night_hours += record.total_hours

    return AttendanceSummary(
        present_days=present,
        absent_days=absent,
        leave_days=leave,
        total_days=total_days,
        working_hours=working_hours,
        overtime_hours_regular=ot_regular,
        overtime_hours_holiday=ot_holiday,
        overtime_hours_special=ot_special,
        night_shift_hours=night_hours,
        regular_holiday_days=regular_holidays,
        special_holiday_days=special_holidays,
    )


class AttendanceAggregator:
    """Reads attendance rows for an employee and period."""

    def __init__(self, session: Session):
        self.session = session

    def load_records(
        self, employee_id: str, period_start: date, period_end: date
    ) -> list[AttendanceRecord]:
        """Attendance rows in [period_start, period_end], oldest first."""
        rows = self.session.scalars(
            select(AttendanceRecordRow)
            .where(
                AttendanceRecordRow.employee_id == employee_id,
                AttendanceRecordRow.attendance_date >= period_start,
                AttendanceRecordRow.attendance_date <= period_end,
            )
            .order_by(AttendanceRecordRow.attendance_date, AttendanceRecordRow.attendance_id)
        ).all()
        return [
            AttendanceRecord(
                employee_id=row.employee_id,
                attendance_date=row.attendance_date,
                status=row.status,
                total_hours=to_decimal(row.total_hours),
                overtime_hours=to_decimal(row.overtime_hours),
                is_overtime=bool(row.is_overtime),
                is_night_shift=bool(row.is_night_shift),
                is_holiday=bool(row.is_holiday),
                is_special_holiday=bool(row.is_special_holiday),
            )
            for row in rows
        ]

    def aggregate(
        self, employee_id: str, period_start: date, period_end: date
    ) -> AttendanceSummary:
        return summarize(self.load_records(employee_id, period_start, period_end))
