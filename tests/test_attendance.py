"""Tests for attendance aggregation."""

from datetime import date
from decimal import Decimal

from payroll_core.calculators.attendance import AttendanceAggregator, summarize
from payroll_core.calculators.types import AttendanceRecord
from payroll_core.models import AttendanceRecordRow


def record(day: int, status: str = "present", **kwargs) -> AttendanceRecord:
    kwargs.setdefault("total_hours", Decimal("8"))
    return AttendanceRecord(
        employee_id="EMP001", attendance_date=date(2026, 3, day), status=status, **kwargs
    )


class TestSummarize:
    """Pure reduction over attendance rows."""

    def test_no_rows_gives_zeros(self):
        summary = summarize([])
        assert summary.present_days == 0
        assert summary.total_days == 0
        assert summary.working_hours == Decimal("0")
        assert summary.overtime_hours == Decimal("0")
        assert summary.night_shift_hours == Decimal("0")

    def test_status_counts(self):
        summary = summarize(
            [
                record(2),
                record(3),
                record(4, status="absent", total_hours=Decimal("0")),
                record(5, status="leave", total_hours=Decimal("0")),
            ]
        )
        assert summary.present_days == 2
        assert summary.absent_days == 1
        assert summary.leave_days == 1
        assert summary.total_days == 4
        assert summary.working_hours == Decimal("16")

    def test_overtime_only_counts_flagged_rows(self):
        summary = summarize(
            [
                record(2, overtime_hours=Decimal("2"), is_overtime=True),
                record(3, overtime_hours=Decimal("3"), is_overtime=False),
            ]
        )
        assert summary.overtime_hours_regular == Decimal("2")

    def test_overtime_buckets(self):
        summary = summarize(
            [
                record(2, overtime_hours=Decimal("2"), is_overtime=True),
                record(3, overtime_hours=Decimal("3"), is_overtime=True, is_holiday=True),
                record(
                    4,
                    overtime_hours=Decimal("4"),
                    is_overtime=True,
                    is_holiday=True,
                    is_special_holiday=True,
                ),
                record(5, overtime_hours=Decimal("1"), is_overtime=True, is_special_holiday=True),
            ]
        )
        assert summary.overtime_hours_regular == Decimal("2")
        assert summary.overtime_hours_holiday == Decimal("3")
        assert summary.overtime_hours_special == Decimal("5")
        assert summary.overtime_hours == Decimal("10")

    def test_holiday_days_require_presence(self):
        summary = summarize(
            [
                record(2, is_holiday=True),
                record(3, is_holiday=True, is_special_holiday=True),
                record(4, status="absent", is_holiday=True, total_hours=Decimal("0")),
            ]
        )
        assert summary.regular_holiday_days == 1
        assert summary.special_holiday_days == 1

    def test_special_flag_without_holiday_is_not_a_holiday_day(self):
        summary = summarize([record(2, is_special_holiday=True)])
        assert summary.present_days == 1
        assert summary.special_holiday_days == 0
        assert summary.regular_holiday_days == 0

    def test_overlapping_flags_are_additive(self):
        summary = summarize(
            [
                record(
                    2,
                    total_hours=Decimal("10"),
                    overtime_hours=Decimal("2"),
                    is_overtime=True,
                    is_night_shift=True,
                    is_holiday=True,
                )
            ]
        )
        assert summary.overtime_hours_holiday == Decimal("2")
        assert summary.night_shift_hours == Decimal("10")
        assert summary.regular_holiday_days == 1
        assert summary.working_hours == Decimal("10")


class TestAttendanceAggregator:
    """Loading attendance rows from the database."""

    def test_period_bounds_are_inclusive(self, session):
        for day in (date(2026, 2, 28), date(2026, 3, 1), date(2026, 3, 31), date(2026, 4, 1)):
            session.add(
                AttendanceRecordRow(
                    employee_id="EMP001",
                    attendance_date=day,
                    status="present",
                    total_hours=Decimal("8"),
                )
            )
        session.add(
            AttendanceRecordRow(
                employee_id="EMP002",
                attendance_date=date(2026, 3, 2),
                status="present",
                total_hours=Decimal("8"),
            )
        )
        session.commit()

        summary = AttendanceAggregator(session).aggregate(
            "EMP001", date(2026, 3, 1), date(2026, 3, 31)
        )
        assert summary.present_days == 2
        assert summary.working_hours == Decimal("16")

    def test_rows_come_back_in_date_order(self, session):
        for day in (15, 3, 9):
            session.add(
                AttendanceRecordRow(
                    employee_id="EMP001",
                    attendance_date=date(2026, 3, day),
                    status="present",
                    total_hours=Decimal("8"),
                    is_night_shift=True,
                )
            )
        session.commit()

        records = AttendanceAggregator(session).load_records(
            "EMP001", date(2026, 3, 1), date(2026, 3, 31)
        )
        assert [r.attendance_date.day for r in records] == [3, 9, 15]
        assert all(r.is_night_shift for r in records)
