"""Tests for the payroll audit trail."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from payroll_core.models import AuditImmutabilityError, ImmutableRecordError, PayrollAuditLog
from payroll_core.services import AuditAction, PayrollAuditLogger


@pytest.fixture
def auditor(session):
    return PayrollAuditLogger(session, actor="HR-ADMIN")


def stored_entry(action_type, when, employee_id=None, run_id=None):
    return PayrollAuditLog(
        action_type=action_type,
        payroll_run_id=run_id,
        employee_id=employee_id,
        performed_by="SYSTEM",
        action_date=when,
    )


class TestWriting:
    """Appending entries."""

    def test_log_action_uses_actor_and_snapshots_values(self, session, auditor):
        entry = auditor.log_action(
            AuditAction.UPDATE_PAYROLL,
            run_id="RUN-1",
            employee_id="EMP001",
            old_values={"gross_pay": Decimal("100.50"), "period_end": date(2026, 3, 31)},
            new_values={"gross_pay": Decimal("120.00")},
            reason="Correction",
        )
        session.commit()

        stored = session.get(PayrollAuditLog, entry.audit_seq)
        assert stored.action_type == "update_payroll"
        assert stored.performed_by == "HR-ADMIN"
        assert stored.old_values == {"gross_pay": "100.50", "period_end": "2026-03-31"}
        assert stored.new_values == {"gross_pay": "120.00"}
        assert stored.id is not None
        assert stored.action_date is not None

    def test_default_actor_from_settings(self, session):
        assert PayrollAuditLogger(session).actor == "SYSTEM"

    def test_does_not_commit(self, session, session_factory, auditor):
        auditor.log_action(AuditAction.CREATE_PAYROLL, run_id="RUN-1")
        with session_factory() as other:
            assert other.query(PayrollAuditLog).count() == 0
        session.rollback()
        assert auditor.get_audit_log_count() == 0

    def test_salary_computation_helper(self, session, auditor):
        first = auditor.log_salary_computation("RUN-1", "EMP001", {"net_pay": "1000.00"})
        second = auditor.log_salary_computation(
            "RUN-2", "EMP001", {"net_pay": "1100.00"}, previous_summary={"net_pay": "1000.00"}
        )
        session.commit()

        assert first.action_type == AuditAction.COMPUTE_SALARY.value
        assert first.old_values is None
        assert first.reason == "Salary computed"
        assert second.old_values == {"net_pay": "1000.00"}
        assert second.new_values == {"net_pay": "1100.00"}
        assert "superseded" in second.reason

    def test_approval_helper(self, auditor):
        entry = auditor.log_payroll_approval("RUN-1", "approved", reason="Checked")
        assert entry.old_values == {"status": "draft"}
        assert entry.new_values == {"status": "approved"}

    def test_adjustment_helper(self, auditor):
        entry = auditor.log_payroll_adjustment(
            "PS-7", "EMP002", "allowances", Decimal("2000"), Decimal("2500"), "Late approval"
        )
        assert entry.payslip_id == "PS-7"
        assert entry.payroll_run_id is None
        assert entry.old_values == {"allowances": "2000"}
        assert entry.new_values == {"allowances": "2500"}
        assert entry.reason == "Late approval"

    def test_adjustment_helper_with_run(self, auditor):
        entry = auditor.log_payroll_adjustment(
            "PS-7", "EMP002", "sss", "900.00", "950.00", "Rate table fix", run_id="RUN-1"
        )
        assert entry.payslip_id == "PS-7"
        assert entry.payroll_run_id == "RUN-1"
        assert entry.action_type == "adjust_payroll"

    def test_payslip_helper(self, auditor):
        entry = auditor.log_payslip_generation("PS-1", "EMP001", run_id="RUN-1")
        assert entry.payslip_id == "PS-1"
        assert entry.action_type == "generate_payslip"


class TestImmutability:
    """Stored entries cannot be changed or removed through the ORM."""

    def test_update_rejected(self, session, auditor):
        entry = auditor.log_action(AuditAction.CREATE_PAYROLL, run_id="RUN-1")
        session.commit()

        entry.reason = "rewritten"
        with pytest.raises(AuditImmutabilityError) as exc_info:
            session.flush()
        assert exc_info.value.operation == "update"
        assert isinstance(exc_info.value, ImmutableRecordError)

    def test_delete_rejected(self, session, auditor):
        entry = auditor.log_action(AuditAction.CREATE_PAYROLL, run_id="RUN-1")
        session.commit()

        session.delete(entry)
        with pytest.raises(AuditImmutabilityError):
            session.flush()


class TestQueries:
    """Reading the trail back."""

    def test_newest_first_with_filters(self, session, auditor):
        auditor.log_salary_computation("RUN-1", "EMP001", {"n": 1})
        auditor.log_salary_computation("RUN-1", "EMP002", {"n": 2})
        auditor.log_salary_computation("RUN-2", "EMP001", {"n": 3})
        session.commit()

        entries = auditor.get_audit_logs()
        assert [e.new_values["n"] for e in entries] == [3, 2, 1]

        by_employee = auditor.get_audit_logs(employee_id="EMP001")
        assert [e.new_values["n"] for e in by_employee] == [3, 1]

        by_run = auditor.get_audit_logs(run_id="RUN-1")
        assert [e.employee_id for e in by_run] == ["EMP002", "EMP001"]

    def test_pagination_and_count(self, session, auditor):
        for n in range(5):
            auditor.log_action(AuditAction.UPDATE_PAYROLL, run_id="RUN-1", new_values={"n": n})
        session.commit()

        page = auditor.get_audit_logs(limit=2, offset=2)
        assert [e.new_values["n"] for e in page] == [2, 1]
        assert auditor.get_audit_log_count() == 5
        assert auditor.get_audit_log_count(run_id="RUN-9") == 0

    def test_same_timestamp_uses_insertion_order(self, session, auditor):
        when = datetime(2026, 3, 5, 9, 0, tzinfo=timezone.utc)
        session.add_all(
            [
                stored_entry("compute_salary", when, employee_id="EMP001"),
                stored_entry("compute_salary", when, employee_id="EMP002"),
            ]
        )
        session.commit()
        assert [e.employee_id for e in auditor.get_audit_logs()] == ["EMP002", "EMP001"]

    def test_to_entry(self, session, auditor):
        entry = auditor.log_action(AuditAction.DELETE_PAYROLL, run_id="RUN-1", reason="Duplicate")
        session.commit()
        data = entry.to_entry()
        assert data["action_type"] == "delete_payroll"
        assert data["performed_by"] == "HR-ADMIN"
        assert data["reason"] == "Duplicate"
        assert isinstance(data["id"], str)


class TestComplianceReport:
    """Per action type summary over a date window."""

    @pytest.fixture
    def march_entries(self, session):
        session.add_all(
            [
                stored_entry(
                    "compute_salary",
                    datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc),
                    employee_id="EMP001",
                    run_id="RUN-1",
                ),
                stored_entry(
                    "compute_salary",
                    datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc),
                    employee_id="EMP002",
                    run_id="RUN-1",
                ),
                stored_entry(
                    "compute_salary",
                    datetime(2026, 3, 31, 23, 59, tzinfo=timezone.utc),
                    employee_id="EMP001",
                    run_id="RUN-2",
                ),
                stored_entry(
                    "approve_payroll",
                    datetime(2026, 3, 20, 8, 0, tzinfo=timezone.utc),
                    run_id="RUN-1",
                ),
                stored_entry(
                    "compute_salary",
                    datetime(2026, 4, 1, 0, 0, tzinfo=timezone.utc),
                    employee_id="EMP003",
                    run_id="RUN-3",
                ),
            ]
        )
        session.commit()

    def test_grouped_counts(self, auditor, march_entries):
        report = auditor.generate_compliance_report(date(2026, 3, 1), date(2026, 3, 31))
        assert report == [
            {"action_type": "approve_payroll", "count": 1, "unique_employees": 0, "unique_runs": 1},
            {"action_type": "compute_salary", "count": 3, "unique_employees": 2, "unique_runs": 2},
        ]

    def test_single_day_window(self, auditor, march_entries):
        report = auditor.generate_compliance_report(date(2026, 4, 1), date(2026, 4, 1))
        assert report == [
            {"action_type": "compute_salary", "count": 1, "unique_employees": 1, "unique_runs": 1}
        ]

    def test_empty_window(self, auditor, march_entries):
        assert auditor.generate_compliance_report(date(2025, 1, 1), date(2025, 1, 31)) == []

    def test_reversed_window(self, auditor):
        with pytest.raises(ValueError):
            auditor.generate_compliance_report(date(2026, 3, 31), date(2026, 3, 1))
