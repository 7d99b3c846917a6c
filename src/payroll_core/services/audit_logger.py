"""Append-only audit trail for payroll actions."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from payroll_core.config import get_settings
from payroll_core.models import PayrollAuditLog

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Audit action types."""

    COMPUTE_SALARY = "compute_salary"
    APPROVE_PAYROLL = "approve_payroll"
    GENERATE_PAYSLIP = "generate_payslip"
    ADJUST_PAYROLL = "adjust_payroll"
    CREATE_PAYROLL = "create_payroll"
    UPDATE_PAYROLL = "update_payroll"
    DELETE_PAYROLL = "delete_payroll"


def _jsonable(values: dict[str, Any] | None) -> dict[str, Any] | None:
    """Snapshot values as plain JSON (Decimals and dates become strings)."""
    if values is None:
        return None
    return json.loads(json.dumps(values, default=str, sort_keys=True))


class PayrollAuditLogger:
    """Writes and queries payroll audit entries.

    Entries are added to the caller's session and committed with the
    caller's transaction, so an audit entry is stored exactly when the
    change it describes is stored. Corrections are new entries carrying the
    previous state in ``old_values``.
    """

    def __init__(self, session: Session, actor: str | None = None):
        self.session = session
        self.actor = actor or get_settings().audit_default_actor

    def log_action(
        self,
        action_type: AuditAction | str,
        run_id: str | None = None,
        payslip_id: str | None = None,
        employee_id: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        reason: str | None = None,
    ) -> PayrollAuditLog:
        """Append one entry. This is the only write path."""
        action = action_type.value if isinstance(action_type, AuditAction) else action_type
        entry = PayrollAuditLog(
            action_type=action,
            payroll_run_id=run_id,
            payslip_id=payslip_id,
            employee_id=employee_id,
            performed_by=self.actor,
            old_values=_jsonable(old_values),
            new_values=_jsonable(new_values),
            reason=reason,
        )
        self.session.add(entry)
        logger.debug(
            "Audit %s run=%s employee=%s by %s", action, run_id, employee_id, self.actor
        )
        return entry

    # === Helpers for common actions ===

    def log_salary_computation(
        self,
        run_id: str | None,
        employee_id: str,
        computation_summary: dict[str, Any],
        previous_summary: dict[str, Any] | None = None,
    ) -> PayrollAuditLog:
        reason = "Salary computed"
        if previous_summary is not None:
            reason = "Salary recomputed; previous result superseded"
        return self.log_action(
            AuditAction.COMPUTE_SALARY,
            run_id=run_id,
            employee_id=employee_id,
            old_values=previous_summary,
            new_values=computation_summary,
            reason=reason,
        )

    def log_payroll_approval(
        self, run_id: str, status: str, reason: str | None = None
    ) -> PayrollAuditLog:
        return self.log_action(
            AuditAction.APPROVE_PAYROLL,
            run_id=run_id,
            old_values={"status": "draft"},
            new_values={"status": status},
            reason=reason,
        )

    def log_payslip_generation(
        self,
        payslip_id: str,
        employee_id: str,
        run_id: str | None = None,
        payslip_data: dict[str, Any] | None = None,
    ) -> PayrollAuditLog:
        return self.log_action(
            AuditAction.GENERATE_PAYSLIP,
            run_id=run_id,
            payslip_id=payslip_id,
            employee_id=employee_id,
            new_values=payslip_data,
            reason="Payslip generated",
        )

    def log_payroll_adjustment(
        self,
        payslip_id: str,
        employee_id: str,
        adjustment_type: str,
        old_value: Any,
        new_value: Any,
        reason: str,
        run_id: str | None = None,
    ) -> PayrollAuditLog:
        """Adjustment to one payslip line, keyed by ``adjustment_type``."""
        return self.log_action(
            AuditAction.ADJUST_PAYROLL,
            run_id=run_id,
            payslip_id=payslip_id,
            employee_id=employee_id,
            old_values={adjustment_type: old_value},
            new_values={adjustment_type: new_value},
            reason=reason,
        )

    # === Queries ===

    def get_audit_logs(
        self,
        run_id: str | None = None,
        employee_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PayrollAuditLog]:
        """Entries matching the filters, newest first."""
        stmt = select(PayrollAuditLog)
        if run_id is not None:
            stmt = stmt.where(PayrollAuditLog.payroll_run_id == run_id)
        if employee_id is not None:
            stmt = stmt.where(PayrollAuditLog.employee_id == employee_id)
        stmt = (
            stmt.order_by(PayrollAuditLog.action_date.desc(), PayrollAuditLog.audit_seq.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt).all())

    def get_audit_log_count(
        self, run_id: str | None = None, employee_id: str | None = None
    ) -> int:
        stmt = select(func.count()).select_from(PayrollAuditLog)
        if run_id is not None:
            stmt = stmt.where(PayrollAuditLog.payroll_run_id == run_id)
        if employee_id is not None:
            stmt = stmt.where(PayrollAuditLog.employee_id == employee_id)
        return int(self.session.scalar(stmt) or 0)

    def generate_compliance_report(self, start: date, end: date) -> list[dict[str, Any]]:
        """Per action type between two dates (inclusive): entries, distinct employees, distinct runs."""
        if end < start:
            raise ValueError(f"Report end {end} is before start {start}")
        window_start = datetime.combine(start, time.min, tzinfo=timezone.utc)
        window_end = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)

        stmt = (
            select(
                PayrollAuditLog.action_type,
                func.count().label("entries"),
                func.count(PayrollAuditLog.employee_id.distinct()).label("unique_employees"),
                func.count(PayrollAuditLog.payroll_run_id.distinct()).label("unique_runs"),
            )
            .where(
                PayrollAuditLog.action_date >= window_start,
                PayrollAuditLog.action_date < window_end,
            )
            .group_by(PayrollAuditLog.action_type)
            .order_by(PayrollAuditLog.action_type)
        )
        return [
            {
                "action_type": row.action_type,
                "count": row.entries,
                "unique_employees": row.unique_employees,
                "unique_runs": row.unique_runs,
            }
            for row in self.session.execute(stmt)
        ]
