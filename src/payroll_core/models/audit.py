"""Append-only payroll audit log."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Index, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from payroll_core.models.base import Base, ImmutableRecordError, JSONType


class AuditImmutabilityError(ImmutableRecordError):
    """Raised when an audit entry is updated or deleted."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PayrollAuditLog(Base):
    """One audit entry. Rows are never modified once inserted."""

    __tablename__ = "payroll_audit_logs"

    # Insertion order tiebreaker for entries sharing a timestamp
    audit_seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[UUID] = mapped_column(unique=True, nullable=False, default=uuid4)
    action_type: Mapped[str] = mapped_column(String, nullable=False)
    payroll_run_id: Mapped[str | None] = mapped_column(String, nullable=True)
    payslip_id: Mapped[str | None] = mapped_column(String, nullable=True)
    employee_id: Mapped[str | None] = mapped_column(String, nullable=True)
    performed_by: Mapped[str] = mapped_column(String, nullable=False)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_date: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_payroll_audit_logs_run", "payroll_run_id"),
        Index("ix_payroll_audit_logs_employee", "employee_id"),
        Index("ix_payroll_audit_logs_action_date", "action_date"),
    )

    def to_entry(self) -> dict[str, Any]:
        """Serialize to the external audit entry format."""
        return {
            "id": str(self.id),
            "action_type": self.action_type,
            "payroll_run_id": self.payroll_run_id,
            "payslip_id": self.payslip_id,
            "employee_id": self.employee_id,
            "performed_by": self.performed_by,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "reason": self.reason,
            "action_date": self.action_date.isoformat(),
        }


@event.listens_for(PayrollAuditLog, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise AuditImmutabilityError("PayrollAuditLog", str(target.id), "update")


@event.listens_for(PayrollAuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target) -> None:
    raise AuditImmutabilityError("PayrollAuditLog", str(target.id), "delete")
