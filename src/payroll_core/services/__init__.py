"""Payroll core services."""

from payroll_core.services.audit_logger import AuditAction, PayrollAuditLogger
from payroll_core.services.payroll_run_service import (
    PayrollRunService,
    PersistenceError,
    RunComputationSummary,
)

__all__ = [
    "AuditAction",
    "PayrollAuditLogger",
    "PayrollRunService",
    "PersistenceError",
    "RunComputationSummary",
]
