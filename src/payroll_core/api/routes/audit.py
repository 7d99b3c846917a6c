"""Audit log query endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from payroll_core.api.dependencies import AuditLogger
from payroll_core.api.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    ComplianceReportRow,
    ErrorResponse,
)

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogListResponse)
def list_audit_logs(
    audit: AuditLogger,
    run_id: str | None = None,
    employee_id: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=500)] = 100,
) -> AuditLogListResponse:
    """Audit entries, newest first."""
    entries = audit.get_audit_logs(
        run_id=run_id,
        employee_id=employee_id,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in entries],
        total=audit.get_audit_log_count(run_id=run_id, employee_id=employee_id),
        page=page,
        page_size=page_size,
    )


@router.get(
    "/compliance-report",
    response_model=list[ComplianceReportRow],
    responses={400: {"model": ErrorResponse}},
)
def compliance_report(
    audit: AuditLogger,
    start: Annotated[date, Query()],
    end: Annotated[date, Query()],
) -> list[ComplianceReportRow]:
    """Audit activity per action type between two dates."""
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end must not be before start",
        )
    return [ComplianceReportRow(**row) for row in audit.generate_compliance_report(start, end)]
