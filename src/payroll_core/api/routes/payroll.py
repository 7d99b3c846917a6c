"""Payroll computation endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status

from payroll_core.api.dependencies import RunService
from payroll_core.api.schemas import (
    ComputationRecordResponse,
    ComputationSummaryResponse,
    ComputeRequest,
    ComputeResponse,
    EmployeeError,
    ErrorResponse,
)

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post(
    "/compute",
    response_model=ComputeResponse,
    status_code=status.HTTP_200_OK,
    responses={422: {"model": ErrorResponse}},
)
def compute_payroll(service: RunService, payload: ComputeRequest) -> ComputeResponse:
    """Compute and store payroll for each employee.

    Employees that fail are listed in ``errors``; the rest are still computed.
    """
    summary = service.compute_employees(
        payload.employee_ids,
        payload.period_start,
        payload.period_end,
        run_id=payload.run_id,
    )
    return ComputeResponse(
        run_id=summary.run_id,
        period_start=summary.period_start,
        period_end=summary.period_end,
        computed=summary.computed,
        error_count=summary.error_count,
        total_gross=summary.total_gross,
        total_deductions=summary.total_deductions,
        total_net=summary.total_net,
        results=[
            ComputationSummaryResponse(
                employee_id=employee_id,
                calculation_id=result.calculation_id,
                gross_pay=result.gross_pay,
                deductions=result.deductions.to_dict(),
                total_deductions=result.total_deductions,
                net_pay=result.net_pay,
            )
            for employee_id, result in summary.results.items()
        ],
        errors=[
            EmployeeError(employee_id=employee_id, error=error)
            for employee_id, error in summary.errors.items()
        ],
    )


@router.get(
    "/computations/{employee_id}",
    response_model=ComputationRecordResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_current_computation(
    service: RunService,
    employee_id: Annotated[str, Path()],
    period_start: Annotated[date, Query()],
    period_end: Annotated[date, Query()],
) -> ComputationRecordResponse:
    """Latest stored computation for an employee and period."""
    record = service.get_current_computation(employee_id, period_start, period_end)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No computation for {employee_id} in {period_start}..{period_end}",
        )
    return ComputationRecordResponse.model_validate(record)
