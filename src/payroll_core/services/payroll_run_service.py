"""Batch computation for the employees of a payroll run."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from payroll_core.calculators.engine import EmployeeNotFoundError, PayrollComputationEngine
from payroll_core.calculators.policy_store import PolicyContext, PolicyStore
from payroll_core.calculators.types import ZERO, PayrollComputationResult, round_to_cents
from payroll_core.config import Settings, get_settings
from payroll_core.directory.base import EmployeeDirectoryClient
from payroll_core.models import PayrollComputationRecord
from payroll_core.services.audit_logger import PayrollAuditLogger

logger = logging.getLogger(__name__)

DirectoryFactory = Callable[[Session], EmployeeDirectoryClient]


class PersistenceError(Exception):
    """Raised when a computation and its audit entry could not be stored together."""

    def __init__(self, employee_id: str, message: str):
        self.employee_id = employee_id
        super().__init__(f"Could not persist computation for {employee_id}: {message}")


@dataclass
class RunComputationSummary:
    """Outcome of computing a batch of employees.

    One employee failing does not fail the batch; its error is recorded in
    ``errors`` and the others carry on.
    """

    run_id: str | None
    period_start: date
    period_end: date
    results: dict[str, PayrollComputationResult] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def computed(self) -> int:
        return len(self.results)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def total_gross(self) -> Decimal:
        return sum((r.gross_pay for r in self.results.values()), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return sum((r.total_deductions for r in self.results.values()), ZERO)

    @property
    def total_net(self) -> Decimal:
        return sum((r.net_pay for r in self.results.values()), ZERO)


def record_summary(record: PayrollComputationRecord) -> dict[str, Any]:
    """Short form of a stored computation, used as ``old_values`` on supersession."""
    return {
        "computation_seq": record.computation_seq,
        "calculation_id": str(record.calculation_id),
        "gross_pay": str(record.gross_pay),
        "total_deductions": str(record.total_deductions),
        "net_pay": str(record.net_pay),
    }


class PayrollRunService:
    """Computes and persists payroll for a set of employees.

    Each employee gets its own session and transaction: the computation row
    and its ``compute_salary`` audit entry commit together or not at all.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        directory_factory: DirectoryFactory,
        settings: Settings | None = None,
        actor: str | None = None,
        max_workers: int = 1,
    ):
        self.session_factory = session_factory
        self.directory_factory = directory_factory
        self.settings = settings or get_settings()
        self.actor = actor
        self.max_workers = max(1, max_workers)

    def compute_employees(
        self,
        employee_ids: Iterable[str],
        period_start: date,
        period_end: date,
        run_id: str | None = None,
    ) -> RunComputationSummary:
        """Compute every employee; per-employee failures are collected, not raised.

        Raises:
            PolicyConfigurationError: policy tables are unusable. Nothing is
                computed.
        """
        if period_end < period_start:
            raise ValueError(f"Period end {period_end} is before start {period_start}")

        ids = list(dict.fromkeys(employee_ids))
        with self.session_factory() as session:
            context = PolicyStore(session).load(period_end)

        summary = RunComputationSummary(run_id, period_start, period_end)

        def run_one(employee_id: str) -> tuple[str, PayrollComputationResult | None, str | None]:
            try:
                result = self.compute_employee(
                    employee_id, period_start, period_end, run_id, context
                )
            except EmployeeNotFoundError as exc:
                logger.warning("Skipping employee %s: %s", employee_id, exc)
                return employee_id, None, str(exc)
            except PersistenceError as exc:
                logger.exception("Persistence failed for employee %s", employee_id)
                return employee_id, None, str(exc)
            except ValueError as exc:
                logger.exception("Invalid input for employee %s", employee_id)
                return employee_id, None, str(exc)
            return employee_id, result, None

        if self.max_workers == 1:
            outcomes = [run_one(employee_id) for employee_id in ids]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(run_one, ids))

        for employee_id, result, error in outcomes:
            if result is not None:
                summary.results[employee_id] = result
            else:
                summary.errors[employee_id] = error or "unknown error"

        logger.info(
            "Run %s %s..%s: %d computed, %d failed, net total %s",
            run_id,
            period_start,
            period_end,
            summary.computed,
            summary.error_count,
            summary.total_net,
        )
        return summary

    def compute_employee(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
        run_id: str | None = None,
        context: PolicyContext | None = None,
    ) -> PayrollComputationResult:
        """Compute one employee and store the result with its audit entry."""
        with self.session_factory() as session:
            engine = PayrollComputationEngine(
                session, self.directory_factory(session), self.settings
            )
            try:
                with session.begin():
                    result = engine.compute(employee_id, period_start, period_end, context)
                    self._persist(session, result, run_id)
            except SQLAlchemyError as exc:
                raise PersistenceError(employee_id, str(exc)) from exc
        return result

    def get_current_computation(
        self, employee_id: str, period_start: date, period_end: date
    ) -> PayrollComputationRecord | None:
        with self.session_factory() as session:
            return self._current(session, employee_id, period_start, period_end)

    def _current(
        self, session: Session, employee_id: str, period_start: date, period_end: date
    ) -> PayrollComputationRecord | None:
        return session.scalar(
            select(PayrollComputationRecord)
            .where(
                PayrollComputationRecord.employee_id == employee_id,
                PayrollComputationRecord.period_start == period_start,
                PayrollComputationRecord.period_end == period_end,
            )
            .order_by(PayrollComputationRecord.computation_seq.desc())
            .limit(1)
        )

    def _persist(
        self, session: Session, result: PayrollComputationResult, run_id: str | None
    ) -> PayrollComputationRecord:
        previous = self._current(
            session, result.employee_id, result.period_start, result.period_end
        )
        gross = result.gross
        attendance = gross.attendance
        record = PayrollComputationRecord(
            calculation_id=result.calculation_id,
            run_id=run_id,
            employee_id=result.employee_id,
            period_start=result.period_start,
            period_end=result.period_end,
            base_salary=gross.base_salary,
            daily_rate=round_to_cents(gross.daily_rate),
            hourly_rate=round_to_cents(gross.hourly_rate),
            present_days=attendance.present_days,
            absent_days=attendance.absent_days,
            leave_days=attendance.leave_days,
            working_hours=attendance.working_hours,
            overtime_hours=attendance.overtime_hours,
            night_differential_hours=attendance.night_shift_hours,
            overtime_amount=gross.overtime_amount,
            night_differential_amount=gross.night_differential_amount,
            holiday_pay_regular=gross.holiday_pay_regular,
            holiday_pay_special=gross.holiday_pay_special,
            hazard_pay=gross.hazard_pay,
            allowances=gross.allowances,
            gross_pay=result.gross_pay,
            deductions={k: str(v) for k, v in result.deductions.to_dict().items()},
            total_deductions=result.total_deductions,
            net_pay=result.net_pay,
            inputs_fingerprint=result.inputs_fingerprint,
            engine_version=result.engine_version,
        )
        session.add(record)
        auditor = PayrollAuditLogger(session, self.actor or self.settings.audit_default_actor)
        auditor.log_salary_computation(
            run_id,
            result.employee_id,
            result.to_summary_dict(),
            previous_summary=record_summary(previous) if previous is not None else None,
        )
        return record
