"""Payroll computation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_core.calculators.attendance import AttendanceAggregator, summarize
from payroll_core.calculators.deductions import StatutoryDeductionCalculator
from payroll_core.calculators.gross_pay import GrossPayCalculator
from payroll_core.calculators.policy_store import PolicyContext, PolicyStore
from payroll_core.calculators.types import (
    ZERO,
    AllowanceGrant,
    GrossPayBreakdown,
    PayrollComputationResult,
    round_to_cents,
    to_decimal,
)
from payroll_core.config import Settings, get_settings
from payroll_core.directory.base import EmployeeDirectoryClient, EmployeeRecord
from payroll_core.models import EmployeeAllowanceRow

logger = logging.getLogger(__name__)


class EmployeeNotFoundError(Exception):
    """Raised when the directory has no usable record for an employee.

    Also raised when the directory is unavailable; the directory wrapper
    logs which of the two happened.
    """

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found or directory unavailable")


class PayrollComputationEngine:
    """Computes gross pay, statutory deductions and net pay.

    Pipeline per employee and period:
    1) Resolve the employee through the directory client
    2) Load the policy context in force on the period end date
    3) Aggregate attendance for the period
    4) Gross pay (base, overtime, night differential, holiday, hazard, allowances)
    5) Statutory contributions and withholding tax
    6) Net pay = gross - total deductions

    The same inputs always give the same result, including the
    ``calculation_id``.
    """

    def __init__(
        self,
        session: Session,
        directory: EmployeeDirectoryClient,
        settings: Settings | None = None,
    ):
        self.session = session
        self.directory = directory
        self.settings = settings or get_settings()
        self.policy_store = PolicyStore(session)
        self.attendance = AttendanceAggregator(session)
        self._contexts: dict[date, PolicyContext] = {}

    def policy_context(self, computation_date: date) -> PolicyContext:
        """Policy context for a date, loaded once per engine instance."""
        if computation_date not in self._contexts:
            self._contexts[computation_date] = self.policy_store.load(computation_date)
        return self._contexts[computation_date]

    # === Entry points ===

    def compute_gross_salary(
        self, employee_id: str, period_start: date, period_end: date
    ) -> dict[str, Any]:
        _check_period(period_start, period_end)
        employee = self._require_employee(employee_id)
        context = self.policy_context(period_end)
        return self._gross(employee, period_start, period_end, context).to_dict()

    def calculate_statutory_deductions(
        self,
        gross_salary: Decimal,
        employee_id: str,
        as_of: date | None = None,
    ) -> dict[str, Decimal]:
        """Deductions for a gross amount: one key per contribution type, ``bir_tax`` and ``total``.

        ``as_of`` selects the rates and brackets; it defaults to today.
        """
        context = self.policy_context(as_of or date.today())
        breakdown = StatutoryDeductionCalculator(context).calculate(
            round_to_cents(to_decimal(gross_salary))
        )
        logger.debug("Deductions for %s on %s: %s", employee_id, context.computation_date, breakdown)
        return breakdown.to_dict()

    def compute(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
        context: PolicyContext | None = None,
    ) -> PayrollComputationResult:
        """Full computation for one employee and period.

        Raises:
            EmployeeNotFoundError: directory returned nothing.
            ValueError: the directory record has no base salary.
            PolicyConfigurationError: policy tables are unusable.
        """
        _check_period(period_start, period_end)
        employee = self._require_employee(employee_id)
        context = context or self.policy_context(period_end)

        records = self.attendance.load_records(employee_id, period_start, period_end)
        allowances = self._get_approved_allowances(employee_id)

        gross = GrossPayCalculator(context).calculate(
            to_decimal(employee.base_salary),
            employee.position,
            summarize(records),
            allowances,
        )
        deductions = StatutoryDeductionCalculator(context).calculate(gross.gross_pay)

        inputs_data = {
            "employee": {
                "id": employee.id,
                "base_salary": str(to_decimal(employee.base_salary)),
                "position": employee.position,
            },
            "period": [period_start.isoformat(), period_end.isoformat()],
            "attendance": [r.to_canonical_dict() for r in records],
            "allowances": [
                {
                    "name": a.name,
                    "fixed_amount": None if a.fixed_amount is None else str(a.fixed_amount),
                    "percentage_amount": (
                        None if a.percentage_amount is None else str(a.percentage_amount)
                    ),
                }
                for a in allowances
            ],
            "policy": context.to_canonical_dict(),
        }
        inputs_fingerprint = self._compute_inputs_fingerprint(inputs_data)
        calculation_id = self._generate_calculation_id(
            employee_id, period_start, period_end, inputs_fingerprint
        )

        result = PayrollComputationResult(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            calculation_id=calculation_id,
            inputs_fingerprint=inputs_fingerprint,
            engine_version=self.settings.engine_version,
            gross=gross,
            deductions=deductions,
        )
        logger.info(
            "Computed payroll for %s %s..%s: gross=%s deductions=%s net=%s",
            employee_id,
            period_start,
            period_end,
            result.gross_pay,
            result.total_deductions,
            result.net_pay,
        )
        return result

    # === Helpers ===

    def _require_employee(self, employee_id: str) -> EmployeeRecord:
        employee = self.directory.get_employee_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        if employee.base_salary is None:
            raise ValueError(f"Employee {employee_id} has no base salary on record")
        return employee

    def _gross(
        self,
        employee: EmployeeRecord,
        period_start: date,
        period_end: date,
        context: PolicyContext,
    ) -> GrossPayBreakdown:
        summary = self.attendance.aggregate(employee.id, period_start, period_end)
        return GrossPayCalculator(context).calculate(
            to_decimal(employee.base_salary),
            employee.position,
            summary,
            self._get_approved_allowances(employee.id),
        )

    def _generate_calculation_id(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
        inputs_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": employee_id,
            "period_start": period_start.isoformat(),
            "period_end": period_end.isoformat(),
            "engine_version": self.settings.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _compute_inputs_fingerprint(self, inputs_data: dict[str, Any]) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        json_str = json.dumps(inputs_data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    # === Data Loading Methods ===

    def _get_approved_allowances(self, employee_id: str) -> list[AllowanceGrant]:
        rows = self.session.scalars(
            select(EmployeeAllowanceRow)
            .where(
                EmployeeAllowanceRow.employee_id == employee_id,
                EmployeeAllowanceRow.status == "approved",
            )
            .order_by(EmployeeAllowanceRow.allowance_id)
        ).all()
        return [
            AllowanceGrant(
                name=row.allowance_name,
                fixed_amount=None if row.fixed_amount is None else to_decimal(row.fixed_amount),
                percentage_amount=(
                    None if row.percentage_amount is None else to_decimal(row.percentage_amount)
                ),
            )
            for row in rows
            if (row.fixed_amount or ZERO) > ZERO or (row.percentage_amount or ZERO) > ZERO
        ]


def _check_period(period_start: date, period_end: date) -> None:
    if period_end < period_start:
        raise ValueError(f"Period end {period_end} is before start {period_start}")
