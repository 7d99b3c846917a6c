"""Payroll computation pipeline."""

from payroll_core.calculators.attendance import AttendanceAggregator, summarize
from payroll_core.calculators.deductions import StatutoryDeductionCalculator
from payroll_core.calculators.engine import EmployeeNotFoundError, PayrollComputationEngine
from payroll_core.calculators.gross_pay import GrossPayCalculator
from payroll_core.calculators.policy_store import (
    ContributionRateConfig,
    PolicyConfigurationError,
    PolicyContext,
    PolicyStore,
    TaxBracketConfig,
)
from payroll_core.calculators.types import (
    AttendanceRecord,
    AttendanceSummary,
    DeductionBreakdown,
    GrossPayBreakdown,
    PayrollComputationResult,
    round_to_cents,
)

__all__ = [
    "AttendanceAggregator",
    "AttendanceRecord",
    "AttendanceSummary",
    "ContributionRateConfig",
    "DeductionBreakdown",
    "EmployeeNotFoundError",
    "GrossPayBreakdown",
    "GrossPayCalculator",
    "PayrollComputationEngine",
    "PayrollComputationResult",
    "PolicyConfigurationError",
    "PolicyContext",
    "PolicyStore",
    "StatutoryDeductionCalculator",
    "TaxBracketConfig",
    "round_to_cents",
    "summarize",
]
