"""Statutory contributions and withholding tax."""

from __future__ import annotations

from decimal import Decimal

from payroll_core.calculators.policy_store import (
    ContributionRateConfig,
    PolicyContext,
    TaxBracketConfig,
)
from payroll_core.calculators.types import ZERO, DeductionBreakdown, round_to_cents

HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")


def contributable_wage(gross_pay: Decimal, rate: ContributionRateConfig) -> Decimal:
    """Clamp gross pay into [floor, ceiling]; a missing floor is 0, a missing ceiling is unbounded."""
    floor = rate.salary_floor if rate.salary_floor is not None else ZERO
    wage = max(gross_pay, floor)
    if rate.salary_ceiling is not None:
        wage = min(wage, rate.salary_ceiling)
    return wage


def annual_tax_for(annual_taxable: Decimal, brackets: tuple[TaxBracketConfig, ...]) -> Decimal:
    """Progressive tax over ascending brackets.

    Every bounded bracket lying wholly below ``annual_taxable`` contributes
    its base tax plus its full width at its rate; the bracket containing the
    amount (or the open top bracket) contributes its base tax plus the part
    above its minimum.
    """
    annual_tax = ZERO
    for bracket in sorted(brackets, key=lambda b: b.bracket_min):
        if annual_taxable < bracket.bracket_min:
            break
        if bracket.bracket_max is not None and annual_taxable > bracket.bracket_max:
            annual_tax += bracket.base_tax + (
                (bracket.bracket_max - bracket.bracket_min) * bracket.excess_rate
            )
            continue
        annual_tax += bracket.base_tax + (annual_taxable - bracket.bracket_min) * bracket.excess_rate
        break
    return annual_tax


class StatutoryDeductionCalculator:
    """Computes employee contributions and monthly withholding tax."""

    def __init__(self, context: PolicyContext):
        self.context = context

    def contribution(self, gross_pay: Decimal, rate: ContributionRateConfig) -> Decimal:
        return round_to_cents(contributable_wage(gross_pay, rate) * rate.employee_rate / HUNDRED)

    def employer_contribution(self, gross_pay: Decimal, rate: ContributionRateConfig) -> Decimal:
        return round_to_cents(contributable_wage(gross_pay, rate) * rate.employer_rate / HUNDRED)

    def withholding_tax(self, taxable_income: Decimal) -> Decimal:
        """Monthly withholding on ``taxable_income`` (already net of the deductible contribution)."""
        if not self.context.flag("enable_tax", True):
            return ZERO

        exemption = self.context.number("tax_monthly_exemption")
        if taxable_income <= exemption:
            return ZERO

        annual_taxable = (taxable_income - exemption) * MONTHS_PER_YEAR
        annual_tax = annual_tax_for(annual_taxable, self.context.tax_brackets)
        return max(ZERO, round_to_cents(annual_tax / MONTHS_PER_YEAR))

    def calculate(self, gross_pay: Decimal) -> DeductionBreakdown:
        contributions: dict[str, Decimal] = {}
        employer: dict[str, Decimal] = {}
        for ctype in sorted(self.context.contribution_rates):
            rate = self.context.contribution_rates[ctype]
            contributions[ctype.lower()] = self.contribution(gross_pay, rate)
            employer[ctype.lower()] = self.employer_contribution(gross_pay, rate)

        deductible_type = self.context.text("tax_deductible_contribution").lower()
        taxable_income = gross_pay - contributions.get(deductible_type, ZERO)

        return DeductionBreakdown(
            contributions=contributions,
            withholding_tax=self.withholding_tax(taxable_income),
            taxable_income=taxable_income,
            employer_contributions=employer,
        )
