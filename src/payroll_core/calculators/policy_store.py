"""Payroll policy, contribution rate and tax bracket loading.

Everything a computation needs from configuration tables is read once into
an immutable ``PolicyContext``. Calculators receive the context explicitly;
there is no module-level cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_core.calculators.types import ZERO, to_decimal
from payroll_core.models import ContributionRateRow, PayrollPolicyRow, TaxBracketRow

logger = logging.getLogger(__name__)

PolicyValue = bool | Decimal | str

DEFAULT_POLICIES: Mapping[str, PolicyValue] = MappingProxyType(
    {
        "overtime_rate_regular": Decimal("1.25"),
        "overtime_rate_holiday": Decimal("1.69"),
        "overtime_rate_special_holiday": Decimal("1.95"),
        "night_differential_percent": Decimal("10"),
        "holiday_pay_regular": Decimal("1.0"),
        "holiday_pay_special": Decimal("1.3"),
        "hazard_pay_percent": Decimal("10"),
        "hazard_eligible_positions": "Nurse,Doctor,Physician,Therapist,Technician,Lab Technician",
        "enable_tax": True,
        "tax_monthly_exemption": Decimal("125000"),
        "tax_deductible_contribution": "SSS",
    }
)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


class PolicyConfigurationError(Exception):
    """Raised when payroll configuration is missing or malformed.

    Fatal to the whole run: computing with defaults would silently
    under-withhold.
    """

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


@dataclass(frozen=True)
class ContributionRateConfig:
    """Effective rate for one contribution type (rates in percent)."""

    contribution_type: str
    employee_rate: Decimal
    employer_rate: Decimal = ZERO
    salary_ceiling: Decimal | None = None
    salary_floor: Decimal | None = None
    effective_date: date | None = None


@dataclass(frozen=True)
class TaxBracketConfig:
    """Annual tax bracket. ``bracket_max`` of None is the open top bracket."""

    bracket_min: Decimal
    bracket_max: Decimal | None
    base_tax: Decimal
    excess_rate: Decimal


def parse_policy_value(key: str, raw: str, data_type: str) -> PolicyValue:
    """Convert a stored policy string to its typed value."""
    if data_type == "boolean":
        lowered = raw.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise PolicyConfigurationError(
            f"Policy {key!r} has malformed boolean value {raw!r}", key=key
        )
    if data_type in ("number", "percentage"):
        try:
            value = Decimal(raw.strip())
        except InvalidOperation:
            raise PolicyConfigurationError(
                f"Policy {key!r} has malformed {data_type} value {raw!r}", key=key
            ) from None
        if not value.is_finite():
            raise PolicyConfigurationError(
                f"Policy {key!r} has non-finite value {raw!r}", key=key
            )
        return value
    if data_type == "string":
        return raw
    raise PolicyConfigurationError(
        f"Policy {key!r} has unknown data type {data_type!r}", key=key
    )


def validate_brackets(brackets: Iterable[TaxBracketConfig], year: int) -> tuple[TaxBracketConfig, ...]:
    """Sort brackets and check they cover [0, +inf) without gaps or overlaps."""
    ordered = tuple(sorted(brackets, key=lambda b: b.bracket_min))
    if not ordered:
        raise PolicyConfigurationError(f"No tax brackets configured for {year}")

    if ordered[0].bracket_min != ZERO:
        raise PolicyConfigurationError(
            f"Tax brackets for {year} start at {ordered[0].bracket_min}, not 0"
        )

    for current, following in zip(ordered, ordered[1:]):
        if current.bracket_max is None:
            raise PolicyConfigurationError(
                f"Open-ended tax bracket for {year} at {current.bracket_min} "
                "is not the top bracket"
            )
        if current.bracket_max != following.bracket_min:
            raise PolicyConfigurationError(
                f"Tax brackets for {year} have a gap or overlap between "
                f"{current.bracket_max} and {following.bracket_min}"
            )

    for bracket in ordered:
        if bracket.bracket_max is not None and bracket.bracket_max <= bracket.bracket_min:
            raise PolicyConfigurationError(
                f"Tax bracket for {year} at {bracket.bracket_min} has an empty range"
            )
        if bracket.excess_rate < ZERO or bracket.base_tax < ZERO:
            raise PolicyConfigurationError(
                f"Tax bracket for {year} at {bracket.bracket_min} has a negative amount"
            )

    if ordered[-1].bracket_max is not None:
        raise PolicyConfigurationError(
            f"Tax brackets for {year} stop at {ordered[-1].bracket_max}; "
            "the top bracket must be open-ended"
        )
    return ordered


@dataclass(frozen=True)
class PolicyContext:
    """Immutable policy snapshot for one computation date."""

    computation_date: date
    policies: Mapping[str, PolicyValue] = field(default_factory=dict)
    contribution_rates: Mapping[str, ContributionRateConfig] = field(default_factory=dict)
    tax_brackets: tuple[TaxBracketConfig, ...] = ()

    @classmethod
    def build(
        cls,
        computation_date: date,
        policies: Mapping[str, PolicyValue] | None = None,
        contribution_rates: Iterable[ContributionRateConfig] = (),
        tax_brackets: Iterable[TaxBracketConfig] = (),
    ) -> PolicyContext:
        """Build a validated context; unset policies fall back to defaults."""
        merged = dict(DEFAULT_POLICIES)
        merged.update(policies or {})
        rates = {rate.contribution_type.upper(): rate for rate in contribution_rates}
        for ctype, rate in rates.items():
            if (
                rate.salary_floor is not None
                and rate.salary_ceiling is not None
                and rate.salary_floor > rate.salary_ceiling
            ):
                raise PolicyConfigurationError(
                    f"Contribution {ctype} has floor {rate.salary_floor} above "
                    f"ceiling {rate.salary_ceiling}"
                )
        return cls(
            computation_date=computation_date,
            policies=MappingProxyType(merged),
            contribution_rates=MappingProxyType(rates),
            tax_brackets=validate_brackets(tax_brackets, computation_date.year),
        )

    def number(self, key: str, default: Decimal | None = None) -> Decimal:
        value = self.policies.get(key, DEFAULT_POLICIES.get(key, default))
        if value is None:
            raise PolicyConfigurationError(f"Policy {key!r} is not configured", key=key)
        if isinstance(value, bool):
            raise PolicyConfigurationError(f"Policy {key!r} is not numeric", key=key)
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value))
        except InvalidOperation:
            raise PolicyConfigurationError(
                f"Policy {key!r} is not numeric: {value!r}", key=key
            ) from None

    def flag(self, key: str, default: bool = False) -> bool:
        value = self.policies.get(key, DEFAULT_POLICIES.get(key, default))
        if isinstance(value, bool):
            return value
        return bool(parse_policy_value(key, str(value), "boolean"))

    def text(self, key: str, default: str = "") -> str:
        value = self.policies.get(key, DEFAULT_POLICIES.get(key, default))
        return str(value)

    @property
    def hazard_positions(self) -> tuple[str, ...]:
        raw = self.text("hazard_eligible_positions")
        return tuple(part.strip() for part in raw.split(",") if part.strip())

    def contribution_rate(self, contribution_type: str) -> ContributionRateConfig | None:
        return self.contribution_rates.get(contribution_type.upper())

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "computation_date": self.computation_date.isoformat(),
            "policies": {key: str(value) for key, value in sorted(self.policies.items())},
            "contribution_rates": {
                ctype: {
                    "employee_rate": str(rate.employee_rate),
                    "employer_rate": str(rate.employer_rate),
                    "salary_ceiling": None if rate.salary_ceiling is None else str(rate.salary_ceiling),
                    "salary_floor": None if rate.salary_floor is None else str(rate.salary_floor),
                }
                for ctype, rate in sorted(self.contribution_rates.items())
            },
            "tax_brackets": [
                {
                    "bracket_min": str(b.bracket_min),
                    "bracket_max": None if b.bracket_max is None else str(b.bracket_max),
                    "base_tax": str(b.base_tax),
                    "excess_rate": str(b.excess_rate),
                }
                for b in self.tax_brackets
            ],
        }


class PolicyStore:
    """Loads policy tables into a ``PolicyContext``."""

    def __init__(self, session: Session):
        self.session = session

    def load(self, computation_date: date) -> PolicyContext:
        """Load the context in force on ``computation_date``.

        Raises:
            PolicyConfigurationError: brackets are missing or inconsistent,
                or a policy value cannot be parsed.
        """
        policies = self._load_policies()
        rates = self._load_contribution_rates(computation_date)
        brackets = self._load_tax_brackets(computation_date.year)

        context = PolicyContext.build(
            computation_date,
            policies=policies,
            contribution_rates=rates,
            tax_brackets=brackets,
        )
        logger.debug(
            "Loaded policy context for %s: %d policies, %d contribution types, %d brackets",
            computation_date,
            len(policies),
            len(rates),
            len(brackets),
        )
        return context

    def _load_policies(self) -> dict[str, PolicyValue]:
        rows = self.session.scalars(
            select(PayrollPolicyRow).where(PayrollPolicyRow.status == "active")
        ).all()
        return {
            row.policy_key: parse_policy_value(row.policy_key, row.policy_value, row.data_type)
            for row in rows
        }

    def _load_contribution_rates(self, computation_date: date) -> list[ContributionRateConfig]:
        """Latest active rate per type with effective_date <= computation_date."""
        rows = self.session.scalars(
            select(ContributionRateRow)
            .where(
                ContributionRateRow.status == "active",
                ContributionRateRow.effective_date <= computation_date,
            )
            .order_by(ContributionRateRow.contribution_type, ContributionRateRow.effective_date)
        ).all()

        latest: dict[str, ContributionRateRow] = {}
        for row in rows:
            latest[row.contribution_type.upper()] = row

        return [
            ContributionRateConfig(
                contribution_type=ctype,
                employee_rate=to_decimal(row.employee_rate),
                employer_rate=to_decimal(row.employer_rate),
                salary_ceiling=_optional_decimal(row.salary_ceiling),
                salary_floor=_optional_decimal(row.salary_floor),
                effective_date=row.effective_date,
            )
            for ctype, row in latest.items()
        ]

    def _load_tax_brackets(self, year: int) -> list[TaxBracketConfig]:
        rows = self.session.scalars(
            select(TaxBracketRow)
            .where(TaxBracketRow.effective_year == year)
            .order_by(TaxBracketRow.bracket_min)
        ).all()
        if not rows:
            raise PolicyConfigurationError(f"No tax brackets configured for {year}")
        return [
            TaxBracketConfig(
                bracket_min=to_decimal(row.bracket_min),
                bracket_max=_optional_decimal(row.bracket_max),
                base_tax=to_decimal(row.base_tax),
                excess_rate=to_decimal(row.excess_rate),
            )
            for row in rows
        ]


def _optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)
