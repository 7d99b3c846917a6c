"""Pytest fixtures for payroll core tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Callable, Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from payroll_core.calculators.policy_store import (
    ContributionRateConfig,
    PolicyContext,
    TaxBracketConfig,
)
from payroll_core.config import Settings
from payroll_core.directory import LocalEmployeeDirectory
from payroll_core.models import (
    Base,
    ContributionRateRow,
    Department,
    Employee,
    EmployeeAllowanceRow,
    PayrollPolicyRow,
    TaxBracketRow,
)

PERIOD_START = date(2026, 3, 1)
PERIOD_END = date(2026, 3, 31)


def _base_settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        engine_version="1.0.0-test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        directory_mode="local",
        directory_base_url="http://hrcore.test/api",
        directory_timeout_seconds=5.0,
        directory_api_token=None,
        circuit_failure_threshold=5,
        circuit_cooldown_seconds=60,
        circuit_state_backend="memory",
        circuit_state_path=None,
        retry_max_attempts=3,
        retry_base_delay_ms=0,
        retry_max_delay_ms=0,
        audit_default_actor="SYSTEM",
    )


@pytest.fixture
def settings() -> Settings:
    """Settings for tests (no retry delays)."""
    return _base_settings()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build settings with overrides."""

    def _make(**overrides) -> Settings:
        return replace(_base_settings(), **overrides)

    return _make


# ===== Database =====


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    """File-backed SQLite so each session gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'payroll.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Create a database session for each test."""
    with session_factory() as session:
        yield session
        session.rollback()


# ===== Policy tables =====


STANDARD_BRACKETS = (
    TaxBracketConfig(Decimal("0"), Decimal("250000"), Decimal("0"), Decimal("0")),
    TaxBracketConfig(Decimal("250000"), Decimal("400000"), Decimal("0"), Decimal("0.20")),
    TaxBracketConfig(Decimal("400000"), Decimal("800000"), Decimal("0"), Decimal("0.25")),
    TaxBracketConfig(Decimal("800000"), None, Decimal("0"), Decimal("0.30")),
)

STANDARD_RATES = (
    ContributionRateConfig(
        "SSS",
        employee_rate=Decimal("4.5"),
        employer_rate=Decimal("9.5"),
        salary_ceiling=Decimal("20000"),
        salary_floor=Decimal("0"),
    ),
    ContributionRateConfig(
        "PHILHEALTH",
        employee_rate=Decimal("2.5"),
        employer_rate=Decimal("2.5"),
        salary_ceiling=Decimal("100000"),
        salary_floor=Decimal("10000"),
    ),
    ContributionRateConfig(
        "PAGIBIG",
        employee_rate=Decimal("2"),
        employer_rate=Decimal("2"),
        salary_ceiling=Decimal("5000"),
        salary_floor=None,
    ),
)


@pytest.fixture
def make_context() -> Callable[..., PolicyContext]:
    """Build a PolicyContext from in-memory tables."""

    def _make(
        policies=None,
        rates=STANDARD_RATES,
        brackets=STANDARD_BRACKETS,
        computation_date: date = PERIOD_END,
    ) -> PolicyContext:
        return PolicyContext.build(
            computation_date,
            policies=policies,
            contribution_rates=rates,
            tax_brackets=brackets,
        )

    return _make


@pytest.fixture
def policy_context(make_context) -> PolicyContext:
    return make_context()


@pytest.fixture
def seeded_policies(session: Session) -> None:
    """Store the standard rates and brackets for 2026."""
    for bracket in STANDARD_BRACKETS:
        session.add(
            TaxBracketRow(
                effective_year=2026,
                bracket_min=bracket.bracket_min,
                bracket_max=bracket.bracket_max,
                base_tax=bracket.base_tax,
                excess_rate=bracket.excess_rate,
            )
        )
    for rate in STANDARD_RATES:
        session.add(
            ContributionRateRow(
                contribution_type=rate.contribution_type,
                employee_rate=rate.employee_rate,
                employer_rate=rate.employer_rate,
                salary_ceiling=rate.salary_ceiling,
                salary_floor=rate.salary_floor,
                effective_date=date(2026, 1, 1),
            )
        )
    session.add(
        PayrollPolicyRow(
            policy_key="enable_tax", policy_value="true", data_type="boolean"
        )
    )
    session.commit()


# ===== Employees =====


@pytest.fixture
def seeded_employees(session: Session) -> dict[str, Employee]:
    """A nurse, an accountant and a terminated employee."""
    nursing = Department(id="DEPT-NUR", name="Nursing")
    finance = Department(id="DEPT-FIN", name="Finance")
    nurse = Employee(
        id="EMP001",
        employee_code="N-001",
        first_name="Maria",
        last_name="Santos",
        department_id="DEPT-NUR",
        position="Senior Nurse Supervisor",
        base_salary=Decimal("44000"),
        status="active",
        employment_type="regular",
    )
    accountant = Employee(
        id="EMP002",
        employee_code="F-002",
        first_name="Jose",
        last_name="Reyes",
        department_id="DEPT-FIN",
        position="Accountant",
        base_salary=Decimal("30000"),
        status="active",
        employment_type="regular",
    )
    former = Employee(
        id="EMP003",
        first_name="Ana",
        last_name="Cruz",
        department_id="DEPT-FIN",
        position="Clerk",
        base_salary=Decimal("18000"),
        status="terminated",
    )
    session.add_all([nursing, finance, nurse, accountant, former])
    session.add(
        EmployeeAllowanceRow(
            employee_id="EMP002",
            allowance_name="Rice subsidy",
            fixed_amount=Decimal("2000"),
            status="approved",
        )
    )
    session.add(
        EmployeeAllowanceRow(
            employee_id="EMP002",
            allowance_name="Clothing",
            fixed_amount=Decimal("1500"),
            status="pending",
        )
    )
    session.commit()
    return {"EMP001": nurse, "EMP002": accountant, "EMP003": former}


@pytest.fixture
def local_directory(session: Session, seeded_employees) -> LocalEmployeeDirectory:
    return LocalEmployeeDirectory(session)
