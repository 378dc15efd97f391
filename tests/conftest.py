"""Pytest fixtures for payroll core tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from payroll_core.models.records import (
    Bracket,
    BracketKind,
    Compensation,
    DeductionMethod,
    DeductionPolicy,
    Employee,
    PayFrequency,
    PayPeriod,
    PolicyType,
    TimeEntry,
    WorkSchedule,
)
from payroll_core.stores.base import Collaborators
from payroll_core.stores.memory import build_memory_collaborators

# Monday 4 March to Friday 15 March 2024: ten weekday work days
PERIOD = PayPeriod(date(2024, 3, 4), date(2024, 3, 15))
EFFECTIVE = date(2023, 1, 1)
FIXED_NOW = datetime(2024, 3, 16, 9, 0, tzinfo=timezone.utc)


def ph_brackets() -> list[Bracket]:
    """Monthly statutory tables shaped like the Philippine schedules."""
    tax = [
        (Decimal("0"), Decimal("20833"), Decimal("0"), Decimal("0")),
        (Decimal("20833"), Decimal("33333"), Decimal("0"), Decimal("0.20")),
        (Decimal("33333"), Decimal("66667"), Decimal("2500"), Decimal("0.25")),
        (Decimal("66667"), Decimal("166667"), Decimal("10833.50"), Decimal("0.30")),
        (Decimal("166667"), Decimal("666667"), Decimal("40833.50"), Decimal("0.32")),
        (Decimal("666667"), None, Decimal("200833.50"), Decimal("0.35")),
    ]
    brackets = [
        Bracket(
            kind=BracketKind.TAX,
            min_amount=lo,
            max_amount=hi,
            base_amount=base,
            rate=rate,
            effective_from=EFFECTIVE,
        )
        for lo, hi, base, rate in tax
    ]
    brackets += [
        Bracket(
            kind=BracketKind.HEALTH,
            min_amount=Decimal("0"),
            max_amount=None,
            rate=Decimal("0.025"),
            employer_rate=Decimal("0.025"),
            base_floor=Decimal("10000"),
            base_ceiling=Decimal("100000"),
            effective_from=EFFECTIVE,
        ),
        Bracket(
            kind=BracketKind.SOCIAL,
            min_amount=Decimal("0"),
            max_amount=None,
            rate=Decimal("0.045"),
            employer_rate=Decimal("0.095"),
            base_floor=Decimal("4000"),
            base_ceiling=Decimal("30000"),
            effective_from=EFFECTIVE,
        ),
        Bracket(
            kind=BracketKind.HOUSING,
            min_amount=Decimal("0"),
            max_amount=Decimal("1500"),
            rate=Decimal("0.01"),
            employer_rate=Decimal("0.02"),
            effective_from=EFFECTIVE,
        ),
        Bracket(
            kind=BracketKind.HOUSING,
            min_amount=Decimal("1500"),
            max_amount=None,
            rate=Decimal("0.02"),
            employer_rate=Decimal("0.02"),
            base_ceiling=Decimal("5000"),
            max_contribution=Decimal("100"),
            effective_from=EFFECTIVE,
        ),
    ]
    return brackets


def tables_by_kind(brackets: list[Bracket]) -> dict[BracketKind, list[Bracket]]:
    return {kind: [b for b in brackets if b.kind == kind] for kind in BracketKind}


@pytest.fixture
def org_id() -> UUID:
    return uuid4()


@pytest.fixture
def period() -> PayPeriod:
    return PERIOD


@pytest.fixture
def brackets() -> list[Bracket]:
    return ph_brackets()


@pytest.fixture
def tables(brackets) -> dict[BracketKind, list[Bracket]]:
    return tables_by_kind(brackets)


@pytest.fixture
def make_employee(org_id):
    """Factory for employees; salary None means no compensation."""
    counter = iter(range(1, 1000))

    def _make(
        salary: Decimal | None = Decimal("15000"),
        frequency: PayFrequency = PayFrequency.SEMI_MONTHLY,
        department_id: UUID | None = None,
    ) -> Employee:
        n = next(counter)
        employee = Employee(
            id=uuid4(),
            organization_id=org_id,
            first_name="Employee",
            last_name=f"{n:02d}",
            employee_number=f"E-{n:03d}",
            department_id=department_id,
        )
        if salary is not None:
            employee.compensations.append(
                Compensation(
                    id=uuid4(),
                    employee_id=employee.id,
                    base_salary=salary,
                    effective_date=date(2024, 1, 1),
                    pay_frequency=frequency,
                )
            )
        return employee

    return _make


@pytest.fixture
def make_schedule():
    def _make(employee: Employee, **overrides) -> WorkSchedule:
        return WorkSchedule(id=uuid4(), employee_id=employee.id, **overrides)

    return _make


def clocked(
    employee: Employee,
    day: date,
    start: time = time(8, 0),
    end: time | None = time(17, 0),
) -> TimeEntry:
    clock_out = datetime.combine(day, end) if end is not None else None
    return TimeEntry(
        id=uuid4(),
        employee_id=employee.id,
        work_date=day,
        clock_in=datetime.combine(day, start),
        clock_out=clock_out,
    )


@pytest.fixture
def make_entry():
    return clocked


@pytest.fixture
def late_policy(org_id) -> DeductionPolicy:
    return DeductionPolicy(
        id=uuid4(),
        organization_id=org_id,
        policy_type=PolicyType.LATE,
        method=DeductionMethod.HOURLY_RATE,
        multiplier=Decimal("1"),
    )


@dataclass
class Scenario:
    """Ten employees: two fully configured, one without schedule, seven without salary."""

    org_id: UUID
    period: PayPeriod
    collaborators: Collaborators
    attended: Employee
    unattended: Employee
    unscheduled: Employee
    unpaid: list[Employee]

    @property
    def eligible_ids(self) -> list[UUID]:
        return [self.attended.id, self.unattended.id, self.unscheduled.id]


@pytest.fixture
def scenario(org_id, brackets, make_employee, make_schedule, late_policy) -> Scenario:
    attended = make_employee()
    unattended = make_employee()
    unscheduled = make_employee()
    unpaid = [make_employee(salary=None) for _ in range(7)]

    # attended employee clocks in on 8 of the 10 work days
    work_days = [PERIOD.start + timedelta(days=i) for i in range(12)]
    work_days = [d for d in work_days if d.weekday() < 5]
    entries = [clocked(attended, d) for d in work_days[:8]]

    collaborators = build_memory_collaborators(
        employees=[attended, unattended, unscheduled, *unpaid],
        schedules=[make_schedule(attended), make_schedule(unattended)],
        time_entries=entries,
        brackets=brackets,
        policies=[late_policy],
    )
    return Scenario(
        org_id=org_id,
        period=PERIOD,
        collaborators=collaborators,
        attended=attended,
        unattended=unattended,
        unscheduled=unscheduled,
        unpaid=unpaid,
    )
