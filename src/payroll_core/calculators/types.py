"""Type definitions for calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_core.models.records import ZERO, BracketKind, PolicyType, money


@dataclass(frozen=True)
class EmployeeRates:
    """Monthly, daily and hourly rates resolved for one employee."""

    monthly: Decimal
    daily: Decimal
    hourly: Decimal


@dataclass(frozen=True)
class Contribution:
    """One government contribution stream."""

    kind: BracketKind
    employee_share: Decimal
    employer_share: Decimal
    base: Decimal  # computation base after floor/ceiling clamp


@dataclass(frozen=True)
class StatutoryDeductions:
    """Government deductions for a gross amount.

    Reported separately from policy deductions.
    """

    gross: Decimal
    taxable_income: Decimal
    tax: Decimal = ZERO
    health: Decimal = ZERO
    social: Decimal = ZERO
    housing: Decimal = ZERO
    health_employer: Decimal = ZERO
    social_employer: Decimal = ZERO
    housing_employer: Decimal = ZERO

    @property
    def contributions_total(self) -> Decimal:
        return self.health + self.social + self.housing

    @property
    def government_total(self) -> Decimal:
        return self.tax + self.contributions_total

    @property
    def employer_total(self) -> Decimal:
        return self.health_employer + self.social_employer + self.housing_employer

    def per_period(self, periods_per_month: Decimal) -> StatutoryDeductions:
        """Split monthly figures into one pay period's share."""
        return StatutoryDeductions(
            gross=money(self.gross / periods_per_month),
            taxable_income=money(self.taxable_income / periods_per_month),
            tax=money(self.tax / periods_per_month),
            health=money(self.health / periods_per_month),
            social=money(self.social / periods_per_month),
            housing=money(self.housing / periods_per_month),
            health_employer=money(self.health_employer / periods_per_month),
            social_employer=money(self.social_employer / periods_per_month),
            housing_employer=money(self.housing_employer / periods_per_month),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "taxable_income": str(self.taxable_income),
            "tax": str(self.tax),
            "health": str(self.health),
            "social": str(self.social),
            "housing": str(self.housing),
            "government_total": str(self.government_total),
            "employer_total": str(self.employer_total),
        }


@dataclass(frozen=True)
class PolicyDeductionResult:
    """Lateness or absence deduction for one employee and period."""

    policy_type: PolicyType
    amount: Decimal = ZERO
    occurrences: int = 0  # occurrences that produced a charge
    minutes: int = 0  # chargeable minutes after grace
    configured: bool = True
    fallback: bool = False
    capped: bool = False


class WorkTimeViolation(str, Enum):
    LATE = "LATE"
    UNDERTIME = "UNDERTIME"
    NOT_A_WORK_DAY = "NOT_A_WORK_DAY"
    OPEN_ENTRY = "OPEN_ENTRY"
    BELOW_MINIMUM_HOURS = "BELOW_MINIMUM_HOURS"


@dataclass(frozen=True)
class WorkTimeValidation:
    """Clock-in/out checked against a schedule."""

    raw_late_minutes: int = 0
    late_minutes: int = 0
    undertime_minutes: int = 0
    is_work_day: bool = True
    violations: tuple[WorkTimeViolation, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations
