"""Per-employee payroll computation: rates, gross, deductions and net."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from payroll_core.calculators.policy_calculator import PolicyDeductionCalculator
from payroll_core.calculators.statutory_calculator import StatutoryCalculator
from payroll_core.calculators.types import (
    EmployeeRates,
    PolicyDeductionResult,
    StatutoryDeductions,
)
from payroll_core.config import CalculationConfig
from payroll_core.models.records import (
    ZERO,
    Bracket,
    BracketKind,
    Compensation,
    DeductionPolicy,
    Holiday,
    PayrollAmounts,
    WorkSchedule,
    money,
)

SIXTY = Decimal("60")
ONE = Decimal("1")


@dataclass(frozen=True)
class EmployeePayroll:
    """Everything computed for one employee in one period."""

    rates: EmployeeRates
    statutory: StatutoryDeductions  # per-period share
    late: PolicyDeductionResult
    absence: PolicyDeductionResult
    base_pay: Decimal
    overtime_pay: Decimal
    holiday_pay: Decimal
    night_diff_pay: Decimal
    amounts: PayrollAmounts


class EmployeePayrollCalculator:
    """Combines the statutory and policy calculators for one employee."""

    def __init__(
        self,
        config: CalculationConfig | None = None,
        statutory: StatutoryCalculator | None = None,
        policy: PolicyDeductionCalculator | None = None,
    ):
        self.config = config or CalculationConfig()
        self.statutory = statutory or StatutoryCalculator(self.config)
        self.policy = policy or PolicyDeductionCalculator(self.config.hours_per_day)

    def resolve_rates(
        self,
        compensation: Compensation,
        schedule: WorkSchedule | None,
    ) -> EmployeeRates:
        """Schedule overrides win; otherwise monthly / working days / hours."""
        monthly = compensation.monthly_amount(self.config)
        if schedule is not None and schedule.monthly_rate is not None:
            monthly = schedule.monthly_rate

        daily = monthly / self.config.working_days
        if schedule is not None and schedule.daily_rate is not None:
            daily = schedule.daily_rate

        hourly = daily / self.config.hours
        if schedule is not None and schedule.hourly_rate is not None:
            hourly = schedule.hourly_rate

        return EmployeeRates(monthly=monthly, daily=daily, hourly=hourly)

    def compute(
        self,
        compensation: Compensation,
        schedule: WorkSchedule | None,
        tables: Mapping[BracketKind, Sequence[Bracket]],
        as_of: date,
        *,
        raw_late_minutes: Sequence[int] = (),
        absent_days: int = 0,
        approved_overtime_minutes: int = 0,
        holidays_worked: Sequence[Holiday] = (),
        night_minutes: int = 0,
        late_policy: DeductionPolicy | None = None,
        absence_policy: DeductionPolicy | None = None,
    ) -> EmployeePayroll:
        rates = self.resolve_rates(compensation, schedule)
        periods = compensation.periods_per_month

        monthly = self.statutory.calculate(rates.monthly, tables, as_of)
        statutory = monthly.per_period(periods)

        grace = schedule.grace_period_minutes if schedule else 0
        late = self.policy.late_deduction(
            late_policy,
            raw_late_minutes,
            rates,
            grace,
            allowed=schedule.allow_late_deduction if schedule else True,
        )
        absence = self.policy.absence_deduction(absence_policy, absent_days, rates, schedule)

        overtime_rate = schedule.overtime_rate if schedule else Decimal("1.25")
        overtime_pay = money(
            rates.hourly * overtime_rate * Decimal(approved_overtime_minutes) / SIXTY
        )
        multipliers = [
            schedule.holiday_multiplier(h) if schedule else h.pay_multiplier
            for h in holidays_worked
        ]
        holiday_pay = money(
            sum((rates.daily * max(ZERO, m - ONE) for m in multipliers), ZERO)
        )
        night_rate = schedule.night_diff_rate if schedule else ZERO
        night_diff_pay = money(rates.hourly * night_rate * Decimal(night_minutes) / SIXTY)

        base_pay = money(rates.monthly / periods)
        amounts = PayrollAmounts(
            gross_pay=base_pay + overtime_pay + holiday_pay + night_diff_pay,
            taxable_income=statutory.taxable_income,
            tax=statutory.tax,
            health=statutory.health,
            social=statutory.social,
            housing=statutory.housing,
            late_deduction=late.amount,
            absence_deduction=absence.amount,
        )
        return EmployeePayroll(
            rates=rates,
            statutory=statutory,
            late=late,
            absence=absence,
            base_pay=base_pay,
            overtime_pay=overtime_pay,
            holiday_pay=holiday_pay,
            night_diff_pay=night_diff_pay,
            amounts=amounts,
        )
