"""Lateness and absence deductions from organization policies."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from payroll_core.calculators.types import EmployeeRates, PolicyDeductionResult
from payroll_core.errors import ValidationError
from payroll_core.models.records import (
    ZERO,
    DeductionMethod,
    DeductionPolicy,
    PolicyType,
    WorkSchedule,
    money,
)

logger = logging.getLogger(__name__)

SIXTY = Decimal("60")


def _cap(amount: Decimal, limit: Decimal | None) -> tuple[Decimal, bool]:
    if limit is not None and amount > limit:
        return limit, True
    return amount, False


class PolicyDeductionCalculator:
    """Applies LATE and ABSENCE policies to per-day occurrences.

    Each occurrence is priced by the policy method:

    - HOURLY_RATE: hourly rate * multiplier * minutes / 60
    - FIXED: fixed amount
    - PERCENTAGE: rate * daily rate

    then capped by the per-day maximum. The running total is capped by the
    per-period maximum.
    """

    def __init__(self, hours_per_day: int = 8):
        self.hours_per_day = hours_per_day

    def occurrence_amount(
        self,
        policy: DeductionPolicy,
        minutes: int,
        rates: EmployeeRates,
    ) -> Decimal:
        if policy.method == DeductionMethod.HOURLY_RATE:
            return rates.hourly * policy.multiplier * Decimal(minutes) / SIXTY
        if policy.method == DeductionMethod.FIXED:
            return policy.fixed_amount
        if policy.method == DeductionMethod.PERCENTAGE:
            return policy.rate * rates.daily
        raise ValidationError(f"Unknown deduction method: {policy.method}")

    def late_deduction(
        self,
        policy: DeductionPolicy | None,
        raw_late_minutes: Sequence[int],
        rates: EmployeeRates,
        schedule_grace_minutes: int = 0,
        allowed: bool = True,
    ) -> PolicyDeductionResult:
        """Price each day's lateness.

        raw_late_minutes holds the lateness of each late day before any grace.
        The effective grace is the larger of the schedule's and the policy's.
        Lateness within the grace or under the policy minimum is not charged.
        A schedule that disallows late deductions (allowed=False) is never charged.
        """
        if any(m < 0 for m in raw_late_minutes):
            raise ValidationError("Late minutes must not be negative")
        if policy is None:
            return PolicyDeductionResult(policy_type=PolicyType.LATE, configured=False)
        if not allowed:
            return PolicyDeductionResult(policy_type=PolicyType.LATE)

        grace = max(schedule_grace_minutes, policy.grace_period_minutes)
        total = ZERO
        charged = 0
        charged_minutes = 0
        capped = False
        for raw in raw_late_minutes:
            minutes = max(0, raw - grace)
            if minutes == 0 or minutes < policy.minimum_minutes:
                continue
            amount, day_capped = _cap(
                self.occurrence_amount(policy, minutes, rates), policy.max_per_day
            )
            total += amount
            charged += 1
            charged_minutes += minutes
            capped = capped or day_capped

        total, period_capped = _cap(total, policy.max_per_period)
        return PolicyDeductionResult(
            policy_type=PolicyType.LATE,
            amount=money(total),
            occurrences=charged,
            minutes=charged_minutes,
            capped=capped or period_capped,
        )

    def absence_deduction(
        self,
        policy: DeductionPolicy | None,
        absent_days: int,
        rates: EmployeeRates,
        schedule: WorkSchedule | None = None,
    ) -> PolicyDeductionResult:
        """Price absent days.

        Without a policy, each day costs the daily rate, capped by the
        schedule's per-day and per-period maximums, and the result is
        flagged as a fallback.
        """
        if absent_days < 0:
            raise ValidationError("Absent days must not be negative")

        if policy is None:
            per_day, day_capped = _cap(
                rates.daily, schedule.max_deduction_per_day if schedule else None
            )
            total, period_capped = _cap(
                per_day * absent_days,
                schedule.max_deduction_per_period if schedule else None,
            )
            if absent_days:
                logger.debug("No absence policy, charging daily rate for %d days", absent_days)
            return PolicyDeductionResult(
                policy_type=PolicyType.ABSENCE,
                amount=money(total),
                occurrences=absent_days,
                configured=False,
                fallback=True,
                capped=absent_days > 0 and (day_capped or period_capped),
            )

        day_minutes = (
            schedule.required_work_minutes if schedule else self.hours_per_day * 60
        )
        per_day, day_capped = _cap(
            self.occurrence_amount(policy, day_minutes, rates), policy.max_per_day
        )
        total, period_capped = _cap(per_day * absent_days, policy.max_per_period)
        return PolicyDeductionResult(
            policy_type=PolicyType.ABSENCE,
            amount=money(total),
            occurrences=absent_days,
            minutes=day_minutes * absent_days,
            capped=absent_days > 0 and (day_capped or period_capped),
        )
