"""Plain records exchanged with collaborator stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from payroll_core.errors import ValidationError

if TYPE_CHECKING:
    from payroll_core.config import CalculationConfig

CENT = Decimal("0.01")
ZERO = Decimal("0")


def money(value: Decimal) -> Decimal:
    """Quantize to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class PayFrequency(str, Enum):
    """Compensation pay frequency."""

    MONTHLY = "MONTHLY"
    SEMI_MONTHLY = "SEMI_MONTHLY"
    BI_WEEKLY = "BI_WEEKLY"
    WEEKLY = "WEEKLY"
    DAILY = "DAILY"
    HOURLY = "HOURLY"


class OvertimeStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class HolidayType(str, Enum):
    REGULAR = "REGULAR"
    SPECIAL_NON_WORKING = "SPECIAL_NON_WORKING"


class BracketKind(str, Enum):
    """Statutory table kinds."""

    TAX = "TAX"
    HEALTH = "HEALTH"
    SOCIAL = "SOCIAL"
    HOUSING = "HOUSING"


class PolicyType(str, Enum):
    LATE = "LATE"
    ABSENCE = "ABSENCE"


class DeductionMethod(str, Enum):
    HOURLY_RATE = "HOURLY_RATE"
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"


@dataclass(frozen=True)
class PayPeriod:
    """Inclusive cutoff period."""

    start: date
    end: date

    def validate(self) -> PayPeriod:
        if self.start > self.end:
            raise ValidationError(
                f"Period start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )
        return self

    @property
    def key(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class Compensation:
    id: UUID
    employee_id: UUID
    base_salary: Decimal
    effective_date: date
    pay_frequency: PayFrequency = PayFrequency.MONTHLY

    def monthly_amount(self, config: CalculationConfig) -> Decimal:
        """Normalize the base salary to a monthly gross."""
        freq = self.pay_frequency
        if freq == PayFrequency.MONTHLY:
            return self.base_salary
        if freq == PayFrequency.SEMI_MONTHLY:
            return self.base_salary * 2
        if freq == PayFrequency.BI_WEEKLY:
            return self.base_salary * 26 / 12
        if freq == PayFrequency.WEEKLY:
            return self.base_salary * 52 / 12
        if freq == PayFrequency.DAILY:
            return self.base_salary * config.working_days
        return self.base_salary * config.hours * config.working_days

    @property
    def periods_per_month(self) -> Decimal:
        """How many pay periods of this frequency fall in one month."""
        return {
            PayFrequency.MONTHLY: Decimal("1"),
            PayFrequency.SEMI_MONTHLY: Decimal("2"),
            PayFrequency.BI_WEEKLY: Decimal("26") / 12,
            PayFrequency.WEEKLY: Decimal("52") / 12,
        }.get(self.pay_frequency, Decimal("2"))  # daily and hourly earners use semi-monthly cutoffs


@dataclass
class Employee:
    id: UUID
    organization_id: UUID
    first_name: str
    last_name: str
    employee_number: str = ""
    department_id: UUID | None = None
    department_name: str | None = None
    compensations: list[Compensation] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def current_compensation(self, as_of: date) -> Compensation | None:
        """Latest compensation effective on or before as_of."""
        candidates = [c for c in self.compensations if c.effective_date <= as_of]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.effective_date)


@dataclass(frozen=True)
class WorkSchedule:
    """Work schedule attached to a compensation."""

    id: UUID
    employee_id: UUID
    compensation_id: UUID | None = None
    work_days: frozenset[int] = frozenset({0, 1, 2, 3, 4})  # Monday=0
    default_start: time | None = time(8, 0)
    default_end: time | None = time(17, 0)
    grace_period_minutes: int = 0
    overtime_rate: Decimal = Decimal("1.25")
    holiday_rate: Decimal | None = None  # overrides Holiday.pay_multiplier for REGULAR
    special_holiday_rate: Decimal | None = None  # same for SPECIAL_NON_WORKING
    night_diff_rate: Decimal = Decimal("0.10")
    night_shift_start: time = time(22, 0)
    night_shift_end: time = time(6, 0)
    monthly_rate: Decimal | None = None
    daily_rate: Decimal | None = None
    hourly_rate: Decimal | None = None
    required_work_minutes: int = 480
    max_deduction_per_day: Decimal | None = None
    max_deduction_per_period: Decimal | None = None
    allow_late_deduction: bool = True
    is_flexible: bool = False
    min_hours_per_day: Decimal | None = None  # flexible schedules only

    def is_work_day(self, day: date) -> bool:
        return day.weekday() in self.work_days

    def holiday_multiplier(self, holiday: Holiday) -> Decimal:
        """Pay multiplier for working the holiday; schedule rates win when set."""
        if holiday.type == HolidayType.SPECIAL_NON_WORKING:
            rate = self.special_holiday_rate
        else:
            rate = self.holiday_rate
        return holiday.pay_multiplier if rate is None else rate


@dataclass(frozen=True)
class TimeBreak:
    start: datetime
    end: datetime | None = None


@dataclass(frozen=True)
class TimeEntry:
    id: UUID
    employee_id: UUID
    work_date: date
    clock_in: datetime
    clock_out: datetime | None = None
    breaks: tuple[TimeBreak, ...] = ()

    @property
    def is_closed(self) -> bool:
        return self.clock_out is not None

    @property
    def total_worked_minutes(self) -> int:
        if self.clock_out is None:
            return 0
        span = self.clock_out - self.clock_in
        for b in self.breaks:
            if b.end is not None:
                span -= b.end - b.start
        return max(0, int(span.total_seconds() // 60))


@dataclass(frozen=True)
class Overtime:
    id: UUID
    employee_id: UUID
    work_date: date
    requested_minutes: int
    status: OvertimeStatus = OvertimeStatus.PENDING
    approved_minutes: int = 0
    time_entry_id: UUID | None = None


@dataclass(frozen=True)
class Holiday:
    date: date
    name: str
    type: HolidayType = HolidayType.REGULAR
    pay_multiplier: Decimal = Decimal("2.00")
    paid_if_not_worked: bool = True  # False makes an unworked holiday an expected work day


@dataclass(frozen=True)
class Bracket:
    """One range of a statutory rate table.

    Range is [min_amount, max_amount); max_amount None means unbounded.
    base_floor/base_ceiling clamp the computation base, not the output.
    """

    kind: BracketKind
    min_amount: Decimal
    max_amount: Decimal | None
    rate: Decimal
    effective_from: date
    effective_to: date | None = None
    base_amount: Decimal = ZERO
    employer_rate: Decimal = ZERO
    base_floor: Decimal | None = None
    base_ceiling: Decimal | None = None
    max_contribution: Decimal | None = None

    def is_effective_on(self, as_of: date) -> bool:
        if self.effective_from > as_of:
            return False
        return self.effective_to is None or self.effective_to >= as_of

    def contains(self, amount: Decimal) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount < self.max_amount


@dataclass(frozen=True)
class DeductionPolicy:
    id: UUID
    organization_id: UUID
    policy_type: PolicyType
    method: DeductionMethod
    grace_period_minutes: int = 0
    minimum_minutes: int = 0
    fixed_amount: Decimal = ZERO
    rate: Decimal = ZERO  # fraction of the daily rate
    multiplier: Decimal = Decimal("1")
    max_per_day: Decimal | None = None
    max_per_period: Decimal | None = None
    name: str = ""


@dataclass(frozen=True)
class PayrollAmounts:
    """Computed money fields of a payroll record."""

    gross_pay: Decimal = ZERO
    taxable_income: Decimal = ZERO
    tax: Decimal = ZERO
    health: Decimal = ZERO
    social: Decimal = ZERO
    housing: Decimal = ZERO
    late_deduction: Decimal = ZERO
    absence_deduction: Decimal = ZERO

    @property
    def total_deductions(self) -> Decimal:
        return (
            self.tax
            + self.health
            + self.social
            + self.housing
            + self.late_deduction
            + self.absence_deduction
        )

    @property
    def net_pay(self) -> Decimal:
        return self.gross_pay - self.total_deductions


@dataclass(frozen=True)
class PayrollRecord:
    """Persisted payroll for one employee and period."""

    employee_id: UUID
    organization_id: UUID
    period_start: date
    period_end: date
    status: str
    id: UUID = field(default_factory=uuid4)
    department_id: UUID | None = None
    amounts: PayrollAmounts = field(default_factory=PayrollAmounts)
    void_reason: str | None = None
    processed_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    released_at: datetime | None = None
    released_by: UUID | None = None
    voided_at: datetime | None = None
    voided_by: UUID | None = None
    version: int = 1

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(self.period_start, self.period_end)

    def to_dict(self) -> dict[str, Any]:
        a = self.amounts
        return {
            "id": str(self.id),
            "employee_id": str(self.employee_id),
            "organization_id": str(self.organization_id),
            "department_id": str(self.department_id) if self.department_id else None,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "status": self.status,
            "gross_pay": str(a.gross_pay),
            "total_deductions": str(a.total_deductions),
            "net_pay": str(a.net_pay),
            "void_reason": self.void_reason,
            "version": self.version,
        }


@dataclass(frozen=True)
class PayrollLogEntry:
    payroll_id: UUID
    action: str
    previous_status: str
    new_status: str
    reason: str | None = None
    actor_id: UUID | None = None
    created_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)
