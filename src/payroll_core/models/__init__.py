"""Records and ORM models."""

from payroll_core.models.base import Base, TimestampMixin
from payroll_core.models.payroll import Payroll, PayrollLog
from payroll_core.models.records import (
    Bracket,
    BracketKind,
    Compensation,
    DeductionMethod,
    DeductionPolicy,
    Employee,
    Holiday,
    HolidayType,
    Overtime,
    OvertimeStatus,
    PayFrequency,
    PayPeriod,
    PayrollAmounts,
    PayrollLogEntry,
    PayrollRecord,
    PolicyType,
    TimeBreak,
    TimeEntry,
    WorkSchedule,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Payroll",
    "PayrollLog",
    "Bracket",
    "BracketKind",
    "Compensation",
    "DeductionMethod",
    "DeductionPolicy",
    "Employee",
    "Holiday",
    "HolidayType",
    "Overtime",
    "OvertimeStatus",
    "PayFrequency",
    "PayPeriod",
    "PayrollAmounts",
    "PayrollLogEntry",
    "PayrollRecord",
    "PolicyType",
    "TimeBreak",
    "TimeEntry",
    "WorkSchedule",
]
