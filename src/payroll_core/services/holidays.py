"""Schedule-aware holiday impact."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from payroll_core.models.records import Holiday, HolidayType
from payroll_core.services.eligibility import EmployeeEligibility


@dataclass(frozen=True)
class HolidayImpact:
    holiday: Holiday
    affected_employees: int | None  # None when no schedule information exists
    unknown_employees: int

    def to_dict(self) -> dict[str, Any]:
        h = self.holiday
        return {
            "date": h.date.isoformat(),
            "name": h.name,
            "type": h.type.value,
            "pay_multiplier": str(h.pay_multiplier),
            "affected_employees": self.affected_employees,
            "unknown_employees": self.unknown_employees,
        }


@dataclass
class HolidaySummary:
    impacts: list[HolidayImpact] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.impacts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_holidays": self.total,
            "regular": sum(1 for i in self.impacts if i.holiday.type == HolidayType.REGULAR),
            "special": sum(
                1 for i in self.impacts if i.holiday.type == HolidayType.SPECIAL_NON_WORKING
            ),
            "holidays": [i.to_dict() for i in self.impacts],
        }


def holiday_impact(
    holidays: Sequence[Holiday],
    employees: Sequence[EmployeeEligibility],
) -> HolidaySummary:
    """An employee is affected by a holiday only when it falls on one of their work days."""
    scheduled = [e.schedule for e in employees if e.schedule is not None]
    unknown = len(employees) - len(scheduled)

    impacts = []
    for holiday in sorted(holidays, key=lambda h: h.date):
        affected = None
        if scheduled:
            affected = sum(1 for s in scheduled if s.is_work_day(holiday.date))
        impacts.append(HolidayImpact(holiday, affected, unknown))
    return HolidaySummary(impacts)
