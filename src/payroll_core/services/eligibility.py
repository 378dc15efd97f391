"""Eligibility partition of the employee pool."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from payroll_core.errors import ConfigurationGap
from payroll_core.models.records import Compensation, Employee, WorkSchedule
from payroll_core.stores.base import WorkScheduleStore

logger = logging.getLogger(__name__)


class EligibilityClass(str, Enum):
    ELIGIBLE_WITH_SCHEDULE = "ELIGIBLE_WITH_SCHEDULE"
    ELIGIBLE_WITHOUT_SCHEDULE = "ELIGIBLE_WITHOUT_SCHEDULE"
    INELIGIBLE_MISSING_SALARY = "INELIGIBLE_MISSING_SALARY"


@dataclass(frozen=True)
class EmployeeEligibility:
    employee: Employee
    classification: EligibilityClass
    compensation: Compensation | None = None
    schedule: WorkSchedule | None = None

    @property
    def is_eligible(self) -> bool:
        return self.classification != EligibilityClass.INELIGIBLE_MISSING_SALARY

    @property
    def has_schedule(self) -> bool:
        return self.schedule is not None

    def to_dict(self) -> dict[str, Any]:
        e = self.employee
        return {
            "employee_id": str(e.id),
            "employee_number": e.employee_number,
            "name": e.full_name,
            "department": e.department_name,
            "classification": self.classification.value,
        }


@dataclass
class EligibilityResult:
    """Each employee lands in exactly one class."""

    employees: list[EmployeeEligibility] = field(default_factory=list)
    gaps: list[ConfigurationGap] = field(default_factory=list)

    def _of(self, classification: EligibilityClass) -> list[EmployeeEligibility]:
        return [e for e in self.employees if e.classification == classification]

    @property
    def total(self) -> int:
        return len(self.employees)

    @property
    def eligible(self) -> list[EmployeeEligibility]:
        return [e for e in self.employees if e.is_eligible]

    @property
    def with_schedule(self) -> list[EmployeeEligibility]:
        return self._of(EligibilityClass.ELIGIBLE_WITH_SCHEDULE)

    @property
    def without_schedule(self) -> list[EmployeeEligibility]:
        return self._of(EligibilityClass.ELIGIBLE_WITHOUT_SCHEDULE)

    @property
    def ineligible(self) -> list[EmployeeEligibility]:
        return self._of(EligibilityClass.INELIGIBLE_MISSING_SALARY)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_employees": self.total,
            "eligible_count": len(self.eligible),
            "eligible_with_schedule": len(self.with_schedule),
            "eligible_without_schedule": len(self.without_schedule),
            "ineligible_count": len(self.ineligible),
            "ineligible_employees": [e.to_dict() for e in self.ineligible],
            "employees_without_schedule": [e.to_dict() for e in self.without_schedule],
        }


class EligibilityEvaluator:
    """Classifies employees by compensation and schedule.

    Missing salary makes an employee ineligible. A missing schedule only
    produces a warning. Store failures propagate.
    """

    def __init__(self, schedules: WorkScheduleStore, concurrency: int = 8):
        self.schedules = schedules
        self._semaphore = asyncio.Semaphore(concurrency)

    async def _classify(self, employee: Employee, as_of: date) -> EmployeeEligibility:
        compensation = employee.current_compensation(as_of)
        if compensation is None:
            return EmployeeEligibility(employee, EligibilityClass.INELIGIBLE_MISSING_SALARY)

        async with self._semaphore:
            schedule = await self.schedules.get_by_employee(employee.id)

        if schedule is None:
            return EmployeeEligibility(
                employee, EligibilityClass.ELIGIBLE_WITHOUT_SCHEDULE, compensation
            )
        return EmployeeEligibility(
            employee, EligibilityClass.ELIGIBLE_WITH_SCHEDULE, compensation, schedule
        )

    async def evaluate(self, employees: Sequence[Employee], as_of: date) -> EligibilityResult:
        classified = await asyncio.gather(*(self._classify(e, as_of) for e in employees))

        result = EligibilityResult(employees=list(classified))
        for item in result.ineligible:
            result.gaps.append(
                ConfigurationGap(
                    kind="missing_compensation",
                    message=f"{item.employee.full_name} has no compensation effective {as_of.isoformat()}",
                    employee_id=item.employee.id,
                )
            )
        for item in result.without_schedule:
            result.gaps.append(
                ConfigurationGap(
                    kind="missing_schedule",
                    message=f"{item.employee.full_name} has no work schedule",
                    employee_id=item.employee.id,
                )
            )
        if result.gaps:
            logger.warning(
                "Eligibility found %d configuration gaps among %d employees",
                len(result.gaps),
                result.total,
            )
        return result
