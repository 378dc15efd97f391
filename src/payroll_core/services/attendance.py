"""Attendance reconciliation across a period and population."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_core.calculators import work_time
from payroll_core.calculators.types import WorkTimeViolation
from payroll_core.models.records import Holiday, PayPeriod, TimeEntry, WorkSchedule
from payroll_core.services.eligibility import EligibilityResult, EmployeeEligibility


class AttendanceStatus(str, Enum):
    """Assigned exactly once per employee and period."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AttendanceMetrics:
    """Lateness and absence facts for one scheduled employee."""

    expected_work_days: int
    present_days: int
    absence_count: int
    late_minutes: int  # after the schedule's grace
    late_instances: int
    undertime_minutes: int
    night_minutes: int = 0
    worked_minutes: int = 0  # clock span minus closed breaks
    below_minimum_days: int = 0  # flexible schedules only
    raw_late_minutes: tuple[int, ...] = ()  # one value per late day, before grace
    holidays_worked: tuple[Holiday, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected_work_days": self.expected_work_days,
            "present_days": self.present_days,
            "absence_count": self.absence_count,
            "late_minutes": self.late_minutes,
            "late_instances": self.late_instances,
            "undertime_minutes": self.undertime_minutes,
            "night_minutes": self.night_minutes,
            "worked_minutes": self.worked_minutes,
            "below_minimum_days": self.below_minimum_days,
        }


@dataclass(frozen=True)
class EmployeeAttendance:
    employee_id: UUID
    status: AttendanceStatus
    entry_count: int
    metrics: AttendanceMetrics | None = None  # None when there is no schedule

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": str(self.employee_id),
            "status": self.status.value,
            "entry_count": self.entry_count,
            "metrics": self.metrics.to_dict() if self.metrics else None,
        }


@dataclass
class AttendanceSummary:
    expected: int
    employees: list[EmployeeAttendance] = field(default_factory=list)
    total_records: int = 0
    employees_with_records: int = 0

    @property
    def eligible_with_records(self) -> int:
        return sum(1 for e in self.employees if e.entry_count > 0)

    @property
    def missing(self) -> int:
        return self.expected - self.eligible_with_records

    @property
    def complete(self) -> bool:
        return self.missing == 0

    @property
    def missing_employee_ids(self) -> list[UUID]:
        return [e.employee_id for e in self.employees if e.entry_count == 0]

    def total(self, attr: str) -> int:
        return sum(getattr(e.metrics, attr) for e in self.employees if e.metrics is not None)

    def _affected(self, attr: str) -> int:
        return sum(
            1 for e in self.employees if e.metrics is not None and getattr(e.metrics, attr) > 0
        )

    @property
    def late_affected_employees(self) -> int:
        return self._affected("late_instances")

    @property
    def absence_affected_employees(self) -> int:
        return self._affected("absence_count")

    def for_employee(self, employee_id: UUID) -> EmployeeAttendance | None:
        return next((e for e in self.employees if e.employee_id == employee_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected_employees": self.expected,
            "employees_with_records": self.eligible_with_records,
            "missing_attendance_employees": self.missing,
            "is_complete": self.complete,
            "total_records": self.total_records,
            "employees_with_any_records": self.employees_with_records,
            "total_late_minutes": self.total("late_minutes"),
            "total_late_instances": self.total("late_instances"),
            "total_undertime_minutes": self.total("undertime_minutes"),
            "total_absences": self.total("absence_count"),
            "late_affected_employees": self.late_affected_employees,
            "absence_affected_employees": self.absence_affected_employees,
            "employees": [e.to_dict() for e in self.employees],
        }


def group_by_employee(entries: Iterable[TimeEntry]) -> dict[UUID, list[TimeEntry]]:
    grouped: dict[UUID, list[TimeEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry.employee_id].append(entry)
    return grouped


class AttendanceReconciler:
    """Aggregates work-time validation across the eligible population."""

    def employee_metrics(
        self,
        schedule: WorkSchedule,
        entries: Sequence[TimeEntry],
        holidays: Sequence[Holiday],
        period: PayPeriod,
    ) -> AttendanceMetrics:
        holiday_dates = {h.date for h in holidays if h.paid_if_not_worked}
        expected_days = [
            d
            for d in work_time.get_work_days_for_period(schedule, period.start, period.end)
            if d not in holiday_dates
        ]

        by_day: dict[date, list[TimeEntry]] = defaultdict(list)
        for entry in entries:
            if entry.is_closed and period.contains(entry.work_date):
                by_day[entry.work_date].append(entry)

        late_minutes = 0
        late_instances = 0
        undertime = 0
        night = 0
        worked = 0
        below_minimum = 0
        raw_late: list[int] = []
        for day, day_entries in sorted(by_day.items()):
            first = min(day_entries, key=lambda e: e.clock_in)
            last_out = max(e.clock_out for e in day_entries)
            day_worked = sum(e.total_worked_minutes for e in day_entries)
            check = work_time.validate(
                schedule, first.clock_in, last_out, work_date=day, worked_minutes=day_worked
            )
            worked += day_worked
            if WorkTimeViolation.BELOW_MINIMUM_HOURS in check.violations:
                below_minimum += 1
            if check.raw_late_minutes > 0:
                raw_late.append(check.raw_late_minutes)
            if check.late_minutes > 0:
                late_minutes += check.late_minutes
                late_instances += 1
            undertime += check.undertime_minutes
            night += sum(
                work_time.night_differential_minutes(schedule, e.clock_in, e.clock_out)
                for e in day_entries
            )

        present = set(by_day)
        return AttendanceMetrics(
            expected_work_days=len(expected_days),
            present_days=len(present),
            absence_count=sum(1 for d in expected_days if d not in present),
            late_minutes=late_minutes,
            late_instances=late_instances,
            undertime_minutes=undertime,
            night_minutes=night,
            worked_minutes=worked,
            below_minimum_days=below_minimum,
            raw_late_minutes=tuple(raw_late),
            holidays_worked=tuple(h for h in holidays if h.date in present),
        )

    def reconcile_employee(
        self,
        eligibility: EmployeeEligibility,
        entries: Sequence[TimeEntry],
        holidays: Sequence[Holiday],
        period: PayPeriod,
    ) -> EmployeeAttendance:
        schedule = eligibility.schedule
        if any(e.is_closed for e in entries):
            status = AttendanceStatus.PRESENT
        elif schedule is not None:
            status = AttendanceStatus.ABSENT
        else:
            status = AttendanceStatus.UNKNOWN

        metrics = None
        if schedule is not None:
            metrics = self.employee_metrics(schedule, entries, holidays, period)
        return EmployeeAttendance(
            employee_id=eligibility.employee.id,
            status=status,
            entry_count=len(entries),
            metrics=metrics,
        )

    def reconcile(
        self,
        eligibility: EligibilityResult,
        entries: Sequence[TimeEntry],
        holidays: Sequence[Holiday],
        period: PayPeriod,
    ) -> AttendanceSummary:
        grouped = group_by_employee(entries)
        eligible = eligibility.eligible
        return AttendanceSummary(
            expected=len(eligible),
            employees=[
                self.reconcile_employee(e, grouped.get(e.employee.id, []), holidays, period)
                for e in eligible
            ],
            total_records=len(entries),
            employees_with_records=len(grouped),
        )
