"""Tests for attendance reconciliation."""

from dataclasses import replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest

from payroll_core.models.records import Holiday, TimeBreak
from payroll_core.services.attendance import AttendanceReconciler, AttendanceStatus
from payroll_core.services.eligibility import EligibilityEvaluator
from payroll_core.stores.memory import InMemoryWorkScheduleStore

pytestmark = pytest.mark.asyncio


def weekdays(start: date, count: int) -> list[date]:
    days = []
    current = start
    while len(days) < count:
        if current.weekday() < 5:
            days.append(current)
        current += timedelta(days=1)
    return days


class TestAttendanceReconciler:
    """Test per-employee metrics and population totals."""

    async def _eligibility(self, employees, schedules, period):
        store = InMemoryWorkScheduleStore(schedules)
        return await EligibilityEvaluator(store).evaluate(employees, period.end)

    async def test_missing_counts_employees_without_entries(
        self, make_employee, make_schedule, make_entry, period
    ):
        """missing = eligible count minus eligible employees with any entry."""
        present = make_employee()
        absent = make_employee()
        unscheduled = make_employee()
        unpaid = make_employee(salary=None)
        eligibility = await self._eligibility(
            [present, absent, unscheduled, unpaid],
            [make_schedule(present), make_schedule(absent)],
            period,
        )
        entries = [make_entry(present, d) for d in weekdays(period.start, 8)]
        # entries of an ineligible employee count toward totals only
        entries.append(make_entry(unpaid, period.start))

        summary = AttendanceReconciler().reconcile(eligibility, entries, [], period)

        assert summary.expected == 3
        assert summary.eligible_with_records == 1
        assert summary.missing == 2
        assert summary.complete is False
        assert summary.total_records == 9
        assert summary.employees_with_records == 2
        assert set(summary.missing_employee_ids) == {absent.id, unscheduled.id}

    async def test_status_assigned_once(self, make_employee, make_schedule, make_entry, period):
        present = make_employee()
        absent = make_employee()
        unscheduled = make_employee()
        eligibility = await self._eligibility(
            [present, absent, unscheduled], [make_schedule(present), make_schedule(absent)], period
        )
        summary = AttendanceReconciler().reconcile(
            eligibility, [make_entry(present, period.start)], [], period
        )

        assert summary.for_employee(present.id).status == AttendanceStatus.PRESENT
        assert summary.for_employee(absent.id).status == AttendanceStatus.ABSENT
        assert summary.for_employee(unscheduled.id).status == AttendanceStatus.UNKNOWN

    async def test_absence_count(self, make_employee, make_schedule, make_entry, period):
        employee = make_employee()
        eligibility = await self._eligibility([employee], [make_schedule(employee)], period)
        entries = [make_entry(employee, d) for d in weekdays(period.start, 8)]

        metrics = AttendanceReconciler().reconcile(
            eligibility, entries, [], period
        ).for_employee(employee.id).metrics

        assert metrics.expected_work_days == 10
        assert metrics.present_days == 8
        assert metrics.absence_count == 2

    async def test_no_schedule_reports_none(self, make_employee, make_entry, period):
        """Without a schedule there is no meaningful absence count."""
        employee = make_employee()
        eligibility = await self._eligibility([employee], [], period)

        result = AttendanceReconciler().reconcile(
            eligibility, [make_entry(employee, period.start)], [], period
        ).for_employee(employee.id)

        assert result.status == AttendanceStatus.PRESENT
        assert result.metrics is None

    async def test_holidays_are_not_absences(self, make_employee, make_schedule, period):
        employee = make_employee()
        eligibility = await self._eligibility([employee], [make_schedule(employee)], period)
        holiday = Holiday(date=date(2024, 3, 8), name="Founders Day")

        metrics = AttendanceReconciler().reconcile(
            eligibility, [], [holiday], period
        ).for_employee(employee.id).metrics

        assert metrics.expected_work_days == 9
        assert metrics.absence_count == 9

    async def test_unpaid_holiday_is_expected(self, make_employee, make_schedule, period):
        """A holiday not paid when unworked stays an expected work day."""
        employee = make_employee()
        eligibility = await self._eligibility([employee], [make_schedule(employee)], period)
        holiday = Holiday(date=date(2024, 3, 8), name="Town Fiesta", paid_if_not_worked=False)

        metrics = AttendanceReconciler().reconcile(
            eligibility, [], [holiday], period
        ).for_employee(employee.id).metrics

        assert metrics.expected_work_days == 10
        assert metrics.absence_count == 10

    async def test_lateness_and_undertime(self, make_employee, make_schedule, make_entry, period):
        employee = make_employee()
        schedule = make_schedule(employee, grace_period_minutes=5)
        eligibility = await self._eligibility([employee], [schedule], period)
        days = weekdays(period.start, 3)
        entries = [
            make_entry(employee, days[0], start=time(8, 20)),
            make_entry(employee, days[1], start=time(8, 4)),
            make_entry(employee, days[2], end=time(16, 30)),
        ]

        metrics = AttendanceReconciler().reconcile(
            eligibility, entries, [], period
        ).for_employee(employee.id).metrics

        assert metrics.late_minutes == 15
        assert metrics.late_instances == 1
        # raw lateness is kept, including the day inside the grace
        assert metrics.raw_late_minutes == (20, 4)
        assert metrics.undertime_minutes == 30

    async def test_zero_lateness(self, make_employee, make_schedule, make_entry, period):
        employee = make_employee()
        eligibility = await self._eligibility([employee], [make_schedule(employee)], period)
        entries = [make_entry(employee, d) for d in weekdays(period.start, 10)]

        summary = AttendanceReconciler().reconcile(eligibility, entries, [], period)
        metrics = summary.for_employee(employee.id).metrics

        assert metrics.late_minutes == 0
        assert metrics.raw_late_minutes == ()
        assert summary.complete is True

    async def test_affected_employee_counts(self, make_employee, make_schedule, make_entry, period):
        punctual, late, absent = make_employee(), make_employee(), make_employee()
        employees = [punctual, late, absent]
        eligibility = await self._eligibility(
            employees, [make_schedule(e) for e in employees], period
        )
        days = weekdays(period.start, 10)
        entries = [make_entry(punctual, d) for d in days]
        entries += [make_entry(late, days[0], start=time(8, 30))]
        entries += [make_entry(late, d) for d in days[1:]]

        summary = AttendanceReconciler().reconcile(eligibility, entries, [], period)

        assert summary.late_affected_employees == 1
        assert summary.absence_affected_employees == 1
        data = summary.to_dict()
        assert data["late_affected_employees"] == 1
        assert data["absence_affected_employees"] == 1
        assert data["total_absences"] == 10

    async def test_worked_minutes_subtract_breaks(
        self, make_employee, make_schedule, make_entry, period
    ):
        """Flexible days under the minimum are counted from worked minutes."""
        employee = make_employee()
        schedule = make_schedule(employee, is_flexible=True, min_hours_per_day=Decimal("8"))
        eligibility = await self._eligibility([employee], [schedule], period)
        days = weekdays(period.start, 2)
        lunch = TimeBreak(
            start=datetime.combine(days[0], time(12, 0)),
            end=datetime.combine(days[0], time(13, 0)),
        )
        entries = [
            replace(make_entry(employee, days[0]), breaks=(lunch,)),
            make_entry(employee, days[1], end=time(15, 0)),
        ]

        metrics = AttendanceReconciler().reconcile(
            eligibility, entries, [], period
        ).for_employee(employee.id).metrics

        # 9h less a 1h break, then 7h
        assert metrics.worked_minutes == 900
        assert metrics.below_minimum_days == 1

    async def test_open_entries_do_not_count_as_present(
        self, make_employee, make_schedule, make_entry, period
    ):
        employee = make_employee()
        eligibility = await self._eligibility([employee], [make_schedule(employee)], period)
        open_entry = make_entry(employee, period.start, end=None)

        result = AttendanceReconciler().reconcile(
            eligibility, [open_entry], [], period
        ).for_employee(employee.id)

        assert result.entry_count == 1
        assert result.status == AttendanceStatus.ABSENT
        assert result.metrics.present_days == 0
