"""Tests for overtime aggregation and holiday impact."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from payroll_core.models.records import Holiday, HolidayType, Overtime, OvertimeStatus
from payroll_core.services.eligibility import EligibilityClass, EmployeeEligibility
from payroll_core.services.holidays import holiday_impact
from payroll_core.services.overtime import aggregate_overtime


def request(employee_id, status, requested=60, approved=0):
    return Overtime(
        id=uuid4(),
        employee_id=employee_id,
        work_date=date(2024, 3, 5),
        requested_minutes=requested,
        status=status,
        approved_minutes=approved,
    )


class TestAggregateOvertime:
    """Test counts by approval status."""

    def test_counts_by_status(self):
        alice, bob = uuid4(), uuid4()
        summary = aggregate_overtime(
            [
                request(alice, OvertimeStatus.APPROVED, 120, 90),
                request(alice, OvertimeStatus.APPROVED, 60, 60),
                request(bob, OvertimeStatus.PENDING, 30),
                request(bob, OvertimeStatus.REJECTED, 45),
            ]
        )

        assert summary.total_requests == 4
        assert summary.approved == 2
        assert summary.pending == 1
        assert summary.rejected == 1
        assert summary.approved_minutes == 150
        assert summary.requested_minutes == 255
        assert summary.approved_minutes_by_employee == {alice: 150}

    def test_rejected_is_not_pending(self):
        """Rejected requests never count as approved or pending."""
        summary = aggregate_overtime([request(uuid4(), OvertimeStatus.REJECTED)])

        assert summary.approved == 0
        assert summary.pending == 0
        assert summary.approved_minutes == 0

    def test_empty(self):
        summary = aggregate_overtime([])
        assert summary.to_dict()["approved_hours"] == 0


class TestHolidayImpact:
    """Test schedule-aware holiday impact."""

    def _eligible(self, employee, schedule=None):
        classification = (
            EligibilityClass.ELIGIBLE_WITH_SCHEDULE
            if schedule is not None
            else EligibilityClass.ELIGIBLE_WITHOUT_SCHEDULE
        )
        return EmployeeEligibility(employee, classification, employee.compensations[0], schedule)

    def test_only_scheduled_work_days_are_affected(self, make_employee, make_schedule):
        weekday_worker = make_employee()
        weekend_worker = make_employee()
        employees = [
            self._eligible(weekday_worker, make_schedule(weekday_worker)),
            self._eligible(
                weekend_worker, make_schedule(weekend_worker, work_days=frozenset({5, 6}))
            ),
        ]
        friday = Holiday(date=date(2024, 3, 8), name="Founders Day")

        impact = holiday_impact([friday], employees).impacts[0]

        assert impact.affected_employees == 1
        assert impact.unknown_employees == 0

    def test_no_schedules_is_unknown(self, make_employee):
        """Without schedules the affected count is unknown, not everyone."""
        employees = [self._eligible(make_employee()), self._eligible(make_employee())]
        impact = holiday_impact([Holiday(date=date(2024, 3, 8), name="Founders Day")], employees)

        assert impact.impacts[0].affected_employees is None
        assert impact.impacts[0].unknown_employees == 2

    def test_summary_counts_types(self, make_employee, make_schedule):
        employee = make_employee()
        employees = [self._eligible(employee, make_schedule(employee))]
        holidays = [
            Holiday(
                date=date(2024, 3, 12),
                name="Local Festival",
                type=HolidayType.SPECIAL_NON_WORKING,
                pay_multiplier=Decimal("1.30"),
            ),
            Holiday(date=date(2024, 3, 8), name="Founders Day"),
        ]

        summary = holiday_impact(holidays, employees).to_dict()

        assert summary["total_holidays"] == 2
        assert summary["regular"] == 1
        assert summary["special"] == 1
        assert [h["date"] for h in summary["holidays"]] == ["2024-03-08", "2024-03-12"]
