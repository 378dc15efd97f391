"""Clock-in/out validation against a work schedule."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from payroll_core.calculators.types import WorkTimeValidation, WorkTimeViolation
from payroll_core.models.records import WorkSchedule


def _whole_minutes(delta: timedelta) -> int:
    return max(0, int(delta.total_seconds() // 60))


def _at(day: date, moment: time, like: datetime) -> datetime:
    return datetime.combine(day, moment, tzinfo=like.tzinfo)


def validate(
    schedule: WorkSchedule,
    clock_in: datetime,
    clock_out: datetime | None = None,
    work_date: date | None = None,
    grace_minutes: int | None = None,
    worked_minutes: int | None = None,
) -> WorkTimeValidation:
    """Compare one clock-in/out pair with the scheduled start and end.

    Lateness is measured from the scheduled start and then reduced by the
    grace period (the schedule's unless grace_minutes overrides it).
    Undertime is measured against the scheduled end; an open entry has none.
    A flexible schedule with min_hours_per_day also checks the minutes
    worked, which default to the clock span.
    """
    work_date = work_date or clock_in.date()
    grace = schedule.grace_period_minutes if grace_minutes is None else grace_minutes
    is_work_day = schedule.is_work_day(work_date)
    violations: list[WorkTimeViolation] = []

    raw_late = 0
    undertime = 0
    if schedule.default_start is not None:
        scheduled_start = _at(work_date, schedule.default_start, clock_in)
        raw_late = _whole_minutes(clock_in - scheduled_start)

        if schedule.default_end is not None and clock_out is not None:
            scheduled_end = _at(work_date, schedule.default_end, clock_in)
            if scheduled_end <= scheduled_start:
                scheduled_end += timedelta(days=1)
            undertime = _whole_minutes(scheduled_end - clock_out)

    late = max(0, raw_late - grace)

    if not is_work_day:
        violations.append(WorkTimeViolation.NOT_A_WORK_DAY)
    if late > 0:
        violations.append(WorkTimeViolation.LATE)
    if undertime > 0:
        violations.append(WorkTimeViolation.UNDERTIME)
    if clock_out is None:
        violations.append(WorkTimeViolation.OPEN_ENTRY)
    elif schedule.is_flexible and schedule.min_hours_per_day is not None:
        if worked_minutes is None:
            worked_minutes = _whole_minutes(clock_out - clock_in)
        if worked_minutes < schedule.min_hours_per_day * 60:
            violations.append(WorkTimeViolation.BELOW_MINIMUM_HOURS)

    return WorkTimeValidation(
        raw_late_minutes=raw_late,
        late_minutes=late,
        undertime_minutes=undertime,
        is_work_day=is_work_day,
        violations=tuple(violations),
    )


def get_work_days_for_period(schedule: WorkSchedule, start: date, end: date) -> list[date]:
    """Every date in [start, end] whose weekday the schedule works."""
    days = []
    current = start
    while current <= end:
        if schedule.is_work_day(current):
            days.append(current)
        current += timedelta(days=1)
    return days


def night_differential_minutes(
    schedule: WorkSchedule,
    clock_in: datetime,
    clock_out: datetime | None,
) -> int:
    """Minutes of the shift that fall inside the night window."""
    if clock_out is None or clock_out <= clock_in:
        return 0

    total = timedelta()
    day = clock_in.date() - timedelta(days=1)
    while day <= clock_out.date():
        window_start = _at(day, schedule.night_shift_start, clock_in)
        window_end = _at(day, schedule.night_shift_end, clock_in)
        if window_end <= window_start:
            window_end += timedelta(days=1)
        overlap = min(clock_out, window_end) - max(clock_in, window_start)
        if overlap > timedelta():
            total += overlap
        day += timedelta(days=1)
    return _whole_minutes(total)
