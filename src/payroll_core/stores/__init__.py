"""Collaborator stores."""

from payroll_core.stores.base import (
    BracketStore,
    CollaboratorUnavailableError,
    Collaborators,
    DeductionPolicyStore,
    EmployeeDirectory,
    HolidayStore,
    OvertimeStore,
    PayrollStore,
    TimeEntryStore,
    TransitionMeta,
    WorkScheduleStore,
)

__all__ = [
    "BracketStore",
    "CollaboratorUnavailableError",
    "Collaborators",
    "DeductionPolicyStore",
    "EmployeeDirectory",
    "HolidayStore",
    "OvertimeStore",
    "PayrollStore",
    "TimeEntryStore",
    "TransitionMeta",
    "WorkScheduleStore",
]
