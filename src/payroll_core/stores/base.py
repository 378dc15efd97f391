"""Collaborator protocols and shared store types.

The summary and status services only talk to these protocols. In-memory
implementations live in ``stores.memory``; the payroll store also has a
SQLAlchemy implementation in ``stores.sql``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from payroll_core.errors import PayrollCoreError
from payroll_core.models.records import (
    Bracket,
    BracketKind,
    DeductionPolicy,
    Employee,
    Holiday,
    Overtime,
    PayPeriod,
    PayrollAmounts,
    PayrollLogEntry,
    PayrollRecord,
    PolicyType,
    TimeEntry,
    WorkSchedule,
)


class CollaboratorUnavailableError(PayrollCoreError):
    """Raised when a collaborator store cannot be reached.

    Never to be read as "no data": callers let it propagate.
    """

    code = "COLLABORATOR_UNAVAILABLE"

    def __init__(self, collaborator: str, detail: str = ""):
        self.collaborator = collaborator
        self.detail = detail
        msg = f"{collaborator} is unavailable"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


@dataclass(frozen=True)
class TransitionMeta:
    """Who did what, when, and why, for one status change."""

    action: str
    at: datetime
    actor_id: UUID | None = None
    reason: str | None = None


class EmployeeDirectory(Protocol):
    async def list_eligible_pool(
        self, organization_id: UUID, department_id: UUID | None = None
    ) -> list[Employee]:
        """Active employees in scope, with their compensation history."""
        ...


class WorkScheduleStore(Protocol):
    async def get_by_employee(self, employee_id: UUID) -> WorkSchedule | None:
        """The employee's schedule, or None when none is configured."""
        ...


class TimeEntryStore(Protocol):
    async def list_by_period(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        start: date,
        end: date,
    ) -> list[TimeEntry]: ...


class OvertimeStore(Protocol):
    async def list_by_period(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        start: date,
        end: date,
    ) -> list[Overtime]: ...


class HolidayStore(Protocol):
    async def list_by_period(
        self, organization_id: UUID, start: date, end: date
    ) -> list[Holiday]: ...


class BracketStore(Protocol):
    async def get_tables(self, kind: BracketKind, as_of: date) -> list[Bracket]:
        """All brackets of a kind that may be effective on as_of."""
        ...


class DeductionPolicyStore(Protocol):
    async def get(
        self, organization_id: UUID, policy_type: PolicyType
    ) -> DeductionPolicy | None: ...


class PayrollStore(Protocol):
    """Persistence for payroll records. The only mutating collaborator.

    Mutations are compare-and-set on status: a stale expected status raises
    InvalidStateTransitionError carrying the current status.
    """

    async def get(self, payroll_id: UUID) -> PayrollRecord | None: ...

    async def find(self, employee_id: UUID, period: PayPeriod) -> PayrollRecord | None: ...

    async def list_by_period(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        period: PayPeriod,
    ) -> list[PayrollRecord]: ...

    async def create(self, record: PayrollRecord, meta: TransitionMeta) -> PayrollRecord:
        """Insert a new record; conflicts if the employee already has one for the period."""
        ...

    async def save_computation(
        self,
        payroll_id: UUID,
        expected_status: str,
        amounts: PayrollAmounts,
        meta: TransitionMeta,
    ) -> PayrollRecord: ...

    async def transition(
        self,
        payroll_id: UUID,
        from_status: str,
        to_status: str,
        meta: TransitionMeta,
    ) -> PayrollRecord: ...

    async def list_logs(self, payroll_id: UUID) -> list[PayrollLogEntry]: ...


@dataclass(frozen=True)
class Collaborators:
    """Every store the services need, injected at construction."""

    employees: EmployeeDirectory
    schedules: WorkScheduleStore
    time_entries: TimeEntryStore
    overtime: OvertimeStore
    holidays: HolidayStore
    brackets: BracketStore
    policies: DeductionPolicyStore
    payrolls: PayrollStore
