"""In-memory collaborator stores.

Used by the default application and the tests. Reads return copies of
the seeded lists, so callers cannot mutate store state.
"""

from __future__ import annotations

import asyncio
import weakref
from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Any
from uuid import UUID

from payroll_core.errors import PayrollNotFoundError
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
from payroll_core.services.state_machine import InvalidStateTransitionError, PayrollStatus
from payroll_core.stores.base import Collaborators, PayrollStore, TransitionMeta


class InMemoryEmployeeDirectory:
    def __init__(self, employees: list[Employee] | None = None):
        self.employees = list(employees or [])

    async def list_eligible_pool(
        self, organization_id: UUID, department_id: UUID | None = None
    ) -> list[Employee]:
        return [
            e
            for e in self.employees
            if e.organization_id == organization_id
            and (department_id is None or e.department_id == department_id)
        ]


class InMemoryWorkScheduleStore:
    def __init__(self, schedules: list[WorkSchedule] | None = None):
        self.schedules = {s.employee_id: s for s in schedules or []}

    async def get_by_employee(self, employee_id: UUID) -> WorkSchedule | None:
        return self.schedules.get(employee_id)


class _EmployeeScoped:
    """Filters per-employee rows by the directory's org/department scope."""

    def __init__(self, directory: InMemoryEmployeeDirectory):
        self.directory = directory

    async def _scope(self, organization_id: UUID, department_id: UUID | None) -> set[UUID]:
        pool = await self.directory.list_eligible_pool(organization_id, department_id)
        return {e.id for e in pool}


class InMemoryTimeEntryStore(_EmployeeScoped):
    def __init__(self, directory: InMemoryEmployeeDirectory, entries: list[TimeEntry] | None = None):
        super().__init__(directory)
        self.entries = list(entries or [])

    async def list_by_period(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        start: date,
        end: date,
    ) -> list[TimeEntry]:
        scope = await self._scope(organization_id, department_id)
        return [
            t for t in self.entries if t.employee_id in scope and start <= t.work_date <= end
        ]


class InMemoryOvertimeStore(_EmployeeScoped):
    def __init__(self, directory: InMemoryEmployeeDirectory, requests: list[Overtime] | None = None):
        super().__init__(directory)
        self.requests = list(requests or [])

    async def list_by_period(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        start: date,
        end: date,
    ) -> list[Overtime]:
        scope = await self._scope(organization_id, department_id)
        return [
            o for o in self.requests if o.employee_id in scope and start <= o.work_date <= end
        ]


class InMemoryHolidayStore:
    def __init__(self, holidays: dict[UUID, list[Holiday]] | None = None):
        self.holidays = dict(holidays or {})

    async def list_by_period(self, organization_id: UUID, start: date, end: date) -> list[Holiday]:
        return [h for h in self.holidays.get(organization_id, []) if start <= h.date <= end]


class InMemoryBracketStore:
    def __init__(self, brackets: list[Bracket] | None = None):
        self.brackets = list(brackets or [])

    async def get_tables(self, kind: BracketKind, as_of: date) -> list[Bracket]:
        return [b for b in self.brackets if b.kind == kind and b.is_effective_on(as_of)]


class InMemoryDeductionPolicyStore:
    def __init__(self, policies: list[DeductionPolicy] | None = None):
        self.policies = {(p.organization_id, p.policy_type): p for p in policies or []}

    async def get(self, organization_id: UUID, policy_type: PolicyType) -> DeductionPolicy | None:
        return self.policies.get((organization_id, PolicyType(policy_type)))


class InMemoryPayrollStore:
    """Payroll records keyed by id, with a lock per (employee, period)."""

    def __init__(self, records: list[PayrollRecord] | None = None):
        self.records: dict[UUID, PayrollRecord] = {r.id: r for r in records or []}
        self.logs: dict[UUID, list[PayrollLogEntry]] = defaultdict(list)
        # a lock lives only while some caller holds or waits on it
        self._locks: weakref.WeakValueDictionary[tuple[UUID, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock(self, employee_id: UUID, period: PayPeriod) -> asyncio.Lock:
        key = (employee_id, period.key)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _log(self, record: PayrollRecord, previous_status: str, meta: TransitionMeta) -> None:
        self.logs[record.id].append(
            PayrollLogEntry(
                payroll_id=record.id,
                action=meta.action,
                previous_status=previous_status,
                new_status=record.status,
                reason=meta.reason,
                actor_id=meta.actor_id,
                created_at=meta.at,
            )
        )

    def _require(self, payroll_id: UUID) -> PayrollRecord:
        record = self.records.get(payroll_id)
        if record is None:
            raise PayrollNotFoundError(payroll_id=payroll_id)
        return record

    async def get(self, payroll_id: UUID) -> PayrollRecord | None:
        return self.records.get(payroll_id)

    async def find(self, employee_id: UUID, period: PayPeriod) -> PayrollRecord | None:
        for record in self.records.values():
            if record.employee_id == employee_id and record.period == period:
                return record
        return None

    async def list_by_period(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        period: PayPeriod,
    ) -> list[PayrollRecord]:
        return [
            r
            for r in self.records.values()
            if r.organization_id == organization_id
            and r.period == period
            and (department_id is None or r.department_id == department_id)
        ]

    async def create(self, record: PayrollRecord, meta: TransitionMeta) -> PayrollRecord:
        async with self._lock(record.employee_id, record.period):
            existing = await self.find(record.employee_id, record.period)
            if existing is not None:
                raise InvalidStateTransitionError(
                    existing.status, record.status, "payroll already exists for this period"
                )
            self.records[record.id] = record
            self._log(record, PayrollStatus.DRAFT.value, meta)
            return record

    async def save_computation(
        self,
        payroll_id: UUID,
        expected_status: str,
        amounts: PayrollAmounts,
        meta: TransitionMeta,
    ) -> PayrollRecord:
        current = self._require(payroll_id)
        async with self._lock(current.employee_id, current.period):
            current = self._require(payroll_id)
            if current.status != expected_status:
                raise InvalidStateTransitionError(current.status, PayrollStatus.COMPUTED.value)
            updated = replace(
                current,
                status=PayrollStatus.COMPUTED.value,
                amounts=amounts,
                processed_at=meta.at,
                version=current.version + 1,
            )
            self.records[payroll_id] = updated
            self._log(updated, current.status, meta)
            return updated

    async def transition(
        self,
        payroll_id: UUID,
        from_status: str,
        to_status: str,
        meta: TransitionMeta,
    ) -> PayrollRecord:
        current = self._require(payroll_id)
        async with self._lock(current.employee_id, current.period):
            current = self._require(payroll_id)
            if current.status != from_status:
                raise InvalidStateTransitionError(current.status, to_status)
            changes: dict[str, Any] = {
                "status": PayrollStatus(to_status).value,
                "version": current.version + 1,
            }
            if to_status == PayrollStatus.APPROVED:
                changes.update(approved_at=meta.at, approved_by=meta.actor_id)
            elif to_status == PayrollStatus.RELEASED:
                changes.update(released_at=meta.at, released_by=meta.actor_id)
            elif to_status == PayrollStatus.VOIDED:
                changes.update(voided_at=meta.at, voided_by=meta.actor_id, void_reason=meta.reason)
            updated = replace(current, **changes)
            self.records[payroll_id] = updated
            self._log(updated, current.status, meta)
            return updated

    async def list_logs(self, payroll_id: UUID) -> list[PayrollLogEntry]:
        return list(self.logs.get(payroll_id, []))


def build_memory_collaborators(
    employees: list[Employee] | None = None,
    schedules: list[WorkSchedule] | None = None,
    time_entries: list[TimeEntry] | None = None,
    overtime: list[Overtime] | None = None,
    holidays: dict[UUID, list[Holiday]] | None = None,
    brackets: list[Bracket] | None = None,
    policies: list[DeductionPolicy] | None = None,
    payrolls: list[PayrollRecord] | None = None,
    payroll_store: PayrollStore | None = None,
) -> Collaborators:
    """Wire every in-memory store around one employee directory."""
    directory = InMemoryEmployeeDirectory(employees)
    return Collaborators(
        employees=directory,
        schedules=InMemoryWorkScheduleStore(schedules),
        time_entries=InMemoryTimeEntryStore(directory, time_entries),
        overtime=InMemoryOvertimeStore(directory, overtime),
        holidays=InMemoryHolidayStore(holidays),
        brackets=InMemoryBracketStore(brackets),
        policies=InMemoryDeductionPolicyStore(policies),
        payrolls=payroll_store or InMemoryPayrollStore(payrolls),
    )
