"""Payroll service - drives payroll records through their lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from payroll_core.calculators.employee_payroll import EmployeePayroll, EmployeePayrollCalculator
from payroll_core.config import CalculationConfig
from payroll_core.errors import (
    ConfigurationGapError,
    PayrollCoreError,
    PayrollNotFoundError,
    ValidationError,
)
from payroll_core.models.records import (
    Bracket,
    BracketKind,
    DeductionPolicy,
    PayPeriod,
    PayrollLogEntry,
    PayrollRecord,
    PolicyType,
)
from payroll_core.services.attendance import AttendanceReconciler, EmployeeAttendance
from payroll_core.services.eligibility import EligibilityEvaluator, EmployeeEligibility
from payroll_core.services.overtime import aggregate_overtime
from payroll_core.services.state_machine import (
    InvalidStateTransitionError,
    PayrollAction,
    PayrollStateMachine,
    PayrollStatus,
)
from payroll_core.stores.base import BracketStore, Collaborators, TransitionMeta

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one item in a bulk transition."""

    employee_id: UUID
    success: bool
    payroll: PayrollRecord | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": str(self.employee_id),
            "success": self.success,
            "payroll": self.payroll.to_dict() if self.payroll else None,
            "error": self.error,
            "error_code": self.error_code,
        }


async def load_bracket_tables(
    brackets: BracketStore, as_of: date
) -> dict[BracketKind, list[Bracket]]:
    kinds = list(BracketKind)
    tables = await asyncio.gather(*(brackets.get_tables(kind, as_of) for kind in kinds))
    return dict(zip(kinds, tables))


def compute_employee_payroll(
    calculator: EmployeePayrollCalculator,
    eligibility: EmployeeEligibility,
    attendance: EmployeeAttendance,
    approved_overtime_minutes: int,
    tables: dict[BracketKind, list[Bracket]],
    late_policy: DeductionPolicy | None,
    absence_policy: DeductionPolicy | None,
    as_of: date,
) -> EmployeePayroll:
    """Feed reconciled attendance into the employee payroll calculator."""
    if eligibility.compensation is None:
        raise ConfigurationGapError(eligibility.employee.id, "no current compensation")
    metrics = attendance.metrics
    return calculator.compute(
        eligibility.compensation,
        eligibility.schedule,
        tables,
        as_of,
        raw_late_minutes=metrics.raw_late_minutes if metrics else (),
        absent_days=metrics.absence_count if metrics else 0,
        approved_overtime_minutes=approved_overtime_minutes,
        holidays_worked=metrics.holidays_worked if metrics else (),
        night_minutes=metrics.night_minutes if metrics else 0,
        late_policy=late_policy,
        absence_policy=absence_policy,
    )


class PayrollService:
    """Service for the payroll status lifecycle.

    Operations:
    - generate: compute and create a COMPUTED record, or recompute a COMPUTED one
    - approve: COMPUTED → APPROVED
    - release: APPROVED → RELEASED
    - void: APPROVED or RELEASED → VOIDED, with a reason

    Every mutation is a compare-and-set against the persisted status, so of
    two concurrent identical transitions exactly one succeeds.
    """

    def __init__(
        self,
        collaborators: Collaborators,
        calculator: EmployeePayrollCalculator | None = None,
        config: CalculationConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.stores = collaborators
        self.config = config or CalculationConfig()
        self.calculator = calculator or EmployeePayrollCalculator(self.config)
        self.clock = clock
        self.eligibility = EligibilityEvaluator(collaborators.schedules, self.config.concurrency)
        self.attendance = AttendanceReconciler()

    async def compute_for_employee(
        self,
        organization_id: UUID,
        employee_id: UUID,
        period: PayPeriod,
    ) -> tuple[EmployeeEligibility, EmployeePayroll]:
        """Compute one employee's payroll from fresh collaborator reads."""
        pool = await self.stores.employees.list_eligible_pool(organization_id, None)
        employee = next((e for e in pool if e.id == employee_id), None)
        if employee is None:
            raise ValidationError(
                f"Employee {employee_id} is not in organization {organization_id}"
            )

        eligibility = (await self.eligibility.evaluate([employee], period.end)).employees[0]
        if not eligibility.is_eligible:
            raise ConfigurationGapError(employee_id, "no current compensation")

        entries, overtime, holidays, tables, late_policy, absence_policy = await asyncio.gather(
            self.stores.time_entries.list_by_period(
                organization_id, employee.department_id, period.start, period.end
            ),
            self.stores.overtime.list_by_period(
                organization_id, employee.department_id, period.start, period.end
            ),
            self.stores.holidays.list_by_period(organization_id, period.start, period.end),
            load_bracket_tables(self.stores.brackets, period.end),
            self.stores.policies.get(organization_id, PolicyType.LATE),
            self.stores.policies.get(organization_id, PolicyType.ABSENCE),
        )
        own_entries = [e for e in entries if e.employee_id == employee_id]
        attendance = self.attendance.reconcile_employee(eligibility, own_entries, holidays, period)
        approved = aggregate_overtime(o for o in overtime if o.employee_id == employee_id)

        result = compute_employee_payroll(
            self.calculator,
            eligibility,
            attendance,
            approved.approved_minutes,
            tables,
            late_policy,
            absence_policy,
            period.end,
        )
        return eligibility, result

    async def transition_payroll(
        self,
        organization_id: UUID,
        employee_id: UUID,
        period: PayPeriod,
        action: str | PayrollAction,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> PayrollRecord:
        """Apply one action to one employee's payroll for the period."""
        period.validate()
        action = PayrollStateMachine.parse_action(action)
        target = PayrollStateMachine.ACTION_TARGETS[action]
        reason = PayrollStateMachine.validate_reason(target, reason)

        existing = await self.stores.payrolls.find(employee_id, period)
        if existing is not None and existing.organization_id != organization_id:
            raise PayrollNotFoundError(employee_id, period.key)
        if action == PayrollAction.GENERATE:
            return await self._generate(organization_id, employee_id, period, existing, actor_id)

        if existing is None:
            # no record is the implicit DRAFT state, which only generate leaves
            raise InvalidStateTransitionError(
                PayrollStatus.DRAFT.value, target.value, "payroll has not been generated"
            )
        PayrollStateMachine.validate_transition(existing.status, target)

        meta = TransitionMeta(action=action.value, at=self.clock(), actor_id=actor_id, reason=reason)
        record = await self.stores.payrolls.transition(existing.id, existing.status, target, meta)
        logger.info(
            "Payroll %s for employee %s moved %s -> %s",
            record.id,
            employee_id,
            existing.status,
            record.status,
        )
        return record

    async def _generate(
        self,
        organization_id: UUID,
        employee_id: UUID,
        period: PayPeriod,
        existing: PayrollRecord | None,
        actor_id: UUID | None,
    ) -> PayrollRecord:
        current = existing.status if existing else PayrollStatus.DRAFT.value
        PayrollStateMachine.validate_transition(current, PayrollStatus.COMPUTED)

        eligibility, result = await self.compute_for_employee(organization_id, employee_id, period)
        meta = TransitionMeta(action=PayrollAction.GENERATE.value, at=self.clock(), actor_id=actor_id)

        if existing is not None:
            logger.info("Recomputing payroll %s for employee %s", existing.id, employee_id)
            return await self.stores.payrolls.save_computation(
                existing.id, existing.status, result.amounts, meta
            )

        record = PayrollRecord(
            employee_id=employee_id,
            organization_id=organization_id,
            department_id=eligibility.employee.department_id,
            period_start=period.start,
            period_end=period.end,
            status=PayrollStatus.COMPUTED.value,
            amounts=result.amounts,
            processed_at=meta.at,
        )
        return await self.stores.payrolls.create(record, meta)

    async def transition_many(
        self,
        organization_id: UUID,
        employee_ids: Sequence[UUID],
        period: PayPeriod,
        action: str | PayrollAction,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> list[TransitionResult]:
        """Apply one action to many employees, each independently.

        Request-level problems (bad period, unknown action, missing void
        reason) raise before anything runs. Per-item failures come back as
        unsuccessful results and never stop the other items.
        """
        period.validate()
        action = PayrollStateMachine.parse_action(action)
        PayrollStateMachine.validate_reason(PayrollStateMachine.ACTION_TARGETS[action], reason)

        unique_ids = list(dict.fromkeys(employee_ids))
        results = await asyncio.gather(
            *(
                self._transition_one(organization_id, eid, period, action, reason, actor_id)
                for eid in unique_ids
            )
        )
        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Bulk %s for %d payrolls: %d succeeded, %d failed",
            action.value,
            len(results),
            len(results) - failed,
            failed,
        )
        return list(results)

    async def _transition_one(
        self,
        organization_id: UUID,
        employee_id: UUID,
        period: PayPeriod,
        action: PayrollAction,
        reason: str | None,
        actor_id: UUID | None,
    ) -> TransitionResult:
        try:
            record = await self.transition_payroll(
                organization_id, employee_id, period, action, reason, actor_id
            )
        except PayrollCoreError as e:
            return TransitionResult(employee_id, False, error=str(e), error_code=e.code)
        except Exception as e:
            logger.exception("Bulk %s failed for employee %s", action.value, employee_id)
            return TransitionResult(employee_id, False, error=str(e), error_code="INTERNAL_ERROR")
        return TransitionResult(employee_id, True, payroll=record)

    async def get_logs(
        self, payroll_id: UUID, organization_id: UUID | None = None
    ) -> list[PayrollLogEntry]:
        """Status history of one payroll, oldest first."""
        record = await self.stores.payrolls.get(payroll_id)
        if record is None or (
            organization_id is not None and record.organization_id != organization_id
        ):
            raise PayrollNotFoundError(payroll_id=payroll_id)
        return await self.stores.payrolls.list_logs(payroll_id)
