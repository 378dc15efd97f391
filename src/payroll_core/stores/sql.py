"""SQLAlchemy-backed payroll store."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_core.errors import PayrollNotFoundError
from payroll_core.models.payroll import Payroll, PayrollLog
from payroll_core.models.records import (
    PayPeriod,
    PayrollAmounts,
    PayrollLogEntry,
    PayrollRecord,
)
from payroll_core.services.state_machine import InvalidStateTransitionError, PayrollStatus
from payroll_core.stores.base import TransitionMeta


def _amount_values(amounts: PayrollAmounts) -> dict[str, Any]:
    return {
        "gross_pay": amounts.gross_pay,
        "taxable_income": amounts.taxable_income,
        "tax_deduction": amounts.tax,
        "health_deduction": amounts.health,
        "social_deduction": amounts.social,
        "housing_deduction": amounts.housing,
        "late_deduction": amounts.late_deduction,
        "absence_deduction": amounts.absence_deduction,
        "total_deductions": amounts.total_deductions,
        "net_pay": amounts.net_pay,
    }


class SqlPayrollStore:
    """Payroll store with compare-and-set status updates.

    Every mutation runs in its own transaction and writes a payroll_log row
    in the same transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _log(
        self,
        session: AsyncSession,
        payroll_id: UUID,
        previous_status: str,
        new_status: str,
        meta: TransitionMeta,
    ) -> None:
        session.add(
            PayrollLog(
                payroll_id=payroll_id,
                action=meta.action,
                previous_status=previous_status,
                new_status=new_status,
                reason=meta.reason,
                actor_id=meta.actor_id,
                created_at=meta.at,
            )
        )

    async def _load(self, session: AsyncSession, payroll_id: UUID) -> Payroll | None:
        result = await session.execute(select(Payroll).where(Payroll.payroll_id == payroll_id))
        return result.scalar_one_or_none()

    async def get(self, payroll_id: UUID) -> PayrollRecord | None:
        async with self.session_factory() as session:
            row = await self._load(session, payroll_id)
            return row.to_record() if row else None

    async def find(self, employee_id: UUID, period: PayPeriod) -> PayrollRecord | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Payroll).where(
                    Payroll.employee_id == employee_id,
                    Payroll.period_start == period.start,
                    Payroll.period_end == period.end,
                )
            )
            row = result.scalar_one_or_none()
            return row.to_record() if row else None

    async def list_by_period(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        period: PayPeriod,
    ) -> list[PayrollRecord]:
        query = select(Payroll).where(
            Payroll.organization_id == organization_id,
            Payroll.period_start == period.start,
            Payroll.period_end == period.end,
        )
        if department_id is not None:
            query = query.where(Payroll.department_id == department_id)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [row.to_record() for row in result.scalars()]

    async def create(self, record: PayrollRecord, meta: TransitionMeta) -> PayrollRecord:
        row = Payroll(
            payroll_id=record.id,
            employee_id=record.employee_id,
            organization_id=record.organization_id,
            department_id=record.department_id,
            period_start=record.period_start,
            period_end=record.period_end,
            status=record.status,
            processed_at=record.processed_at,
            version=record.version,
        )
        row.apply_amounts(record.amounts)
        try:
            async with self.session_factory() as session, session.begin():
                session.add(row)
                await session.flush()
                self._log(session, row.payroll_id, PayrollStatus.DRAFT.value, record.status, meta)
        except IntegrityError:
            existing = await self.find(record.employee_id, record.period)
            if existing is None:
                raise
            raise InvalidStateTransitionError(
                existing.status, record.status, "payroll already exists for this period"
            ) from None
        return await self._require(record.id)

    async def save_computation(
        self,
        payroll_id: UUID,
        expected_status: str,
        amounts: PayrollAmounts,
        meta: TransitionMeta,
    ) -> PayrollRecord:
        values = _amount_values(amounts)
        values.update(
            status=PayrollStatus.COMPUTED.value,
            processed_at=meta.at,
            version=Payroll.version + 1,
        )
        await self._compare_and_set(
            payroll_id, expected_status, PayrollStatus.COMPUTED.value, values, meta
        )
        return await self._require(payroll_id)

    async def transition(
        self,
        payroll_id: UUID,
        from_status: str,
        to_status: str,
        meta: TransitionMeta,
    ) -> PayrollRecord:
        to_status = PayrollStatus(to_status).value
        values: dict[str, Any] = {"status": to_status, "version": Payroll.version + 1}
        if to_status == PayrollStatus.APPROVED:
            values.update(approved_at=meta.at, approved_by=meta.actor_id)
        elif to_status == PayrollStatus.RELEASED:
            values.update(released_at=meta.at, released_by=meta.actor_id)
        elif to_status == PayrollStatus.VOIDED:
            values.update(voided_at=meta.at, voided_by=meta.actor_id, void_reason=meta.reason)

        await self._compare_and_set(payroll_id, from_status, to_status, values, meta)
        return await self._require(payroll_id)

    async def _compare_and_set(
        self,
        payroll_id: UUID,
        expected_status: str,
        to_status: str,
        values: dict[str, Any],
        meta: TransitionMeta,
    ) -> None:
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                update(Payroll)
                .where(
                    Payroll.payroll_id == payroll_id,
                    Payroll.status == expected_status,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                current = await self._load(session, payroll_id)
                if current is None:
                    raise PayrollNotFoundError(payroll_id=payroll_id)
                raise InvalidStateTransitionError(current.status, to_status)
            self._log(session, payroll_id, expected_status, to_status, meta)

    async def _require(self, payroll_id: UUID) -> PayrollRecord:
        record = await self.get(payroll_id)
        if record is None:
            raise PayrollNotFoundError(payroll_id=payroll_id)
        return record

    async def list_logs(self, payroll_id: UUID) -> list[PayrollLogEntry]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PayrollLog)
                .where(PayrollLog.payroll_id == payroll_id)
                .order_by(PayrollLog.created_at, PayrollLog.payroll_log_id)
            )
            return [row.to_entry() for row in result.scalars()]
