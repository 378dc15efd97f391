"""Tests for the payroll lifecycle service on the in-memory store."""

import asyncio
import gc
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_core.errors import ConfigurationGapError, PayrollNotFoundError, ValidationError
from payroll_core.models.records import PayPeriod
from payroll_core.services.payroll_service import PayrollService
from payroll_core.services.state_machine import InvalidStateTransitionError, PayrollStatus

pytestmark = pytest.mark.asyncio

NOW = datetime(2024, 3, 16, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(scenario) -> PayrollService:
    return PayrollService(scenario.collaborators, clock=lambda: NOW)


class TestGenerate:
    """Test computing and recomputing a payroll."""

    async def test_generate_creates_computed_record(self, service, scenario):
        record = await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "generate"
        )

        assert record.status == PayrollStatus.COMPUTED.value
        assert record.processed_at == NOW
        assert record.amounts.gross_pay == Decimal("15000.00")
        # two absent days at 30000 / 22, no absence policy
        assert record.amounts.absence_deduction == Decimal("2727.27")
        assert record.amounts.net_pay == Decimal("10256.03")

    async def test_regenerate_recomputes(self, service, scenario, make_entry):
        """Generating a COMPUTED payroll again picks up new attendance."""
        first = await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "generate"
        )
        store = scenario.collaborators.time_entries
        store.entries += [
            make_entry(scenario.attended, date(2024, 3, 14)),
            make_entry(scenario.attended, date(2024, 3, 15)),
        ]

        second = await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "generate"
        )

        assert second.id == first.id
        assert second.version == first.version + 1
        assert second.amounts.absence_deduction == Decimal("0.00")
        assert second.amounts.net_pay == Decimal("12983.30")

    async def test_generate_after_approval_rejected(self, service, scenario):
        await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "generate"
        )
        await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "approve"
        )

        with pytest.raises(InvalidStateTransitionError):
            await service.transition_payroll(
                scenario.org_id, scenario.attended.id, scenario.period, "generate"
            )

    async def test_missing_compensation(self, service, scenario):
        with pytest.raises(ConfigurationGapError):
            await service.transition_payroll(
                scenario.org_id, scenario.unpaid[0].id, scenario.period, "generate"
            )

    async def test_unknown_employee(self, service, scenario):
        with pytest.raises(ValidationError):
            await service.transition_payroll(scenario.org_id, uuid4(), scenario.period, "generate")

    async def test_employee_without_schedule(self, service, scenario):
        """No schedule means no absence count, so no absence deduction."""
        record = await service.transition_payroll(
            scenario.org_id, scenario.unscheduled.id, scenario.period, "generate"
        )
        assert record.amounts.absence_deduction == Decimal("0")
        assert record.amounts.net_pay == Decimal("12983.30")


class TestTransitions:
    """Test approve, release and void."""

    async def _generate(self, service, scenario):
        return await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "generate"
        )

    async def test_full_lifecycle(self, service, scenario):
        actor = uuid4()
        await self._generate(service, scenario)
        approved = await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "approve", actor_id=actor
        )
        released = await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "release", actor_id=actor
        )
        voided = await service.transition_payroll(
            scenario.org_id,
            scenario.attended.id,
            scenario.period,
            "void",
            reason="Duplicate run",
            actor_id=actor,
        )

        assert approved.status == "APPROVED"
        assert approved.approved_by == actor
        assert released.status == "RELEASED"
        assert released.released_at == NOW
        assert voided.status == "VOIDED"
        assert voided.void_reason == "Duplicate run"

    async def test_release_requires_approval(self, service, scenario):
        await self._generate(service, scenario)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await service.transition_payroll(
                scenario.org_id, scenario.attended.id, scenario.period, "release"
            )

        assert exc_info.value.current_status == "COMPUTED"
        assert exc_info.value.attempted_status == "RELEASED"

    async def test_void_requires_reason(self, service, scenario):
        await self._generate(service, scenario)
        await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "approve"
        )

        with pytest.raises(ValidationError):
            await service.transition_payroll(
                scenario.org_id, scenario.attended.id, scenario.period, "void", reason=" "
            )

        record = await service.stores.payrolls.find(scenario.attended.id, scenario.period)
        assert record.status == "APPROVED"

    async def test_voided_is_terminal(self, service, scenario):
        await self._generate(service, scenario)
        for action in ("approve", "release"):
            await service.transition_payroll(
                scenario.org_id, scenario.attended.id, scenario.period, action
            )
        await service.transition_payroll(
            scenario.org_id, scenario.attended.id, scenario.period, "void", reason="error"
        )

        for action in ("generate", "approve", "release"):
            with pytest.raises(InvalidStateTransitionError):
                await service.transition_payroll(
                    scenario.org_id, scenario.attended.id, scenario.period, action
                )

    async def test_release_without_record(self, service, scenario):
        """With no record the payroll is implicitly DRAFT."""
        for action, reason in (("approve", None), ("release", None), ("void", "error")):
            with pytest.raises(InvalidStateTransitionError) as exc_info:
                await service.transition_payroll(
                    scenario.org_id, scenario.attended.id, scenario.period, action, reason=reason
                )

            assert exc_info.value.current_status == "DRAFT"

    async def test_other_organization_cannot_transition(self, service, scenario):
        """A payroll is invisible outside its organization."""
        await self._generate(service, scenario)

        for action in ("generate", "approve"):
            with pytest.raises(PayrollNotFoundError):
                await service.transition_payroll(
                    uuid4(), scenario.attended.id, scenario.period, action
                )

        record = await service.stores.payrolls.find(scenario.attended.id, scenario.period)
        assert record.status == "COMPUTED"
        assert record.version == 1

    async def test_invalid_period(self, service, scenario):
        backwards = PayPeriod(date(2024, 3, 15), date(2024, 3, 1))
        with pytest.raises(ValidationError):
            await service.transition_payroll(
                scenario.org_id, scenario.attended.id, backwards, "generate"
            )

    async def test_concurrent_approvals(self, service, scenario):
        """Of two concurrent approvals exactly one succeeds."""
        await self._generate(service, scenario)

        results = await asyncio.gather(
            *(
                service.transition_payroll(
                    scenario.org_id, scenario.attended.id, scenario.period, "approve"
                )
                for _ in range(2)
            ),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, InvalidStateTransitionError)]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert failed[0].current_status == "APPROVED"

    async def test_concurrent_generate_creates_one_record(self, service, scenario):
        store = scenario.collaborators.payrolls

        results = await asyncio.gather(
            *(
                service.transition_payroll(
                    scenario.org_id, scenario.attended.id, scenario.period, "generate"
                )
                for _ in range(2)
            ),
            return_exceptions=True,
        )

        assert len(store.records) == 1
        assert sum(1 for r in results if isinstance(r, InvalidStateTransitionError)) == 1

    async def test_period_locks_do_not_accumulate(self, service, scenario):
        """Per-period locks are dropped once no transition holds them."""
        for employee_id in scenario.eligible_ids:
            await service.transition_payroll(
                scenario.org_id, employee_id, scenario.period, "generate"
            )
        gc.collect()

        assert len(scenario.collaborators.payrolls._locks) == 0


class TestBulkTransitions:
    """Test fail-open bulk operations."""

    async def test_bulk_generate_fails_open(self, service, scenario):
        ids = [*scenario.eligible_ids, scenario.unpaid[0].id, scenario.attended.id]
        results = await service.transition_many(scenario.org_id, ids, scenario.period, "generate")

        assert len(results) == 4
        by_id = {r.employee_id: r for r in results}
        assert all(by_id[eid].success for eid in scenario.eligible_ids)
        assert by_id[scenario.unpaid[0].id].success is False
        assert by_id[scenario.unpaid[0].id].error_code == "CONFIGURATION_GAP"

    async def test_bulk_approve_mixed(self, service, scenario):
        """Employees without a computed payroll fail; the rest still move."""
        await service.transition_many(
            scenario.org_id, [scenario.attended.id], scenario.period, "generate"
        )

        results = await service.transition_many(
            scenario.org_id, scenario.eligible_ids, scenario.period, "approve"
        )

        assert [r.success for r in results] == [True, False, False]
        assert results[0].payroll.status == "APPROVED"
        assert results[1].error_code == "INVALID_STATE_TRANSITION"

    async def test_bulk_void_without_reason_rejected_up_front(self, service, scenario):
        await service.transition_many(
            scenario.org_id, [scenario.attended.id], scenario.period, "generate"
        )

        with pytest.raises(ValidationError):
            await service.transition_many(
                scenario.org_id, [scenario.attended.id], scenario.period, "void"
            )

    async def test_bulk_void_of_computed_fails_per_item(self, service, scenario):
        await service.transition_many(
            scenario.org_id, [scenario.attended.id], scenario.period, "generate"
        )

        results = await service.transition_many(
            scenario.org_id, [scenario.attended.id], scenario.period, "void", reason="wrong period"
        )

        assert results[0].success is False
        assert results[0].error_code == "INVALID_STATE_TRANSITION"

    async def test_unknown_action(self, service, scenario):
        with pytest.raises(ValidationError):
            await service.transition_many(
                scenario.org_id, scenario.eligible_ids, scenario.period, "finalize"
            )


class TestLogs:
    """Test the transition log."""

    async def test_every_transition_is_logged(self, service, scenario):
        actor = uuid4()
        for action, reason in (
            ("generate", None),
            ("approve", None),
            ("release", None),
            ("void", "Overpaid"),
        ):
            record = await service.transition_payroll(
                scenario.org_id,
                scenario.attended.id,
                scenario.period,
                action,
                reason=reason,
                actor_id=actor,
            )

        logs = await service.get_logs(record.id)

        assert [(log.previous_status, log.new_status) for log in logs] == [
            ("DRAFT", "COMPUTED"),
            ("COMPUTED", "APPROVED"),
            ("APPROVED", "RELEASED"),
            ("RELEASED", "VOIDED"),
        ]
        assert [log.action for log in logs] == ["generate", "approve", "release", "void"]
        assert logs[-1].reason == "Overpaid"
        assert all(log.actor_id == actor for log in logs)

    async def test_logs_for_unknown_payroll(self, service):
        with pytest.raises(PayrollNotFoundError):
            await service.get_logs(uuid4())
