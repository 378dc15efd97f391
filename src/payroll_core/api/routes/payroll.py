"""Payroll API endpoints."""

from datetime import date
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payroll_core.api.dependencies import OrganizationId, PayrollServiceDep, SummaryService
from payroll_core.api.schemas import (
    BulkTransitionRequest,
    BulkTransitionResponse,
    ErrorResponse,
    PayrollLogResponse,
    PayrollResponse,
    TransitionRequest,
    TransitionResultResponse,
)

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.get(
    "/summary",
    response_model=dict[str, Any],
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def get_payroll_summary(
    service: SummaryService,
    organization_id: OrganizationId,
    period_start: Annotated[date, Query()],
    period_end: Annotated[date, Query()],
    department_id: Annotated[UUID | None, Query()] = None,
) -> dict[str, Any]:
    """Eligibility, attendance, deductions and readiness for a period."""
    summary = await service.generate_summary(
        organization_id, department_id, period_start, period_end
    )
    return summary.to_dict()


@router.post(
    "/transitions",
    response_model=PayrollResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def transition_payroll(
    service: PayrollServiceDep,
    organization_id: OrganizationId,
    payload: TransitionRequest,
) -> PayrollResponse:
    """Generate, approve, release or void one employee's payroll."""
    record = await service.transition_payroll(
        organization_id,
        payload.employee_id,
        payload.period,
        payload.action,
        reason=payload.reason,
        actor_id=payload.actor_id,
    )
    return PayrollResponse.from_record(record)


@router.post(
    "/bulk/{action}",
    response_model=BulkTransitionResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}},
)
async def bulk_transition(
    service: PayrollServiceDep,
    organization_id: OrganizationId,
    action: Annotated[str, Path()],
    payload: BulkTransitionRequest,
) -> BulkTransitionResponse:
    """Apply one action to many payrolls; each item succeeds or fails on its own."""
    results = await service.transition_many(
        organization_id,
        payload.employee_ids,
        payload.period,
        action,
        reason=payload.reason,
        actor_id=payload.actor_id,
    )
    succeeded = sum(1 for r in results if r.success)
    return BulkTransitionResponse(
        action=action.lower(),
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=[TransitionResultResponse.from_result(r) for r in results],
    )


@router.get(
    "/{payroll_id}/logs",
    response_model=list[PayrollLogResponse],
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_logs(
    service: PayrollServiceDep,
    organization_id: OrganizationId,
    payroll_id: Annotated[UUID, Path()],
) -> list[PayrollLogResponse]:
    """Status change history of one payroll."""
    entries = await service.get_logs(payroll_id, organization_id)
    return [PayrollLogResponse.model_validate(e) for e in entries]
