"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_core.models.records import PayPeriod, PayrollRecord
from payroll_core.services.payroll_service import TransitionResult


class ErrorResponse(BaseModel):
    """Error body returned by the exception handlers."""

    detail: str
    code: str


# ============================================================================
# Transition schemas
# ============================================================================


class PeriodRequest(BaseModel):
    period_start: date
    period_end: date

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(self.period_start, self.period_end)


class TransitionRequest(PeriodRequest):
    """Apply one action to one employee's payroll."""

    employee_id: UUID
    action: str = Field(description="generate, approve, release or void")
    reason: str | None = None
    actor_id: UUID | None = None


class BulkTransitionRequest(PeriodRequest):
    """Apply the path's action to many employees."""

    employee_ids: list[UUID] = Field(min_length=1)
    reason: str | None = None
    actor_id: UUID | None = None


class PayrollResponse(BaseModel):
    """Schema for payroll response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    organization_id: UUID
    department_id: UUID | None = None
    period_start: date
    period_end: date
    status: str
    gross_pay: Decimal
    taxable_income: Decimal
    tax: Decimal
    health: Decimal
    social: Decimal
    housing: Decimal
    late_deduction: Decimal
    absence_deduction: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    void_reason: str | None = None
    processed_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    released_at: datetime | None = None
    released_by: UUID | None = None
    voided_at: datetime | None = None
    voided_by: UUID | None = None
    version: int

    @classmethod
    def from_record(cls, record: PayrollRecord) -> PayrollResponse:
        a = record.amounts
        return cls(
            id=record.id,
            employee_id=record.employee_id,
            organization_id=record.organization_id,
            department_id=record.department_id,
            period_start=record.period_start,
            period_end=record.period_end,
            status=record.status,
            gross_pay=a.gross_pay,
            taxable_income=a.taxable_income,
            tax=a.tax,
            health=a.health,
            social=a.social,
            housing=a.housing,
            late_deduction=a.late_deduction,
            absence_deduction=a.absence_deduction,
            total_deductions=a.total_deductions,
            net_pay=a.net_pay,
            void_reason=record.void_reason,
            processed_at=record.processed_at,
            approved_at=record.approved_at,
            approved_by=record.approved_by,
            released_at=record.released_at,
            released_by=record.released_by,
            voided_at=record.voided_at,
            voided_by=record.voided_by,
            version=record.version,
        )


class TransitionResultResponse(BaseModel):
    employee_id: UUID
    success: bool
    payroll: PayrollResponse | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def from_result(cls, result: TransitionResult) -> TransitionResultResponse:
        return cls(
            employee_id=result.employee_id,
            success=result.success,
            payroll=PayrollResponse.from_record(result.payroll) if result.payroll else None,
            error=result.error,
            error_code=result.error_code,
        )


class BulkTransitionResponse(BaseModel):
    action: str
    total: int
    succeeded: int
    failed: int
    results: list[TransitionResultResponse]


class PayrollLogResponse(BaseModel):
    """Schema for payroll log response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payroll_id: UUID
    action: str
    previous_status: str
    new_status: str
    reason: str | None = None
    actor_id: UUID | None = None
    created_at: datetime | None = None
