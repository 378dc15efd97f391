"""Payroll and payroll log ORM models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_core.models.base import Base, TimestampMixin
from payroll_core.models.records import PayrollAmounts, PayrollLogEntry, PayrollRecord

MONEY = Numeric(14, 2)


class Payroll(Base, TimestampMixin):
    """One payroll per employee per cutoff period. Never deleted."""

    __tablename__ = "payroll"

    payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    organization_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    department_id: Mapped[UUID | None] = mapped_column(nullable=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="COMPUTED")

    gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    taxable_income: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    tax_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    health_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    social_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    housing_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    late_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    absence_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    released_by: Mapped[UUID | None] = mapped_column(nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voided_by: Mapped[UUID | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint(
            "employee_id",
            "period_start",
            "period_end",
            name="payroll_employee_period_unique",
        ),
        CheckConstraint(
            "status IN ('DRAFT', 'COMPUTED', 'APPROVED', 'RELEASED', 'VOIDED')",
            name="payroll_status_check",
        ),
        CheckConstraint(
            "(status = 'VOIDED') = (void_reason IS NOT NULL)",
            name="payroll_void_reason_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_dates_check"),
    )

    logs: Mapped[list[PayrollLog]] = relationship(back_populates="payroll")

    def apply_amounts(self, amounts: PayrollAmounts) -> None:
        self.gross_pay = amounts.gross_pay
        self.taxable_income = amounts.taxable_income
        self.tax_deduction = amounts.tax
        self.health_deduction = amounts.health
        self.social_deduction = amounts.social
        self.housing_deduction = amounts.housing
        self.late_deduction = amounts.late_deduction
        self.absence_deduction = amounts.absence_deduction
        self.total_deductions = amounts.total_deductions
        self.net_pay = amounts.net_pay

    def to_record(self) -> PayrollRecord:
        return PayrollRecord(
            id=self.payroll_id,
            employee_id=self.employee_id,
            organization_id=self.organization_id,
            department_id=self.department_id,
            period_start=self.period_start,
            period_end=self.period_end,
            status=self.status,
            amounts=PayrollAmounts(
                gross_pay=Decimal(self.gross_pay),
                taxable_income=Decimal(self.taxable_income),
                tax=Decimal(self.tax_deduction),
                health=Decimal(self.health_deduction),
                social=Decimal(self.social_deduction),
                housing=Decimal(self.housing_deduction),
                late_deduction=Decimal(self.late_deduction),
                absence_deduction=Decimal(self.absence_deduction),
            ),
            void_reason=self.void_reason,
            processed_at=self.processed_at,
            approved_at=self.approved_at,
            approved_by=self.approved_by,
            released_at=self.released_at,
            released_by=self.released_by,
            voided_at=self.voided_at,
            voided_by=self.voided_by,
            version=self.version,
        )


class PayrollLog(Base, TimestampMixin):
    """Audit trail of payroll status changes."""

    __tablename__ = "payroll_log"

    payroll_log_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll.payroll_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String, nullable=False)
    previous_status: Mapped[str] = mapped_column(String, nullable=False)
    new_status: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[UUID | None] = mapped_column(nullable=True)

    payroll: Mapped[Payroll] = relationship(back_populates="logs")

    def to_entry(self) -> PayrollLogEntry:
        return PayrollLogEntry(
            id=self.payroll_log_id,
            payroll_id=self.payroll_id,
            action=self.action,
            previous_status=self.previous_status,
            new_status=self.new_status,
            reason=self.reason,
            actor_id=self.actor_id,
            created_at=self.created_at,
        )
