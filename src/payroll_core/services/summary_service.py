"""Payroll summary orchestration.

Reads every collaborator once against a single as-of timestamp, then
derives eligibility, attendance, overtime, holiday, deduction and readiness
sections from that snapshot. Nothing is persisted.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from payroll_core.calculators.bracket_lookup import validate_table
from payroll_core.calculators.employee_payroll import EmployeePayroll, EmployeePayrollCalculator
from payroll_core.config import CalculationConfig
from payroll_core.errors import ConfigurationGap
from payroll_core.models.records import ZERO, PayPeriod, PayrollRecord, PolicyType
from payroll_core.services.attendance import (
    AttendanceReconciler,
    AttendanceSummary,
    EmployeeAttendance,
)
from payroll_core.services.eligibility import (
    EligibilityEvaluator,
    EligibilityResult,
    EmployeeEligibility,
)
from payroll_core.services.holidays import HolidaySummary, holiday_impact
from payroll_core.services.overtime import OvertimeSummary, aggregate_overtime
from payroll_core.services.payroll_service import (
    compute_employee_payroll,
    load_bracket_tables,
    utcnow,
)
from payroll_core.services.readiness import Readiness, evaluate_readiness
from payroll_core.services.state_machine import PayrollStatus
from payroll_core.stores.base import Collaborators

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeSummary:
    eligibility: EmployeeEligibility
    attendance: EmployeeAttendance
    payroll: EmployeePayroll
    existing: PayrollRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        p = self.payroll
        a = p.amounts
        return {
            **self.eligibility.to_dict(),
            "attendance_status": self.attendance.status.value,
            "base_pay": str(p.base_pay),
            "overtime_pay": str(p.overtime_pay),
            "holiday_pay": str(p.holiday_pay),
            "night_diff_pay": str(p.night_diff_pay),
            "gross_pay": str(a.gross_pay),
            "government_deductions": p.statutory.to_dict(),
            "late_deduction": str(p.late.amount),
            "absence_deduction": str(p.absence.amount),
            "absence_fallback": p.absence.fallback,
            "total_deductions": str(a.total_deductions),
            "net_pay": str(a.net_pay),
            "payroll_status": self.existing.status if self.existing else PayrollStatus.DRAFT.value,
        }


@dataclass
class PayrollSummary:
    """Transient, recomputed on every request."""

    organization_id: UUID
    department_id: UUID | None
    period: PayPeriod
    as_of: datetime
    eligibility: EligibilityResult
    attendance: AttendanceSummary
    overtime: OvertimeSummary
    holidays: HolidaySummary
    readiness: Readiness
    employees: list[EmployeeSummary] = field(default_factory=list)
    existing: list[PayrollRecord] = field(default_factory=list)
    gaps: list[ConfigurationGap] = field(default_factory=list)

    def _sum(self, pick: Callable[[EmployeePayroll], Decimal]) -> Decimal:
        return sum((pick(e.payroll) for e in self.employees), ZERO)

    def deductions(self) -> dict[str, Any]:
        tax = self._sum(lambda p: p.statutory.tax)
        health = self._sum(lambda p: p.statutory.health)
        social = self._sum(lambda p: p.statutory.social)
        housing = self._sum(lambda p: p.statutory.housing)
        late = self._sum(lambda p: p.late.amount)
        absence = self._sum(lambda p: p.absence.amount)
        return {
            "government": {
                "tax": str(tax),
                "health": str(health),
                "social": str(social),
                "housing": str(housing),
                "total": str(tax + health + social + housing),
                "employer_total": str(self._sum(lambda p: p.statutory.employer_total)),
            },
            "policy": {
                "late": str(late),
                "absence": str(absence),
                "total": str(late + absence),
            },
        }

    def metrics(self) -> dict[str, Any]:
        gross = self._sum(lambda p: p.amounts.gross_pay)
        deductions = self._sum(lambda p: p.amounts.total_deductions)
        attendance = self.attendance
        return {
            "computed_employees": len(self.employees),
            "total_gross_pay": str(gross),
            "total_deductions": str(deductions),
            "total_net_pay": str(gross - deductions),
            "total_overtime_pay": str(self._sum(lambda p: p.overtime_pay)),
            "total_holiday_pay": str(self._sum(lambda p: p.holiday_pay)),
            "lateness": {
                "total_late_instances": attendance.total("late_instances"),
                "total_late_minutes": attendance.total("late_minutes"),
                "affected_employees": attendance.late_affected_employees,
            },
            "absence": {
                "total_absences": attendance.total("absence_count"),
                "affected_employees": attendance.absence_affected_employees,
            },
        }

    def payroll_status(self) -> dict[str, Any]:
        counts = Counter(r.status for r in self.existing)
        return {
            "existing_records": len(self.existing),
            "by_status": {
                s.value: counts.get(s.value, 0)
                for s in PayrollStatus
                if s != PayrollStatus.DRAFT
            },
            "not_generated": sum(1 for e in self.employees if e.existing is None),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": str(self.organization_id),
            "department_id": str(self.department_id) if self.department_id else None,
            "period": self.period.to_dict(),
            "as_of": self.as_of.isoformat(),
            "eligibility": self.eligibility.to_dict(),
            "attendance": self.attendance.to_dict(),
            "overtime": self.overtime.to_dict(),
            "holidays": self.holidays.to_dict(),
            "deductions": self.deductions(),
            "metrics": self.metrics(),
            "payroll_status": self.payroll_status(),
            "readiness": self.readiness.to_dict(),
            "configuration_gaps": [g.to_dict() for g in self.gaps],
            "employees": [e.to_dict() for e in self.employees],
        }


class PayrollSummaryService:
    """Composes the evaluators into one summary for (organization, department?, period)."""

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

    async def generate_summary(
        self,
        organization_id: UUID,
        department_id: UUID | None,
        period_start: date,
        period_end: date,
    ) -> PayrollSummary:
        period = PayPeriod(period_start, period_end).validate()
        as_of = self.clock()
        stores = self.stores

        employees = await stores.employees.list_eligible_pool(organization_id, department_id)
        (
            eligibility,
            entries,
            overtime,
            holidays,
            tables,
            late_policy,
            absence_policy,
            existing,
        ) = await asyncio.gather(
            self.eligibility.evaluate(employees, period.end),
            stores.time_entries.list_by_period(
                organization_id, department_id, period.start, period.end
            ),
            stores.overtime.list_by_period(organization_id, department_id, period.start, period.end),
            stores.holidays.list_by_period(organization_id, period.start, period.end),
            load_bracket_tables(stores.brackets, period.end),
            stores.policies.get(organization_id, PolicyType.LATE),
            stores.policies.get(organization_id, PolicyType.ABSENCE),
            stores.payrolls.list_by_period(organization_id, department_id, period),
        )

        gaps = list(eligibility.gaps)
        attendance = self.attendance.reconcile(eligibility, entries, holidays, period)
        overtime_summary = aggregate_overtime(overtime)
        holiday_summary = holiday_impact(holidays, eligibility.eligible)

        eligible = eligibility.eligible
        if eligible:
            for kind, table in tables.items():
                validate_table(table, period.end, kind=kind)
        if eligible and late_policy is None:
            logger.warning("Organization %s has no late deduction policy", organization_id)
            gaps.append(
                ConfigurationGap(
                    kind="missing_policy",
                    message="No late deduction policy configured",
                )
            )

        existing_by_employee = {r.employee_id: r for r in existing}
        summaries = []
        for item in eligible:
            employee_attendance = attendance.for_employee(item.employee.id)
            result = compute_employee_payroll(
                self.calculator,
                item,
                employee_attendance,
                overtime_summary.approved_minutes_by_employee.get(item.employee.id, 0),
                tables,
                late_policy,
                absence_policy,
                period.end,
            )
            if result.absence.fallback and result.absence.occurrences:
                gaps.append(
                    ConfigurationGap(
                        kind="absence_fallback",
                        message=(
                            f"{item.employee.full_name}: daily rate charged for "
                            f"{result.absence.occurrences} absent days"
                        ),
                        employee_id=item.employee.id,
                    )
                )
            summaries.append(
                EmployeeSummary(
                    eligibility=item,
                    attendance=employee_attendance,
                    payroll=result,
                    existing=existing_by_employee.get(item.employee.id),
                )
            )

        readiness = evaluate_readiness(eligibility, attendance, existing, gaps)
        summary = PayrollSummary(
            organization_id=organization_id,
            department_id=department_id,
            period=period,
            as_of=as_of,
            eligibility=eligibility,
            attendance=attendance,
            overtime=overtime_summary,
            holidays=holiday_summary,
            readiness=readiness,
            employees=summaries,
            existing=list(existing),
            gaps=gaps,
        )
        logger.info(
            "Payroll summary for org %s period %s: %d employees, %d eligible, can_generate=%s",
            organization_id,
            period.key,
            eligibility.total,
            len(eligible),
            readiness.can_generate,
        )
        return summary
