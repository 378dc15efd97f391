"""Payroll services."""

from payroll_core.services.attendance import (
    AttendanceReconciler,
    AttendanceStatus,
    AttendanceSummary,
    EmployeeAttendance,
)
from payroll_core.services.eligibility import (
    EligibilityClass,
    EligibilityEvaluator,
    EligibilityResult,
    EmployeeEligibility,
)
from payroll_core.services.holidays import HolidaySummary, holiday_impact
from payroll_core.services.overtime import OvertimeSummary, aggregate_overtime
from payroll_core.services.payroll_service import PayrollService, TransitionResult
from payroll_core.services.readiness import Readiness, evaluate_readiness
from payroll_core.services.state_machine import (
    InvalidStateTransitionError,
    PayrollAction,
    PayrollStateMachine,
    PayrollStatus,
)
from payroll_core.services.summary_service import PayrollSummary, PayrollSummaryService

__all__ = [
    "AttendanceReconciler",
    "AttendanceStatus",
    "AttendanceSummary",
    "EmployeeAttendance",
    "EligibilityClass",
    "EligibilityEvaluator",
    "EligibilityResult",
    "EmployeeEligibility",
    "HolidaySummary",
    "holiday_impact",
    "OvertimeSummary",
    "aggregate_overtime",
    "PayrollService",
    "TransitionResult",
    "Readiness",
    "evaluate_readiness",
    "InvalidStateTransitionError",
    "PayrollAction",
    "PayrollStateMachine",
    "PayrollStatus",
    "PayrollSummary",
    "PayrollSummaryService",
]
