"""Readiness assessment for payroll generation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from payroll_core.errors import ConfigurationGap
from payroll_core.models.records import PayrollRecord
from payroll_core.services.attendance import AttendanceSummary
from payroll_core.services.eligibility import EligibilityResult
from payroll_core.services.state_machine import PayrollStateMachine


@dataclass(frozen=True)
class Readiness:
    blocking_issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def can_generate(self) -> bool:
        return not self.blocking_issues

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_generate": self.can_generate,
            "blocking_issues": list(self.blocking_issues),
            "warnings": list(self.warnings),
        }


def evaluate_readiness(
    eligibility: EligibilityResult,
    attendance: AttendanceSummary,
    existing: Sequence[PayrollRecord] = (),
    gaps: Sequence[ConfigurationGap] = (),
) -> Readiness:
    """Pure function of eligibility, attendance and existing runs.

    Only an empty eligible set blocks. Everything else warns.
    """
    blocking: list[str] = []
    warnings: list[str] = []

    if not eligibility.eligible:
        blocking.append("No eligible employees found for payroll generation")

    if attendance.missing > 0:
        warnings.append(f"{attendance.missing} employees missing attendance records")

    completed = [r for r in existing if PayrollStateMachine.is_completed(r.status)]
    if completed:
        warnings.append(
            f"Payroll has already been generated for this period ({len(completed)} records)"
        )

    without_schedule = len(eligibility.without_schedule)
    if without_schedule:
        warnings.append(f"{without_schedule} eligible employees have no work schedule")

    fallbacks = sum(1 for g in gaps if g.kind == "absence_fallback")
    if fallbacks:
        warnings.append(
            f"No absence policy configured; daily rate used for {fallbacks} employees"
        )
    if any(g.kind == "missing_policy" for g in gaps):
        warnings.append("No late deduction policy configured; lateness is not deducted")

    return Readiness(tuple(blocking), tuple(warnings))
