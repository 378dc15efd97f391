"""Error taxonomy shared across calculators, services and stores."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


class PayrollCoreError(Exception):
    """Base class for all payroll core errors."""

    code = "PAYROLL_ERROR"


class ValidationError(PayrollCoreError):
    """Raised when a request is rejected before any computation or mutation."""

    code = "VALIDATION_ERROR"


class ConfigurationGapError(PayrollCoreError):
    """Raised when a single-employee operation cannot run on missing configuration.

    Summary generation never raises this; it records a ConfigurationGap instead.
    """

    code = "CONFIGURATION_GAP"

    def __init__(self, employee_id: UUID, gap: str):
        self.employee_id = employee_id
        self.gap = gap
        super().__init__(f"Employee {employee_id} cannot be processed: {gap}")


class PayrollNotFoundError(PayrollCoreError):
    """Raised when no payroll record exists for an employee and period, or an id."""

    code = "PAYROLL_NOT_FOUND"

    def __init__(
        self,
        employee_id: UUID | None = None,
        period_key: str | None = None,
        payroll_id: UUID | None = None,
    ):
        self.employee_id = employee_id
        self.period_key = period_key
        self.payroll_id = payroll_id
        if payroll_id is not None:
            msg = f"Payroll {payroll_id} not found"
        else:
            msg = f"No payroll for employee {employee_id} in period {period_key}"
        super().__init__(msg)


@dataclass(frozen=True)
class ConfigurationGap:
    """A non-fatal configuration hole found while building a summary."""

    kind: str  # missing_compensation | missing_schedule | missing_policy | absence_fallback
    message: str
    employee_id: UUID | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "kind": self.kind,
            "message": self.message,
            "employee_id": str(self.employee_id) if self.employee_id else None,
        }
