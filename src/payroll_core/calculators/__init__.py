"""Payroll calculators."""

from payroll_core.calculators import work_time
from payroll_core.calculators.bracket_lookup import (
    BracketTableError,
    NoMatchingBracketError,
    clamp_base,
    lookup,
    validate_table,
)
from payroll_core.calculators.employee_payroll import (
    EmployeePayroll,
    EmployeePayrollCalculator,
)
from payroll_core.calculators.policy_calculator import PolicyDeductionCalculator
from payroll_core.calculators.statutory_calculator import StatutoryCalculator
from payroll_core.calculators.types import (
    Contribution,
    EmployeeRates,
    PolicyDeductionResult,
    StatutoryDeductions,
    WorkTimeValidation,
    WorkTimeViolation,
)

__all__ = [
    "BracketTableError",
    "NoMatchingBracketError",
    "clamp_base",
    "lookup",
    "validate_table",
    "work_time",
    "EmployeePayroll",
    "EmployeePayrollCalculator",
    "PolicyDeductionCalculator",
    "StatutoryCalculator",
    "Contribution",
    "EmployeeRates",
    "PolicyDeductionResult",
    "StatutoryDeductions",
    "WorkTimeValidation",
    "WorkTimeViolation",
]
