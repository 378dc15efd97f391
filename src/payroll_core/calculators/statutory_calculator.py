"""Government deductions from effective-dated bracket tables."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal

from payroll_core.calculators.bracket_lookup import clamp_base, lookup
from payroll_core.calculators.types import Contribution, StatutoryDeductions
from payroll_core.config import CalculationConfig
from payroll_core.errors import ValidationError
from payroll_core.models.records import ZERO, Bracket, BracketKind, money

CONTRIBUTION_KINDS = (BracketKind.HEALTH, BracketKind.SOCIAL, BracketKind.HOUSING)


class StatutoryCalculator:
    """Calculates tax and the three contribution streams for a monthly gross.

    Each stream selects its own bracket by gross. Contributions are
    base_amount + rate * clamped base, capped at max_contribution. Tax is
    base_amount + rate * (taxable - bracket minimum), where taxable is the
    gross unless the config asks for tax after contributions.
    """

    def __init__(self, config: CalculationConfig | None = None):
        self.config = config or CalculationConfig()

    def calculate(
        self,
        monthly_gross: Decimal,
        tables: Mapping[BracketKind, Sequence[Bracket]],
        as_of: date,
    ) -> StatutoryDeductions:
        """Calculate all four streams for one month."""
        if monthly_gross < 0:
            raise ValidationError(f"Gross must not be negative, got {monthly_gross}")

        contributions = {
            kind: self.contribution(kind, tables.get(kind, ()), monthly_gross, as_of)
            for kind in CONTRIBUTION_KINDS
        }
        employee_total = sum((c.employee_share for c in contributions.values()), ZERO)

        taxable = monthly_gross
        if self.config.tax_after_contributions:
            taxable = max(ZERO, monthly_gross - employee_total)
        tax = self.withholding_tax(tables.get(BracketKind.TAX, ()), taxable, as_of)

        health = contributions[BracketKind.HEALTH]
        social = contributions[BracketKind.SOCIAL]
        housing = contributions[BracketKind.HOUSING]
        return StatutoryDeductions(
            gross=money(monthly_gross),
            taxable_income=money(taxable),
            tax=tax,
            health=health.employee_share,
            social=social.employee_share,
            housing=housing.employee_share,
            health_employer=health.employer_share,
            social_employer=social.employer_share,
            housing_employer=housing.employer_share,
        )

    def withholding_tax(
        self,
        brackets: Sequence[Bracket],
        taxable: Decimal,
        as_of: date,
    ) -> Decimal:
        bracket = lookup(brackets, taxable, as_of, kind=BracketKind.TAX)
        tax = bracket.base_amount + bracket.rate * (taxable - bracket.min_amount)
        return money(max(ZERO, tax))

    def contribution(
        self,
        kind: BracketKind,
        brackets: Sequence[Bracket],
        gross: Decimal,
        as_of: date,
    ) -> Contribution:
        bracket = lookup(brackets, gross, as_of, kind=kind)
        base = clamp_base(bracket, gross)
        employee = bracket.base_amount + bracket.rate * base
        if bracket.max_contribution is not None:
            employee = min(employee, bracket.max_contribution)
        return Contribution(
            kind=kind,
            employee_share=money(employee),
            employer_share=money(bracket.employer_rate * base),
            base=base,
        )
