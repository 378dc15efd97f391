"""Effective-dated bracket selection over statutory rate tables."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from payroll_core.errors import PayrollCoreError, ValidationError
from payroll_core.models.records import ZERO, Bracket, BracketKind


class NoMatchingBracketError(PayrollCoreError):
    """Raised when no effective bracket covers an amount."""

    code = "NO_MATCHING_BRACKET"

    def __init__(self, kind: BracketKind | str | None, amount: Decimal, as_of: date):
        self.kind = kind
        self.amount = amount
        self.as_of = as_of
        label = getattr(kind, "value", kind) or "unknown"
        super().__init__(
            f"No {label} bracket covers amount {amount} effective {as_of.isoformat()}"
        )


class BracketTableError(PayrollCoreError):
    """Raised when an effective table has overlaps or gaps."""

    code = "BRACKET_TABLE_ERROR"

    def __init__(self, kind: BracketKind | str | None, as_of: date, reason: str):
        self.kind = kind
        self.as_of = as_of
        self.reason = reason
        label = getattr(kind, "value", kind) or "unknown"
        super().__init__(f"Invalid {label} bracket table on {as_of.isoformat()}: {reason}")


def _kind_of(brackets: Sequence[Bracket]) -> BracketKind | None:
    return brackets[0].kind if brackets else None


def effective_brackets(brackets: Sequence[Bracket], as_of: date) -> list[Bracket]:
    """Brackets effective on as_of, ordered by lower bound."""
    return sorted(
        (b for b in brackets if b.is_effective_on(as_of)),
        key=lambda b: b.min_amount,
    )


def lookup(
    brackets: Sequence[Bracket],
    amount: Decimal,
    as_of: date,
    kind: BracketKind | None = None,
) -> Bracket:
    """Select the single effective bracket whose range contains amount.

    Ranges are min-inclusive and max-exclusive. Never falls back to a zero
    bracket: an uncovered amount is a NoMatchingBracketError.
    """
    kind = kind or _kind_of(brackets)
    if amount < 0:
        raise ValidationError(f"Bracket lookup amount must not be negative, got {amount}")

    matches = [b for b in effective_brackets(brackets, as_of) if b.contains(amount)]
    if not matches:
        raise NoMatchingBracketError(kind, amount, as_of)
    if len(matches) > 1:
        bounds = ", ".join(f"[{b.min_amount}, {b.max_amount})" for b in matches)
        raise BracketTableError(kind, as_of, f"amount {amount} matches overlapping ranges {bounds}")
    return matches[0]


def clamp_base(bracket: Bracket, amount: Decimal) -> Decimal:
    """Apply the bracket's floor and ceiling to a computation base."""
    base = amount
    if bracket.base_floor is not None and base < bracket.base_floor:
        base = bracket.base_floor
    if bracket.base_ceiling is not None and base > bracket.base_ceiling:
        base = bracket.base_ceiling
    return base


def validate_table(
    brackets: Sequence[Bracket],
    as_of: date,
    kind: BracketKind | None = None,
) -> None:
    """Check that the effective ranges partition [0, infinity).

    Raises BracketTableError on an empty table, a gap, an overlap, an empty
    range or a bounded last range.
    """
    kind = kind or _kind_of(brackets)
    table = effective_brackets(brackets, as_of)
    if not table:
        raise BracketTableError(kind, as_of, "no brackets effective")

    expected_min = ZERO
    for i, bracket in enumerate(table):
        if bracket.min_amount > expected_min:
            raise BracketTableError(
                kind, as_of, f"gap between {expected_min} and {bracket.min_amount}"
            )
        if bracket.min_amount < expected_min:
            raise BracketTableError(
                kind, as_of, f"range starting at {bracket.min_amount} overlaps {expected_min}"
            )
        if bracket.max_amount is None:
            if i != len(table) - 1:
                raise BracketTableError(
                    kind, as_of, f"unbounded range at {bracket.min_amount} is not last"
                )
            return
        if bracket.max_amount <= bracket.min_amount:
            raise BracketTableError(
                kind, as_of, f"empty range [{bracket.min_amount}, {bracket.max_amount})"
            )
        expected_min = bracket.max_amount

    raise BracketTableError(kind, as_of, f"no range covers amounts from {expected_min}")
