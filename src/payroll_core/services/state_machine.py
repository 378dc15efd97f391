"""Payroll state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from payroll_core.errors import PayrollCoreError, ValidationError


class PayrollStatus(str, Enum):
    """Payroll status values."""

    DRAFT = "DRAFT"
    COMPUTED = "COMPUTED"
    APPROVED = "APPROVED"
    RELEASED = "RELEASED"
    VOIDED = "VOIDED"


class PayrollAction(str, Enum):
    """Actions a caller may request on a payroll."""

    GENERATE = "generate"
    APPROVE = "approve"
    RELEASE = "release"
    VOID = "void"


class InvalidStateTransitionError(PayrollCoreError):
    """Raised when an invalid state transition is attempted.

    Also raised when a compare-and-set finds that the persisted status moved
    since it was read; current_status is then the status found in storage.
    """

    code = "INVALID_STATE_TRANSITION"

    def __init__(self, current_status: str, attempted_status: str, reason: str | None = None):
        self.current_status = current_status
        self.attempted_status = attempted_status
        self.reason = reason
        msg = f"Invalid transition from '{current_status}' to '{attempted_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollStateMachine:
    """State machine for payroll status transitions.

    Allowed transitions:
    - DRAFT → COMPUTED (generate; DRAFT is implicit, no record exists)
    - COMPUTED → COMPUTED (generate again, a correction)
    - COMPUTED → APPROVED
    - APPROVED → RELEASED
    - APPROVED → VOIDED (reason required)
    - RELEASED → VOIDED (reason required)
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollStatus.DRAFT: [PayrollStatus.COMPUTED],
        PayrollStatus.COMPUTED: [PayrollStatus.COMPUTED, PayrollStatus.APPROVED],
        PayrollStatus.APPROVED: [PayrollStatus.RELEASED, PayrollStatus.VOIDED],
        PayrollStatus.RELEASED: [PayrollStatus.VOIDED],
        PayrollStatus.VOIDED: [],  # Terminal state
    }

    ACTION_TARGETS: dict[str, PayrollStatus] = {
        PayrollAction.GENERATE: PayrollStatus.COMPUTED,
        PayrollAction.APPROVE: PayrollStatus.APPROVED,
        PayrollAction.RELEASE: PayrollStatus.RELEASED,
        PayrollAction.VOID: PayrollStatus.VOIDED,
    }

    # Statuses that count as a completed run for the period
    COMPLETED = {
        PayrollStatus.COMPUTED,
        PayrollStatus.APPROVED,
        PayrollStatus.RELEASED,
    }

    REASON_REQUIRED = {PayrollStatus.VOIDED}

    @classmethod
    def parse_action(cls, action: str | PayrollAction) -> PayrollAction:
        """Normalize an action name, raising ValidationError if unknown."""
        try:
            return PayrollAction(str(getattr(action, "value", action)).strip().lower())
        except ValueError:
            allowed = ", ".join(a.value for a in PayrollAction)
            raise ValidationError(f"Unknown action '{action}', expected one of: {allowed}") from None

    @classmethod
    def target_for(cls, action: str | PayrollAction) -> PayrollStatus:
        return cls.ACTION_TARGETS[cls.parse_action(action)]

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStateTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(from_status, to_status)

    @classmethod
    def validate_reason(cls, to_status: str, reason: str | None) -> str | None:
        """Require a non-blank reason for statuses that need one."""
        if to_status in cls.REASON_REQUIRED:
            if reason is None or not reason.strip():
                raise ValidationError(f"A reason is required to move a payroll to {to_status}")
            return reason.strip()
        return reason

    @classmethod
    def is_completed(cls, status: str) -> bool:
        return status in cls.COMPLETED

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(status, [])

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
