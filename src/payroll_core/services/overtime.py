"""Overtime request aggregation."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from payroll_core.models.records import Overtime, OvertimeStatus


@dataclass
class OvertimeSummary:
    total_requests: int = 0
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    approved_minutes: int = 0
    requested_minutes: int = 0
    approved_minutes_by_employee: dict[UUID, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "approved": self.approved,
            "pending": self.pending,
            "rejected": self.rejected,
            "approved_minutes": self.approved_minutes,
            "approved_hours": round(self.approved_minutes / 60, 2),
            "requested_minutes": self.requested_minutes,
        }


def aggregate_overtime(requests: Iterable[Overtime]) -> OvertimeSummary:
    """Count requests by status. Rejected requests are neither approved nor pending."""
    summary = OvertimeSummary()
    per_employee: dict[UUID, int] = defaultdict(int)
    for request in requests:
        summary.total_requests += 1
        summary.requested_minutes += request.requested_minutes
        if request.status == OvertimeStatus.APPROVED:
            summary.approved += 1
            summary.approved_minutes += request.approved_minutes
            per_employee[request.employee_id] += request.approved_minutes
        elif request.status == OvertimeStatus.PENDING:
            summary.pending += 1
        else:
            summary.rejected += 1
    summary.approved_minutes_by_employee = dict(per_employee)
    return summary
