"""API routes."""

from payroll_core.api.routes.health import router as health_router
from payroll_core.api.routes.payroll import router as payroll_router

__all__ = ["payroll_router", "health_router"]
