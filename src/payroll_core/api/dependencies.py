"""FastAPI dependencies for dependency injection."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status

from payroll_core.services.payroll_service import PayrollService
from payroll_core.services.summary_service import PayrollSummaryService


async def get_organization_id(
    x_organization_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract organization ID from header."""
    if not x_organization_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Organization-ID header is required",
        )
    try:
        return UUID(x_organization_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Organization-ID format",
        )


def get_summary_service(request: Request) -> PayrollSummaryService:
    return request.app.state.summary_service


def get_payroll_service(request: Request) -> PayrollService:
    return request.app.state.payroll_service


# Type aliases for cleaner dependency injection
OrganizationId = Annotated[UUID, Depends(get_organization_id)]
SummaryService = Annotated[PayrollSummaryService, Depends(get_summary_service)]
PayrollServiceDep = Annotated[PayrollService, Depends(get_payroll_service)]
