"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_core.api.routes import health_router, payroll_router
from payroll_core.calculators.bracket_lookup import BracketTableError, NoMatchingBracketError
from payroll_core.config import CalculationConfig, settings
from payroll_core.database import create_schema, init_db
from payroll_core.errors import (
    ConfigurationGapError,
    PayrollCoreError,
    PayrollNotFoundError,
    ValidationError,
)
from payroll_core.services.payroll_service import PayrollService
from payroll_core.services.state_machine import InvalidStateTransitionError
from payroll_core.services.summary_service import PayrollSummaryService
from payroll_core.stores.base import CollaboratorUnavailableError, Collaborators
from payroll_core.stores.memory import build_memory_collaborators
from payroll_core.stores.sql import SqlPayrollStore

logger = logging.getLogger(__name__)

# First match wins
ERROR_STATUS: list[tuple[type[PayrollCoreError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PayrollNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateTransitionError, status.HTTP_409_CONFLICT),
    (NoMatchingBracketError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (BracketTableError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConfigurationGapError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (CollaboratorUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: PayrollCoreError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def create_app(
    collaborators: Collaborators | None = None,
    config: CalculationConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without explicit collaborators the app keeps payrolls in the configured
    database and every read-only collaborator in memory.
    """
    session_factory = None
    engine = None
    if collaborators is None:
        engine, session_factory = init_db()
        collaborators = build_memory_collaborators(
            payroll_store=SqlPayrollStore(session_factory)
        )
    config = config or CalculationConfig.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        if engine is not None:
            await create_schema(engine)
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="Payroll Core API",
        description="Payroll summary, deductions and status lifecycle",
        version=settings.engine_version,
        lifespan=lifespan,
    )
    app.state.collaborators = collaborators
    app.state.session_factory = session_factory
    app.state.summary_service = PayrollSummaryService(collaborators, config=config)
    app.state.payroll_service = PayrollService(collaborators, config=config)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollCoreError)
    async def payroll_error_handler(request: Request, exc: PayrollCoreError) -> JSONResponse:
        """Map the error taxonomy onto HTTP statuses."""
        code = status_for(exc)
        if code >= 500:
            logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(
            status_code=code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")

    return app
