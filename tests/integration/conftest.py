"""Integration test fixtures with a real database and the HTTP app."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_core.api.app import create_app
from payroll_core.database import create_schema, make_session_factory
from payroll_core.stores.sql import SqlPayrollStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class TickingClock:
    """Clock that advances one second per call, so log rows order by time."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 3, 16, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database with the payroll schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(test_engine)


@pytest.fixture
def sql_store(session_factory) -> SqlPayrollStore:
    return SqlPayrollStore(session_factory)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest_asyncio.fixture
async def client(scenario) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the scenario collaborators."""
    app = create_app(collaborators=scenario.collaborators)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def org_headers(scenario) -> dict[str, str]:
    return {"X-Organization-ID": str(scenario.org_id)}
