"""Pytest configuration and fixtures for engine and API tests."""
import os
import sys
from datetime import datetime, timedelta, timezone

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["WORKSPACE_LOCK_BACKEND"] = "local"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from taskflow.main import app
from taskflow.database import get_async_session, make_engine, make_session_factory
from taskflow.models import Base

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def day(n: float) -> datetime:
    """BASE_DATE shifted by ``n`` days."""
    return BASE_DATE + timedelta(days=n)


def iso(n: float) -> str:
    return day(n).isoformat()


def ms(n: float) -> int:
    return int(day(n).timestamp() * 1000)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = make_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine):
    return make_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def test_session(session_maker):
    """Create test database session."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_maker):
    """Create test client with overridden database."""

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_session

    # No Redis in tests: events are dropped, locks stay process-local
    from taskflow import dependencies
    dependencies.redis_client = None

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_task(client):
    """Create a task through the API and return its JSON."""

    async def _make(title, start=None, due=None, milestone=False, **extra):
        body = {
            "workspaceId": extra.pop("workspace_id", "ws_1"),
            "projectId": extra.pop("project_id", "proj_1"),
            "title": title,
            "isMilestone": milestone,
            **extra,
        }
        if start is not None:
            body["startDate"] = iso(start)
        if due is not None:
            body["dueDate"] = iso(due)
        response = await client.post("/v1/tasks", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
