"""
BuildMarket Backend: Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the test suite.

Fixture Hierarchy:
    Unit tests (no database):
    ├── mock_db_session: AsyncMock session; see `result_of()` for query results
    ├── sample_build_data / sample_build: a fully populated Build row
    └── sample_build_payload: JSON body for POST /api/builds

    API tests (in-memory SQLite through aiosqlite):
    ├── database: fresh schema per test
    ├── app: create_app() wired to that database
    └── test_client: HTTPX AsyncClient on ASGITransport
"""

import os

# Before any buildmarket import: the module-level settings/app read these
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from buildmarket.config import Settings
from buildmarket.database import Database
from buildmarket.main import create_app
from buildmarket.models.build import Build

ADMIN_KEY = "test-admin-key"


def result_of(
    scalar: Any = None,
    scalars: Optional[list] = None,
    one: Optional[tuple] = None,
    rows: Optional[list] = None,
) -> MagicMock:
    """
    A stand-in for the Result returned by `await session.execute(...)`.

    Usage:
        mock_db_session.execute.return_value = result_of(scalar=build)
    """
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.one.return_value = one
    result.all.return_value = rows or []
    return result


# ══════════════════════════════════════════════════════════════════════════
# Unit-test fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def db_result():
    """The `result_of` helper as a fixture."""
    return result_of


@pytest.fixture
def mock_db_session():
    """
    Mock async session. `execute` and `get` are awaited by services; give
    them return values (or side_effect lists) per test.
    """
    session = AsyncMock()
    session.execute = AsyncMock(return_value=result_of())
    session.get = AsyncMock(return_value=None)
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_build_data():
    now = datetime.now(timezone.utc)
    return {
        "id": uuid4(),
        "seller_id": "seller-1",
        "seller_name": "DimeDropper",
        "title": "Two-Way Slashing Playmaker",
        "game_type": "basketball",
        "position": "SF",
        "archetype": "Slashing Playmaker",
        "description": "Elite finishing with lockdown perimeter defense.",
        "price_cents": 1499,
        "import_code": "2K-IMPORT-ABCD-1234",
        "build_vector": [3, 4, 7, 6, 5, 8, 7, 4],
        "performance": {"shooting": 62.0, "speed": 85.0},
        "attributes": None,
        "overall_rating": None,
        "height_in": 79,
        "weight_lbs": 215,
        "status": "active",
        "featured": False,
        "view_count": 0,
        "review_count": 0,
        "rating_total": 0,
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def sample_build(sample_build_data):
    return Build(**sample_build_data)


@pytest.fixture
def sample_build_payload():
    return {
        "seller_id": "seller-1",
        "seller_name": "DimeDropper",
        "title": "Two-Way Slashing Playmaker",
        "game_type": "basketball",
        "position": "SF",
        "archetype": "Slashing Playmaker",
        "description": "Elite finishing with lockdown perimeter defense.",
        "price_cents": 1499,
        "import_code": "2K-IMPORT-ABCD-1234",
        "build_vector": [3, 4, 7, 6, 5, 8, 7, 4],
        "performance": {"shooting": 62, "speed": 85},
        "height_in": 79,
        "weight_lbs": 215,
    }


# ══════════════════════════════════════════════════════════════════════════
# API fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        admin_api_key=ADMIN_KEY,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database():
    """One in-memory SQLite database per test; StaticPool keeps it alive."""
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def app(test_settings, database):
    return create_app(settings=test_settings, database=database)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
