"""Shared test fixtures.

Tests run against an in-memory SQLite database through aiosqlite. Each
fixture that calls ``init_db`` gets a fresh engine and therefore a fresh,
empty database.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from examprep.config import get_settings
from examprep.database import close_db, create_tables, get_session_factory, init_db
from examprep.progress.store import ProgressStore

TEST_DATABASE_URL = "sqlite+aiosqlite://"

os.environ.setdefault("EXAMPREP_DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("EXAMPREP_LOG_FORMAT", "console")


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings so per-test env overrides take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def small_window(monkeypatch: pytest.MonkeyPatch) -> int:
    """Shrink the hot session window so archiving is cheap to trigger."""
    monkeypatch.setenv("EXAMPREP_SESSION_WINDOW", "5")
    get_settings.cache_clear()
    return 5


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Direct database session over a fresh in-memory schema."""
    await init_db(TEST_DATABASE_URL)
    await create_tables()
    async with get_session_factory()() as session:
        yield session
    await close_db()


@pytest_asyncio.fixture
async def store(db_session: AsyncSession) -> ProgressStore:
    return ProgressStore(db_session)


@pytest.fixture
def mock_redis(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Redis stand-in for the readiness probe and the worker lock."""
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    monkeypatch.setattr("examprep.health.router.get_redis", lambda: redis)
    return redis


@pytest_asyncio.fixture
async def client(mock_redis: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the app, backed by a fresh in-memory database."""
    from examprep.main import create_app

    app = create_app()
    await init_db(TEST_DATABASE_URL)
    await create_tables()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await close_db()
