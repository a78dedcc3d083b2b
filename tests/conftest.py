"""
Top-level pytest configuration.

Provides:
  - Environment defaults applied before any discovery module is imported.
  - Settings with shrunk delays so debounce and banner timers finish quickly.
  - A SQLite in-memory engine (aiosqlite) with all tables created per test.
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Environment must be set BEFORE any discovery module is imported so that
# pydantic-settings picks up the test values.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from discovery.core.config import Settings

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with delays shrunk so timers complete within a test."""
    return Settings(
        search_debounce_seconds=0.01,
        swipe_error_dismiss_seconds=0.05,
        load_error_dismiss_seconds=0.05,
        database_url_override=TEST_DATABASE_URL,
    )


# ---------------------------------------------------------------------------
# Per-test SQLite engine (in-memory, shared via StaticPool so every session
# sees the same data).
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    """Create the SQLite test engine and all tables for one test."""
    from discovery.core.database import Base

    # Force model modules to load so their tables register on Base.metadata
    import discovery.models.profile  # noqa: F401
    import discovery.models.swipe    # noqa: F401
    import discovery.models.match    # noqa: F401

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    from discovery.core.database import create_session_factory
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def seed_profiles(session_factory):
    """Insert ORM profiles; returns an async callable taking model kwargs."""
    from discovery.models.profile import Profile

    async def _seed(*rows: dict) -> None:
        async with session_factory() as db:
            for row in rows:
                data = {"display_name": f"Creator {row['id']}", **row}
                db.add(Profile(**data))
            await db.commit()

    return _seed
