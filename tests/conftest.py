"""Root conftest — shared test configuration, database and clock fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database with all tables created
    - Time is a FixedClock the test can advance; nothing reads the wall clock

Design Decisions:
    - SQLite in-memory: fast, no external dependency; PostgreSQL-only features
      (row locks) degrade to no-ops and are not exercised here
    - Objects touched by a failed operation are expired by its rollback, so
      assertions after a failure use a fresh session from test_session_factory
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from bibli.db.base import Base  # noqa: E402
import bibli.models  # noqa: E402,F401

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock stub: returns `current` until advanced."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, days: int = 0, **kwargs) -> None:
        self.current = self.current + timedelta(days=days, **kwargs)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session
