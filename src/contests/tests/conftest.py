"""
Shared fixtures: an in-memory SQLite store with the contest tables.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from contests.service import ContestQueryService


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def seed(engine):
    """Insert rows through a separate, committed session."""

    async def _seed(*rows):
        async with AsyncSession(engine, expire_on_commit=False) as seed_session:
            seed_session.add_all(rows)
            await seed_session.commit()

    return _seed


@pytest.fixture
def service(engine):
    return ContestQueryService(engine=engine)
