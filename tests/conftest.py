"""Shared fixtures for catalog tests.

Tests run against SQLite through aiosqlite; the application engine is
pointed at an in-memory database before any app module is imported.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.catalog.models import Category
from app.infrastructure.database import Base
from tests.support import FakeUploadGateway


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory database with all catalog tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a session on the test database."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def categories(session: AsyncSession) -> list[Category]:
    """Create three categories."""
    rows = [
        Category(name="Electronics", description="Phones and computers"),
        Category(name="Books"),
        Category(name="Garden"),
    ]
    session.add_all(rows)
    await session.commit()
    return rows


@pytest.fixture
def gateway() -> FakeUploadGateway:
    """Create an upload gateway where every upload succeeds."""
    return FakeUploadGateway()
