"""Shared fixtures for API tests.

The API runs on its own event loop inside TestClient, so these tests
use a file-backed SQLite database without connection pooling; every
request opens a fresh connection on whichever loop is running.
"""

import asyncio
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.api.products import get_upload_gateway
from app.catalog.models import Category
from app.infrastructure.database import create_tables, get_session
from app.main import app
from tests.support import FakeUploadGateway


@pytest.fixture
def api_engine(tmp_path: Path) -> Generator[AsyncEngine, None, None]:
    """Create a file-backed database with catalog tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}", poolclass=NullPool)
    asyncio.run(create_tables(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def api_categories(api_engine: AsyncEngine) -> list[Category]:
    """Create two categories in the API database."""
    factory = async_sessionmaker(api_engine, class_=AsyncSession, expire_on_commit=False)

    async def seed() -> list[Category]:
        async with factory() as session:
            rows = [Category(name="Electronics"), Category(name="Books")]
            session.add_all(rows)
            await session.commit()
            return rows

    return asyncio.run(seed())


@pytest.fixture
def upload_gateway() -> FakeUploadGateway:
    """Upload gateway used by the API under test."""
    return FakeUploadGateway()


@pytest.fixture
def client(
    api_engine: AsyncEngine,
    upload_gateway: FakeUploadGateway,
) -> Generator[TestClient, None, None]:
    """Create test client wired to the test database and gateway."""
    factory = async_sessionmaker(api_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def override_gateway() -> AsyncGenerator[FakeUploadGateway, None]:
        yield upload_gateway

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_upload_gateway] = override_gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
