"""Database configuration and session management.

Provides the async SQLAlchemy engine, the session factory handed to
repositories, and schema helpers used by scripts and health checks.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.infrastructure.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Objects stay readable after commit; services return them to the HTTP layer.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session scoped to one request.

    Services own their commit points; this only rolls back
    whatever is left open when the request fails.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create all tables known to the model metadata.

    Args:
        bind: Engine to use. Defaults to the application engine.
    """
    # Registers the catalog tables on Base.metadata.
    import app.catalog.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_connection(session: AsyncSession) -> bool:
    """Run a trivial query to confirm the database answers.

    Args:
        session: Session to probe with.

    Returns:
        True when the query succeeds.
    """
    result = await session.execute(text("SELECT 1"))
    return result.scalar_one() == 1
