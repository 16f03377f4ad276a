"""Database engine, session factory and schema setup."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

# Register tables with SQLModel metadata before create_all
from imagegen import models  # noqa: F401


def create_engine(db_url: str, pool_size: int = 10, timeout_seconds: int = 10) -> AsyncEngine:
    """Create the async engine with bounded timeouts.

    Args:
        db_url: SQLAlchemy async URL (postgresql+psycopg://... or sqlite+aiosqlite://...)
        pool_size: Maximum number of pooled connections (ignored for SQLite)
        timeout_seconds: Upper bound for pool checkout, connect and statement execution

    Returns:
        AsyncEngine instance
    """
    if db_url.startswith("sqlite"):
        return create_async_engine(db_url, echo=False)

    return create_async_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=0,  # No overflow beyond pool_size
        pool_pre_ping=True,  # Verify connections before using
        pool_timeout=timeout_seconds,
        connect_args={
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_seconds * 1000}",
        },
        echo=False,  # Don't log SQL queries (use structlog instead)
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
