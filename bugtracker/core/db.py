"""
Database Session Management
SQLAlchemy 2.0 Async Session Configuration
"""

from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)

from bugtracker.core.config import settings
from bugtracker.models.base import Base


# Async Engine (created lazily on first use)
async_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_async_engine() -> AsyncEngine:
    """
    Get or create async database engine

    Returns:
        AsyncEngine instance
    """
    global async_engine

    if async_engine is None:
        url = settings.async_database_url
        pool_options = {}
        if not url.startswith("sqlite"):
            pool_options = {
                "pool_size": settings.database_pool_size,
                "max_overflow": settings.database_max_overflow,
            }
        async_engine = create_async_engine(
            url,
            echo=settings.database_echo,
            pool_pre_ping=True,  # Verify connections before using
            **pool_options,
        )

    return async_engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory bound to the engine."""
    global _session_maker

    if _session_maker is None:
        _session_maker = async_sessionmaker(
            bind=get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,  # Prevent lazy-loading issues
            autocommit=False,
            autoflush=False,
        )
    return _session_maker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI routes to get database session

    Usage:
        @router.get("/example")
        async def example(session: AsyncSession = Depends(get_session)):
            ...

    Yields:
        AsyncSession instance
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """
    Initialize database (create tables)
    Should only be used in development.
    """
    from bugtracker import models  # noqa: F401  registers every table

    engine = get_async_engine()
    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """
    Close database connections
    Should be called on application shutdown
    """
    global async_engine, _session_maker

    if async_engine is not None:
        await async_engine.dispose()
        async_engine = None
        _session_maker = None
