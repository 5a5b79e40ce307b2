"""Async SQLAlchemy database setup."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rankscout.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.database_echo,
    pool_pre_ping=True,
    pool_recycle=300,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def _rollback_quietly(session: AsyncSession, exc: BaseException) -> None:
    logger.warning("Database session error, rolling back", extra={"error": repr(exc)})
    try:
        await session.rollback()
    except Exception:
        logger.warning("Rollback also failed (connection likely closed)")


@asynccontextmanager
async def get_session_context(
    *,
    commit_on_exit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session as context manager for non-DI usage."""
    async with async_session_maker() as session:
        try:
            yield session
            if commit_on_exit:
                await session.commit()
        except Exception as exc:
            await _rollback_quietly(session, exc)
            raise


async def init_db() -> None:
    """Initialize database (create tables if needed)."""
    logger.info("Initializing database tables")
    from rankscout.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    logger.info("Closing database connections")
    await engine.dispose()
