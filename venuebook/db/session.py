"""
Async engine, session factory and the unit-of-work deadline guard.
"""

import asyncio
from typing import AsyncGenerator, Awaitable, Optional, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from venuebook.core.config import get_settings
from venuebook.core.exceptions import TransientStorageError
from venuebook.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

T = TypeVar("T")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine; SQLite gets a generous busy timeout instead of a sized pool."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, connect_args={"timeout": 30})
    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session per request; commit what is left, roll back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def run_with_deadline(
    db: AsyncSession,
    operation: Awaitable[T],
    timeout: Optional[float] = None,
    name: str = "unit_of_work",
) -> T:
    """
    Run a storage unit of work under a deadline.

    A timeout or a storage-level OperationalError (lock wait exceeded,
    serialization failure) rolls the session back and surfaces as a
    retryable TransientStorageError, so no half-written row survives.
    """
    deadline = settings.DB_TRANSACTION_TIMEOUT if timeout is None else timeout
    try:
        return await asyncio.wait_for(operation, timeout=deadline)
    except asyncio.TimeoutError:
        await db.rollback()
        logger.warning("transaction_timeout", operation=name, timeout=deadline)
        raise TransientStorageError(f"{name} exceeded its {deadline}s deadline, please retry")
    except OperationalError as exc:
        await db.rollback()
        logger.warning("transaction_contention", operation=name, error=str(exc.orig))
        raise TransientStorageError(f"{name} hit storage contention, please retry") from exc
