"""
Database utility functions for engine and session management.

Functions:
- create_engine: Creates async SQLAlchemy engine with URL normalization
- create_sessionmaker: Creates async session factory with safe defaults
- create_all: Creates all tables from ORM metadata
- with_db_retry: Retries an async database operation on transient errors
"""

from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from akari.core.logging_config import get_logger

from .base import Base

logger = get_logger(__name__)

T = TypeVar("T")


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The helper normalizes Postgres URLs to ensure the async driver is used.
    For example, it rewrites ``postgresql://`` and ``postgres://`` to
    ``postgresql+asyncpg://``. Other URLs (SQLite in tests) pass through.

    Args:
        db_url: Database connection URL

    Returns:
        Configured AsyncEngine instance
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project.

    Args:
        engine: Async SQLAlchemy engine

    Returns:
        Configured async session factory
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata.

    Args:
        engine: Async SQLAlchemy engine
    """
    # Register every table on the shared metadata
    from . import entities  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def with_db_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 0.2,
    label: str = "db operation",
) -> T:
    """Run ``operation`` and retry it on transient database errors.

    The delay grows linearly (``base_delay * attempt``). The last error is
    re-raised once all attempts are used.

    Args:
        operation: Zero-argument coroutine factory
        attempts: Total number of tries
        base_delay: Seconds to wait after the first failure
        label: Name used in log messages

    Returns:
        Whatever ``operation`` returns
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except (OperationalError, DBAPIError) as e:
            if attempt == attempts:
                logger.error(f"{label} failed after {attempts} attempts: {e}")
                raise
            logger.warning(f"{label} failed (attempt {attempt}/{attempts}), retrying: {e}")
            await asyncio.sleep(base_delay * attempt)
    raise AssertionError("unreachable")
