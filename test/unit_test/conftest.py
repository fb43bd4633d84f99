"""Shared fixtures for the unit tests.

Every test gets its own in-memory SQLite database with all tables created.
The database URL is set before anything imports the application so that the
global engine never points at PostgreSQL during tests.
"""

import os
from datetime import datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel.pool import StaticPool

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Set test database URL before importing app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

# Promotions are open before this instant in the tests that need them
PROMO_OPEN = datetime(2100, 1, 1)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a fresh database engine with every table."""
    from akari.core.database.utils import create_all

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    from akari.core.database.utils import create_sessionmaker

    async with create_sessionmaker(test_engine)() as session:
        yield session


@pytest.fixture
def make_user(session: AsyncSession):
    """Factory persisting a Mini App user."""
    from akari.core.database.entities.users import User

    counter = {"next": 1000}

    async def _make(telegram_id=None, **kwargs):
        if telegram_id is None:
            counter["next"] += 1
            telegram_id = counter["next"]
        user = User(telegram_id=str(telegram_id), **kwargs)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make


@pytest.fixture
def fund(session: AsyncSession):
    """Factory crediting MYST straight into the ledger."""
    from akari.core.database.entities.myst import MystTransaction

    async def _fund(user_id: str, amount: float, tx_type: str = "admin_grant"):
        session.add(MystTransaction(user_id=user_id, type=tx_type, amount=amount))
        await session.commit()

    return _fund
