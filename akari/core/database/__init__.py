"""
Centralized database layer for AKARI.

Structure:
- entities/: SQLModel table models grouped by business domain
- repositories/: Data access layer grouped by business domain
- session.py: Global engine and session factory management
- utils.py: Engine, session factory, table creation and retry helpers
"""

from .base import Base, new_id, utc_now
from .session import async_session_maker, engine, get_session, init_db
from .utils import create_all, create_engine, create_sessionmaker, with_db_retry

__all__ = [
    "Base",
    "async_session_maker",
    "create_all",
    "create_engine",
    "create_sessionmaker",
    "engine",
    "get_session",
    "init_db",
    "new_id",
    "utc_now",
    "with_db_retry",
]
