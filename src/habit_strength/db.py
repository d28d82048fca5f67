"""SQLite database connection and schema management.

Habits live in ~/.habit-strength/habits.db unless DATA_DIR points elsewhere,
or DATABASE_URL names a different async SQLAlchemy URL outright.
WAL mode lets stats reads run while a completion is being written.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.expanduser("~/.habit-strength")
DB_FILENAME = "habits.db"


def get_data_dir() -> Path:
    """Get the data directory, creating it if needed."""
    data_dir = Path(os.environ.get("DATA_DIR", DEFAULT_DATA_DIR))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_url() -> str:
    """DATABASE_URL if set, otherwise the SQLite file in the data directory."""
    url = os.environ.get("DATABASE_URL", "").strip()
    if url:
        return url
    return f"sqlite+aiosqlite:///{get_data_dir() / DB_FILENAME}"


def _on_sqlite_connect(dbapi_connection, connection_record):
    """Per-connection pragmas: WAL journaling, lock wait, and cascading deletes."""
    cursor = dbapi_connection.cursor()
    for pragma in (
        "journal_mode=WAL",
        "synchronous=NORMAL",
        "busy_timeout=5000",
        "foreign_keys=ON",
    ):
        cursor.execute(f"PRAGMA {pragma}")
    cursor.close()


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        url = get_db_url()
        _engine = create_async_engine(url, echo=False)
        if _engine.dialect.name == "sqlite":
            event.listen(_engine.sync_engine, "connect", _on_sqlite_connect)
        logger.debug("Created database engine for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def init_db():
    """Create the habit and completion tables if they don't exist."""
    from .sqlmodels import Base

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Habit database ready at %s", engine.url.render_as_string(hide_password=True))


async def close_db():
    """Dispose of the engine; the next call to get_engine() starts fresh."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
