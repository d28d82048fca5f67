from __future__ import annotations

import pytest

from habit_strength.db import close_db, init_db


@pytest.fixture
async def db(tmp_path, monkeypatch):
    """Fresh SQLite database in a temporary data directory."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    await init_db()
    yield tmp_path
    await close_db()
