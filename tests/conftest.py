"""
Shared pytest fixtures for PaperDrill tests.

- **now**: fixed reference time; nothing under test reads the wall clock
- **db**: a fresh SQLite database in ``tmp_path``
- **make_paper**: in-memory Paper builder for the pure services
- **add_paper**: persists a paper and optionally sets its grading state
"""
from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any

import aiosqlite
import pytest
import pytest_asyncio

from paperdrill.config import settings
from paperdrill.db.sqlite import create_paper, init_sqlite, update_paper
from paperdrill.models.paper import Paper, PaperCreate

NOW = datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)
OWNER = "owner-1"
OTHER_OWNER = "owner-2"


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest_asyncio.fixture
async def db(tmp_path):
    await init_sqlite(tmp_path)
    async with aiosqlite.connect(tmp_path / settings.sqlite_filename) as conn:
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        yield conn


@pytest.fixture
def make_paper():
    counter = itertools.count(1)

    def _make(tags: list[str] | None = None, **fields: Any) -> Paper:
        n = next(counter)
        data: dict[str, Any] = {
            "id": f"paper-{n}",
            "owner_id": OWNER,
            "file_path": f"scans/{n}.png",
            "tags": tags or [],
            "is_correct": None,
            "last_practiced": None,
            "next_practice_due": None,
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(fields)
        return Paper(**data)

    return _make


@pytest.fixture
def add_paper(db):
    async def _add(
        tags: list[str] | None = None,
        owner_id: str = OWNER,
        created_at: datetime = NOW,
        **state: Any,
    ) -> Paper:
        paper = await create_paper(
            db, owner_id, PaperCreate(file_path="scans/x.png", tags=tags or []), created_at
        )
        if state:
            paper = await update_paper(db, paper.id, state, created_at)
        return paper

    return _add
