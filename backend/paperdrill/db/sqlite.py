import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from paperdrill.config import settings
from paperdrill.errors import NotFoundError, PersistenceError
from paperdrill.models.grade import GradeRecord
from paperdrill.models.paper import Paper, PaperCreate, TagOperation
from paperdrill.services.scheduler import ensure_utc

logger = logging.getLogger(__name__)

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS papers (
    id                TEXT PRIMARY KEY,
    owner_id          TEXT NOT NULL,
    file_path         TEXT NOT NULL,
    tags              TEXT NOT NULL DEFAULT '[]',
    is_correct        INTEGER,
    last_practiced    TEXT,
    next_practice_due TEXT,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_papers_owner ON papers(owner_id, created_at);
CREATE INDEX IF NOT EXISTS idx_papers_due ON papers(owner_id, next_practice_due);

CREATE TABLE IF NOT EXISTS grade_records (
    id          TEXT PRIMARY KEY,
    paper_id    TEXT NOT NULL,  -- no FK: history outlives deleted papers
    owner_id    TEXT NOT NULL,
    is_correct  INTEGER NOT NULL,
    graded_at   TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_grades_paper ON grade_records(paper_id);
CREATE INDEX IF NOT EXISTS idx_grades_owner ON grade_records(owner_id, graded_at);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""

# v1 declared grade_records.paper_id with ON DELETE CASCADE; rebuild without it
MIGRATION_V2_SQL = """
CREATE TABLE grade_records_v2 (
    id          TEXT PRIMARY KEY,
    paper_id    TEXT NOT NULL,
    owner_id    TEXT NOT NULL,
    is_correct  INTEGER NOT NULL,
    graded_at   TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
INSERT INTO grade_records_v2 SELECT id, paper_id, owner_id, is_correct, graded_at, created_at FROM grade_records;
DROP TABLE grade_records;
ALTER TABLE grade_records_v2 RENAME TO grade_records;
CREATE INDEX IF NOT EXISTS idx_grades_paper ON grade_records(paper_id);
CREATE INDEX IF NOT EXISTS idx_grades_owner ON grade_records(owner_id, graded_at);
INSERT OR IGNORE INTO schema_version(version) VALUES (2);
"""

# Never-graded and incorrect papers are always due; others once their date passes.
_DUE_SQL = """(
    last_practiced IS NULL
    OR is_correct = 0
    OR next_practice_due <= ?
)"""
# Honors the schedule of incorrect papers; only unscheduled ones stay due.
_DUE_SQL_SCHEDULED_ONLY = """(
    last_practiced IS NULL
    OR (next_practice_due IS NULL AND is_correct = 0)
    OR next_practice_due <= ?
)"""

_UPDATABLE_FIELDS = {"tags", "is_correct", "last_practiced", "next_practice_due", "file_path"}


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        cursor = await db.execute("SELECT MAX(version) FROM schema_version")
        current_version = (await cursor.fetchone())[0]
        if current_version < 2:
            await db.executescript(MIGRATION_V2_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


@asynccontextmanager
async def _store_errors(action: str) -> AsyncIterator[None]:
    """Wrap driver exceptions raised inside the block into PersistenceError."""
    try:
        yield
    except aiosqlite.Error as exc:
        logger.error("SQLite failure while trying to %s: %s", action, exc)
        raise PersistenceError(f"Failed to {action}") from exc


def to_db_time(value: datetime) -> str:
    """Fixed-width UTC text, so string comparison in SQL orders by time."""
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip blanks and drop duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        name = tag.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


def _row_to_paper(row: aiosqlite.Row) -> Paper:
    d = dict(row)
    d["tags"] = json.loads(d["tags"] or "[]")
    return Paper(**d)


def _row_to_grade(row: aiosqlite.Row) -> GradeRecord:
    return GradeRecord(**dict(row))


# --- Papers ---


async def create_paper(
    db: aiosqlite.Connection, owner_id: str, paper: PaperCreate, now: datetime
) -> Paper:
    paper_id = str(uuid.uuid4())
    stamp = to_db_time(now)
    async with _store_errors("create paper"):
        await db.execute(
            """INSERT INTO papers
               (id, owner_id, file_path, tags, is_correct, last_practiced,
                next_practice_due, created_at, updated_at)
               VALUES (?, ?, ?, ?, NULL, NULL, NULL, ?, ?)""",
            (
                paper_id,
                owner_id,
                paper.file_path,
                json.dumps(normalize_tags(paper.tags)),
                stamp,
                stamp,
            ),
        )
        await db.commit()
    return await get_paper(db, paper_id)  # type: ignore[return-value]


async def get_paper(db: aiosqlite.Connection, paper_id: str) -> Paper | None:
    async with _store_errors("read paper"):
        cursor = await db.execute("SELECT * FROM papers WHERE id = ?", (paper_id,))
        row = await cursor.fetchone()
    if row is None:
        return None
    return _row_to_paper(row)


async def get_owned_paper(
    db: aiosqlite.Connection, owner_id: str, paper_id: str
) -> Paper | None:
    """Like get_paper, but a paper owned by someone else reads as missing."""
    paper = await get_paper(db, paper_id)
    if paper is None or paper.owner_id != owner_id:
        return None
    return paper


def _owner_filters(
    owner_id: str,
    *,
    is_correct: bool | None = None,
    due_at: datetime | None = None,
    scheduled_only: bool = False,
    tags: list[str] | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
) -> tuple[str, list[Any]]:
    clauses = ["owner_id = ?"]
    params: list[Any] = [owner_id]

    if is_correct is not None:
        clauses.append("is_correct = ?")
        params.append(int(is_correct))
    if due_at is not None:
        clauses.append(_DUE_SQL_SCHEDULED_ONLY if scheduled_only else _DUE_SQL)
        params.append(to_db_time(due_at))
    for tag in normalize_tags(tags or []):
        clauses.append(
            "EXISTS (SELECT 1 FROM json_each(papers.tags) WHERE json_each.value = ?)"
        )
        params.append(tag)
    if created_from is not None:
        clauses.append("created_at >= ?")
        params.append(to_db_time(created_from))
    if created_to is not None:
        clauses.append("created_at <= ?")
        params.append(to_db_time(created_to))
    return " AND ".join(clauses), params


async def query_papers_by_owner(
    db: aiosqlite.Connection,
    owner_id: str,
    *,
    limit: int | None = None,
    offset: int = 0,
    **filters: Any,
) -> list[Paper]:
    """
    Return the owner's papers matching every given filter, newest first.

    Filters: ``is_correct``, ``due_at`` (with ``scheduled_only``), ``tags``
    (paper must carry all), ``created_from`` / ``created_to``.
    """
    where, params = _owner_filters(owner_id, **filters)
    sql = f"SELECT * FROM papers WHERE {where} ORDER BY created_at DESC"  # noqa: S608
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])

    async with _store_errors("query papers"):
        cursor = await db.execute(sql, params)
        rows = await cursor.fetchall()
    return [_row_to_paper(r) for r in rows]


async def count_papers_by_owner(
    db: aiosqlite.Connection, owner_id: str, **filters: Any
) -> int:
    where, params = _owner_filters(owner_id, **filters)
    async with _store_errors("count papers"):
        cursor = await db.execute(
            f"SELECT COUNT(*) FROM papers WHERE {where}",  # noqa: S608
            params,
        )
        row = await cursor.fetchone()
    return row[0] if row else 0


async def update_paper(
    db: aiosqlite.Connection, paper_id: str, fields: dict[str, Any], now: datetime
) -> Paper | None:
    """Apply a partial update. Returns None when the paper does not exist."""
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {sorted(unknown)}")

    values = _encode_fields(fields)
    values["updated_at"] = to_db_time(now)
    set_clause = ", ".join(f"{k} = ?" for k in values)

    async with _store_errors("update paper"):
        cursor = await db.execute(
            f"UPDATE papers SET {set_clause} WHERE id = ?",  # noqa: S608
            [*values.values(), paper_id],
        )
        await db.commit()
    if cursor.rowcount == 0:
        return None
    return await get_paper(db, paper_id)


def _encode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    encoded: dict[str, Any] = {}
    for key, val in fields.items():
        if key == "tags":
            val = json.dumps(normalize_tags(val))
        elif key == "is_correct" and val is not None:
            val = int(val)
        elif isinstance(val, datetime):
            val = to_db_time(val)
        encoded[key] = val
    return encoded


async def edit_paper_tags(
    db: aiosqlite.Connection,
    owner_id: str,
    paper_id: str,
    tags: list[str],
    operation: TagOperation,
    now: datetime,
) -> Paper:
    paper = await get_owned_paper(db, owner_id, paper_id)
    if paper is None:
        raise NotFoundError([paper_id])

    if operation is TagOperation.SET:
        new_tags = normalize_tags(tags)
    elif operation is TagOperation.ADD:
        new_tags = normalize_tags(paper.tags + tags)
    else:
        removed = set(normalize_tags(tags))
        new_tags = [t for t in paper.tags if t not in removed]

    updated = await update_paper(db, paper_id, {"tags": new_tags}, now)
    if updated is None:
        raise NotFoundError([paper_id])
    return updated


async def delete_papers(
    db: aiosqlite.Connection, owner_id: str, paper_ids: list[str]
) -> int:
    """
    Delete the owner's papers by id. Ids owned by others are left alone.

    Grade records are append-only and survive the delete.
    """
    if not paper_ids:
        return 0
    placeholders = ", ".join("?" for _ in paper_ids)
    async with _store_errors("delete papers"):
        cursor = await db.execute(
            f"DELETE FROM papers WHERE owner_id = ? AND id IN ({placeholders})",  # noqa: S608
            [owner_id, *paper_ids],
        )
        await db.commit()
    return cursor.rowcount or 0


# --- Grade history ---


async def insert_grade_record(
    db: aiosqlite.Connection,
    paper_id: str,
    owner_id: str,
    is_correct: bool,
    graded_at: datetime,
    *,
    commit: bool = True,
) -> str:
    record_id = str(uuid.uuid4())
    stamp = to_db_time(graded_at)
    async with _store_errors("insert grade record"):
        await db.execute(
            """INSERT INTO grade_records
               (id, paper_id, owner_id, is_correct, graded_at, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (record_id, paper_id, owner_id, int(is_correct), stamp, stamp),
        )
        if commit:
            await db.commit()
    return record_id


async def apply_grade(
    db: aiosqlite.Connection,
    paper_id: str,
    owner_id: str,
    is_correct: bool,
    next_practice_due: datetime | None,
    now: datetime,
) -> None:
    """
    Write a paper's new scheduling state and its history row together.

    Both statements run in one transaction: either both land or neither does.
    Raises NotFoundError if the paper vanished, PersistenceError on store failure.
    """
    fields = _encode_fields(
        {
            "is_correct": is_correct,
            "last_practiced": now,
            "next_practice_due": next_practice_due,
        }
    )
    fields["updated_at"] = to_db_time(now)
    set_clause = ", ".join(f"{k} = ?" for k in fields)

    updated = False
    try:
        cursor = await db.execute(
            f"UPDATE papers SET {set_clause} WHERE id = ? AND owner_id = ?",  # noqa: S608
            [*fields.values(), paper_id, owner_id],
        )
        if cursor.rowcount == 0:
            await db.rollback()
            raise NotFoundError([paper_id])
        updated = True
        await insert_grade_record(db, paper_id, owner_id, is_correct, now, commit=False)
        await db.commit()
    except (PersistenceError, aiosqlite.Error) as exc:
        if updated:
            logger.error(
                "Invariant violation: paper %s updated without its grade record; rolling back",
                paper_id,
            )
        try:
            await db.rollback()
        except aiosqlite.Error:
            logger.exception("Rollback failed for paper %s", paper_id)
        if isinstance(exc, PersistenceError):
            raise
        raise PersistenceError(f"Failed to record grade for paper {paper_id}") from exc


async def list_grade_records(
    db: aiosqlite.Connection,
    owner_id: str,
    paper_id: str | None = None,
    limit: int = 100,
) -> list[GradeRecord]:
    """Return grade history newest first."""
    if paper_id:
        sql = """SELECT * FROM grade_records WHERE owner_id = ? AND paper_id = ?
                 ORDER BY graded_at DESC, created_at DESC LIMIT ?"""
        params: tuple = (owner_id, paper_id, limit)
    else:
        sql = """SELECT * FROM grade_records WHERE owner_id = ?
                 ORDER BY graded_at DESC, created_at DESC LIMIT ?"""
        params = (owner_id, limit)
    async with _store_errors("read grade history"):
        cursor = await db.execute(sql, params)
        rows = await cursor.fetchall()
    return [_row_to_grade(r) for r in rows]
