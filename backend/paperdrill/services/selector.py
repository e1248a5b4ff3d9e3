"""Due-set selection: which papers are eligible for review at a given time."""
from __future__ import annotations

from datetime import datetime

import aiosqlite

from paperdrill.db.sqlite import query_papers_by_owner
from paperdrill.models.paper import Paper
from paperdrill.services.scheduler import ensure_utc


def is_due(paper: Paper, now: datetime, scheduled_only: bool = False) -> bool:
    """
    In-memory form of the due predicate used by ``select_due``.

    Never-graded papers are always due, and so is every paper last graded
    incorrect, whatever its ``next_practice_due``. Any other paper is due once
    its ``next_practice_due`` has passed. With ``scheduled_only`` an incorrect
    paper waits for its due date too; only one with no schedule stays due.
    """
    if paper.last_practiced is None:
        return True
    if paper.is_correct is False and (not scheduled_only or paper.next_practice_due is None):
        return True
    if paper.next_practice_due is None:
        return False
    return ensure_utc(paper.next_practice_due) <= ensure_utc(now)


async def select_due(
    db: aiosqlite.Connection,
    owner_id: str,
    now: datetime,
    scheduled_only: bool = False,
) -> list[Paper]:
    """Return the owner's papers eligible for review at ``now``. Order is unspecified."""
    return await query_papers_by_owner(
        db, owner_id, due_at=now, scheduled_only=scheduled_only
    )
