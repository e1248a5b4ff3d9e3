"""
Practice router.

Endpoints:
  GET  /practice/due       — papers due for review now
  GET  /practice/tags      — per-tag availability in a session pool
  POST /practice/sessions  — compose one practice session
"""
from __future__ import annotations

import logging
import random
from datetime import datetime

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from paperdrill.config import settings
from paperdrill.db.sqlite import get_db, query_papers_by_owner
from paperdrill.dependencies import get_now, get_owner_id
from paperdrill.models.paper import Paper, PaperList
from paperdrill.models.practice import (
    PracticeSession,
    SessionPool,
    SessionRequest,
    TagCount,
    TagCountList,
)
from paperdrill.services.composer import compose_session, normalize_quotas, tag_counts
from paperdrill.services.selector import select_due

logger = logging.getLogger(__name__)
router = APIRouter()


async def _load_pool(
    db: aiosqlite.Connection, owner_id: str, pool: SessionPool, now: datetime
) -> list[Paper]:
    if pool is SessionPool.ALL:
        return await query_papers_by_owner(db, owner_id)
    return await select_due(db, owner_id, now)


@router.get("/due", response_model=PaperList)
async def due(
    scheduled_only: bool = Query(default=False),
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> PaperList:
    items = await select_due(db, owner_id, now, scheduled_only=scheduled_only)
    return PaperList(items=items, total=len(items))


@router.get("/tags", response_model=TagCountList)
async def available_tags(
    pool: SessionPool = Query(default=SessionPool.REVIEW),
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> TagCountList:
    papers = await _load_pool(db, owner_id, pool, now)
    return TagCountList(
        items=[TagCount(tag=tag, count=n) for tag, n in tag_counts(papers).items()]
    )


@router.post("/sessions", response_model=PracticeSession)
async def create_session(
    body: SessionRequest,
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> PracticeSession:
    """Compose a session from the review pool (or every paper) by tag quotas or uniformly."""
    target_size = settings.default_session_size if body.target_size is None else body.target_size
    quota_mode = any(n > 0 for n in normalize_quotas(body.tag_quotas).values())
    # target_size only bounds uniform sessions
    if not quota_mode and target_size > settings.max_session_size:
        raise HTTPException(
            status_code=422,
            detail=f"target_size must be at most {settings.max_session_size}",
        )

    papers = await _load_pool(db, owner_id, body.pool, now)
    rng = random.Random(body.seed) if body.seed is not None else None
    items = compose_session(papers, target_size, body.tag_quotas, rng=rng)

    logger.info(
        "Composed session for owner %s: %d of %d papers (quota_mode=%s)",
        owner_id, len(items), len(papers), quota_mode,
    )
    return PracticeSession(
        items=items, total=len(items), pool_size=len(papers), quota_mode=quota_mode
    )
