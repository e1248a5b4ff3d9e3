"""
Paper (worksheet) router.

Endpoints:
  POST   /papers/              — create a paper from an existing file reference
  GET    /papers/              — search by tags, grade, due state, creation date
  GET    /papers/by-date/{day} — papers created on one UTC calendar day
  GET    /papers/{id}          — single paper
  PATCH  /papers/{id}/tags     — set / add / remove tags
  DELETE /papers/              — delete papers by id
"""
from datetime import date, datetime, time, timedelta, timezone

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from paperdrill.db.sqlite import (
    count_papers_by_owner,
    create_paper,
    delete_papers,
    edit_paper_tags,
    get_db,
    get_owned_paper,
    query_papers_by_owner,
)
from paperdrill.dependencies import get_now, get_owner_id
from paperdrill.errors import NotFoundError
from paperdrill.models.paper import Paper, PaperCreate, PaperDelete, PaperList, TagUpdate

router = APIRouter()


@router.post("/", response_model=Paper, status_code=201)
async def create(
    body: PaperCreate,
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> Paper:
    return await create_paper(db, owner_id, body, now)


@router.get("/", response_model=PaperList)
async def search(
    tags: list[str] = Query(default=[]),
    is_correct: bool | None = Query(default=None),
    due_for_review: bool = Query(default=False),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    page: int = Query(default=1, ge=1),
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> PaperList:
    """Search the owner's papers, newest first. A paper must carry every tag given."""
    filters = {
        "is_correct": is_correct,
        "due_at": now if due_for_review else None,
        "tags": tags,
        "created_from": date_from,
        "created_to": date_to,
    }
    offset = (page - 1) * limit if limit else 0
    items = await query_papers_by_owner(db, owner_id, limit=limit, offset=offset, **filters)
    total = await count_papers_by_owner(db, owner_id, **filters)
    return PaperList(items=items, total=total)


@router.get("/by-date/{day}", response_model=PaperList)
async def by_date(
    day: date,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> PaperList:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    items = await query_papers_by_owner(db, owner_id, created_from=start, created_to=end)
    items.reverse()  # oldest first within a day
    return PaperList(items=items, total=len(items))


@router.get("/{paper_id}", response_model=Paper)
async def get_one(
    paper_id: str,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> Paper:
    paper = await get_owned_paper(db, owner_id, paper_id)
    if not paper:
        raise HTTPException(status_code=404, detail="Paper not found")
    return paper


@router.patch("/{paper_id}/tags", response_model=Paper)
async def edit_tags(
    paper_id: str,
    body: TagUpdate,
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> Paper:
    try:
        return await edit_paper_tags(db, owner_id, paper_id, body.tags, body.operation, now)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Paper not found")


@router.delete("/", status_code=200)
async def remove(
    body: PaperDelete,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> dict:
    deleted = await delete_papers(db, owner_id, body.ids)
    return {"deleted": deleted}
