from datetime import datetime

import aiosqlite
from fastapi import APIRouter, Depends

from paperdrill.db.sqlite import get_db
from paperdrill.dependencies import get_now, get_owner_id
from paperdrill.models.stats import Stats
from paperdrill.services.stats import get_user_stats

router = APIRouter()


@router.get("/", response_model=Stats)
async def stats(
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> Stats:
    return await get_user_stats(db, owner_id, now)
