"""
Grading router.

Endpoints:
  POST /grades/  — record a batch of correct / incorrect outcomes
  GET  /grades/  — grade history, newest first (optionally for one paper)
"""
from __future__ import annotations

from datetime import datetime

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from paperdrill.db.sqlite import get_db
from paperdrill.dependencies import get_now, get_owner_id
from paperdrill.errors import NotFoundError, PersistenceError
from paperdrill.models.grade import GradeBatch, GradeRecordList, GradeReport
from paperdrill.services.grading import list_grade_history, record_grades

router = APIRouter()


@router.post("/", response_model=GradeReport)
async def grade(
    body: GradeBatch,
    owner_id: str = Depends(get_owner_id),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> GradeReport:
    """Record outcomes. Outcomes for known papers are saved even when others fail."""
    try:
        return await record_grades(db, owner_id, body.outcomes, now)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=404,
            detail={"message": str(exc), "report": exc.report.model_dump(mode="json")},
        )
    except PersistenceError as exc:
        raise HTTPException(
            status_code=503,
            detail={"message": str(exc), "report": exc.report.model_dump(mode="json")},
        )


@router.get("/", response_model=GradeRecordList)
async def history(
    paper_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> GradeRecordList:
    items = await list_grade_history(db, owner_id, paper_id=paper_id, limit=limit)
    return GradeRecordList(items=items, total=len(items))
