"""
Grading recorder.

Applies a batch of correct/incorrect outcomes: each paper gets its new
scheduling state and one immutable grade record, written together. The batch
is always attempted in full; failures are collected and raised at the end with
the partial report attached.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

import aiosqlite
import pydantic

from paperdrill.db.sqlite import apply_grade, get_owned_paper, list_grade_records
from paperdrill.errors import NotFoundError, PersistenceError, ValidationError
from paperdrill.models.grade import GradedPaper, GradeOutcome, GradeRecord, GradeReport
from paperdrill.services.scheduler import compute_next_due, ensure_utc

logger = logging.getLogger(__name__)


def _coerce_outcomes(outcomes: Iterable[GradeOutcome | Mapping[str, Any]]) -> list[GradeOutcome]:
    try:
        return [
            o if isinstance(o, GradeOutcome) else GradeOutcome.model_validate(o)
            for o in outcomes
        ]
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Malformed grading outcome: {exc}") from exc


async def record_grades(
    db: aiosqlite.Connection,
    owner_id: str,
    outcomes: Iterable[GradeOutcome | Mapping[str, Any]],
    now: datetime,
) -> GradeReport:
    """
    Record one grading session for ``owner_id`` at ``now``.

    Raises PersistenceError if any store write failed, otherwise NotFoundError
    if any paper was missing or owned by someone else. Both carry ``report``
    listing what was applied.
    """
    now = ensure_utc(now)
    batch = _coerce_outcomes(outcomes)
    report = GradeReport(graded_at=now)

    for outcome in batch:
        try:
            paper = await get_owned_paper(db, owner_id, outcome.paper_id)
            if paper is None:
                raise NotFoundError([outcome.paper_id])
            next_due = compute_next_due(outcome.is_correct, paper.last_practiced, now)
            await apply_grade(db, paper.id, owner_id, outcome.is_correct, next_due, now)
        except NotFoundError:
            logger.warning("Grade skipped: paper %s not found for owner %s", outcome.paper_id, owner_id)
            report.not_found.append(outcome.paper_id)
            continue
        except PersistenceError:
            logger.error("Grade not saved for paper %s", outcome.paper_id)
            report.failed.append(outcome.paper_id)
            continue

        report.graded.append(
            GradedPaper(
                paper_id=paper.id,
                is_correct=outcome.is_correct,
                next_practice_due=next_due,
            )
        )

    logger.info(
        "Recorded grades for owner %s: graded=%d, not_found=%d, failed=%d",
        owner_id,
        len(report.graded),
        len(report.not_found),
        len(report.failed),
    )

    if report.failed:
        raise PersistenceError(
            f"Failed to save grades for {len(report.failed)} paper(s)", report=report
        )
    if report.not_found:
        raise NotFoundError(report.not_found, report=report)
    return report


async def list_grade_history(
    db: aiosqlite.Connection,
    owner_id: str,
    paper_id: str | None = None,
    limit: int = 100,
) -> list[GradeRecord]:
    return await list_grade_records(db, owner_id, paper_id=paper_id, limit=limit)
