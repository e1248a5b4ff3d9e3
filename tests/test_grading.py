"""Tests for the grading recorder: scheduling updates and grade history."""
from datetime import timedelta

import pytest

from conftest import NOW, OTHER_OWNER, OWNER
from paperdrill.db.sqlite import get_paper
from paperdrill.errors import NotFoundError, PersistenceError, ValidationError
from paperdrill.models.grade import GradeOutcome
from paperdrill.services.grading import list_grade_history, record_grades
from paperdrill.services.scheduler import compute_next_due


async def test_incorrect_grade_schedules_review(db, add_paper):
    last = NOW - timedelta(days=10)
    paper = await add_paper(["math"], is_correct=False, last_practiced=last, next_practice_due=NOW)

    report = await record_grades(db, OWNER, [GradeOutcome(paper_id=paper.id, is_correct=False)], NOW)

    updated = await get_paper(db, paper.id)
    assert updated.next_practice_due == compute_next_due(False, last, NOW)
    assert updated.next_practice_due == NOW + timedelta(days=7)
    assert updated.is_correct is False
    assert updated.last_practiced == NOW
    assert updated.updated_at == NOW
    assert [g.paper_id for g in report.graded] == [paper.id]

    history = await list_grade_history(db, OWNER, paper_id=paper.id)
    assert len(history) == 1
    assert history[0].graded_at == NOW
    assert history[0].is_correct is False
    assert history[0].owner_id == OWNER


async def test_first_grade_of_new_paper(db, add_paper):
    paper = await add_paper()

    await record_grades(db, OWNER, [{"paper_id": paper.id, "is_correct": False}], NOW)

    updated = await get_paper(db, paper.id)
    assert updated.next_practice_due == NOW + timedelta(days=1)


async def test_correct_grade_clears_schedule(db, add_paper):
    paper = await add_paper(is_correct=False, last_practiced=NOW - timedelta(days=2), next_practice_due=NOW)

    await record_grades(db, OWNER, [GradeOutcome(paper_id=paper.id, is_correct=True)], NOW)

    updated = await get_paper(db, paper.id)
    assert updated.is_correct is True
    assert updated.next_practice_due is None
    assert updated.last_practiced == NOW


async def test_regrading_writes_history_each_time(db, add_paper):
    paper = await add_paper()
    later = NOW + timedelta(days=4)

    await record_grades(db, OWNER, [GradeOutcome(paper_id=paper.id, is_correct=False)], NOW)
    await record_grades(db, OWNER, [GradeOutcome(paper_id=paper.id, is_correct=False)], later)

    updated = await get_paper(db, paper.id)
    # Second grading is keyed on the first grading's timestamp: 4 days elapsed
    assert updated.next_practice_due == later + timedelta(days=3)
    history = await list_grade_history(db, OWNER, paper_id=paper.id)
    assert [h.graded_at for h in history] == [later, NOW]


async def test_batch_grades_every_paper(db, add_paper):
    papers = [await add_paper() for _ in range(3)]
    outcomes = [
        GradeOutcome(paper_id=p.id, is_correct=i % 2 == 0) for i, p in enumerate(papers)
    ]

    report = await record_grades(db, OWNER, outcomes, NOW)

    assert len(report.graded) == 3
    assert len(await list_grade_history(db, OWNER)) == 3


async def test_unknown_paper_raises_after_applying_the_rest(db, add_paper):
    paper = await add_paper()
    outcomes = [
        GradeOutcome(paper_id="missing", is_correct=True),
        GradeOutcome(paper_id=paper.id, is_correct=False),
    ]

    with pytest.raises(NotFoundError) as exc_info:
        await record_grades(db, OWNER, outcomes, NOW)

    assert exc_info.value.ids == ["missing"]
    assert [g.paper_id for g in exc_info.value.report.graded] == [paper.id]
    assert (await get_paper(db, paper.id)).is_correct is False
    assert len(await list_grade_history(db, OWNER)) == 1


async def test_foreign_paper_is_not_found_and_untouched(db, add_paper):
    theirs = await add_paper(owner_id=OTHER_OWNER)

    with pytest.raises(NotFoundError):
        await record_grades(db, OWNER, [GradeOutcome(paper_id=theirs.id, is_correct=True)], NOW)

    untouched = await get_paper(db, theirs.id)
    assert untouched.is_correct is None
    assert untouched.last_practiced is None
    assert await list_grade_history(db, OTHER_OWNER) == []


async def test_history_write_failure_rolls_back_paper_update(db, add_paper):
    paper = await add_paper()
    await db.execute("DROP TABLE grade_records")
    await db.commit()

    with pytest.raises(PersistenceError) as exc_info:
        await record_grades(db, OWNER, [GradeOutcome(paper_id=paper.id, is_correct=False)], NOW)

    assert exc_info.value.report.failed == [paper.id]
    assert exc_info.value.report.graded == []
    unchanged = await get_paper(db, paper.id)
    assert unchanged.is_correct is None
    assert unchanged.next_practice_due is None


async def test_malformed_outcome_is_rejected(db):
    with pytest.raises(ValidationError):
        await record_grades(db, OWNER, [{"paper_id": "p", "is_correct": "maybe"}], NOW)


async def test_empty_batch(db):
    report = await record_grades(db, OWNER, [], NOW)
    assert report.graded == []
    assert report.graded_at == NOW


async def test_history_is_scoped_to_owner(db, add_paper):
    mine = await add_paper()
    theirs = await add_paper(owner_id=OTHER_OWNER)
    await record_grades(db, OWNER, [GradeOutcome(paper_id=mine.id, is_correct=True)], NOW)
    await record_grades(db, OTHER_OWNER, [GradeOutcome(paper_id=theirs.id, is_correct=True)], NOW)

    assert [h.paper_id for h in await list_grade_history(db, OWNER)] == [mine.id]
