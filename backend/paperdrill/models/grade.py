from datetime import datetime

from pydantic import BaseModel, Field


class GradeOutcome(BaseModel):
    paper_id: str
    is_correct: bool


class GradeBatch(BaseModel):
    outcomes: list[GradeOutcome]


class GradeRecord(BaseModel):
    id: str
    paper_id: str
    owner_id: str
    is_correct: bool
    graded_at: datetime
    created_at: datetime


class GradeRecordList(BaseModel):
    items: list[GradeRecord]
    total: int


class GradedPaper(BaseModel):
    paper_id: str
    is_correct: bool
    next_practice_due: datetime | None


class GradeReport(BaseModel):
    graded_at: datetime
    graded: list[GradedPaper] = Field(default_factory=list)
    not_found: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)   # store write failures
