from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Paper(BaseModel):
    id: str
    owner_id: str
    file_path: str                          # opaque reference to the stored scan
    tags: list[str]                         # set semantics; stored deduplicated
    is_correct: bool | None                 # None = never graded
    last_practiced: datetime | None
    next_practice_due: datetime | None      # None when last graded correct
    created_at: datetime
    updated_at: datetime


class PaperCreate(BaseModel):
    file_path: str
    tags: list[str] = Field(default_factory=list)


class PaperList(BaseModel):
    items: list[Paper]
    total: int


class TagOperation(str, Enum):
    SET = "set"
    ADD = "add"
    REMOVE = "remove"


class TagUpdate(BaseModel):
    tags: list[str]
    operation: TagOperation = TagOperation.ADD


class PaperDelete(BaseModel):
    ids: list[str]

