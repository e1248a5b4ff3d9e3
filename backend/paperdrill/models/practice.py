from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from paperdrill.models.paper import Paper


class SessionPool(str, Enum):
    REVIEW = "review"   # due set, including never-graded papers
    ALL = "all"         # every paper the owner has


class SessionRequest(BaseModel):
    target_size: int | None = None
    # Raw UI input; stray values are normalized to zero by the composer
    tag_quotas: dict[str, Any] = Field(default_factory=dict)
    pool: SessionPool = SessionPool.REVIEW
    seed: int | None = None


class PracticeSession(BaseModel):
    items: list[Paper]
    total: int
    pool_size: int
    quota_mode: bool


class TagCount(BaseModel):
    tag: str
    count: int


class TagCountList(BaseModel):
    items: list[TagCount]
