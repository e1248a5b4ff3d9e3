from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel


class DailyProgress(BaseModel):
    day: date
    count: int


class RecentActivity(BaseModel):
    id: str
    type: Literal["grade", "practice"]
    timestamp: datetime


class Stats(BaseModel):
    total_papers: int
    correct_rate: float
    review_due: int
    total_storage_kb: int
    tag_distribution: dict[str, int]
    weekly_progress: list[DailyProgress]
    recent_activity: list[RecentActivity]
