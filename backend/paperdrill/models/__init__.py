from paperdrill.models.grade import (
    GradeBatch,
    GradedPaper,
    GradeOutcome,
    GradeRecord,
    GradeRecordList,
    GradeReport,
)
from paperdrill.models.paper import (
    Paper,
    PaperCreate,
    PaperDelete,
    PaperList,
    TagOperation,
    TagUpdate,
)
from paperdrill.models.practice import (
    PracticeSession,
    SessionPool,
    SessionRequest,
    TagCount,
    TagCountList,
)
from paperdrill.models.stats import DailyProgress, RecentActivity, Stats

__all__ = [
    "DailyProgress",
    "GradeBatch",
    "GradeOutcome",
    "GradeRecord",
    "GradeRecordList",
    "GradeReport",
    "GradedPaper",
    "Paper",
    "PaperCreate",
    "PaperDelete",
    "PaperList",
    "PracticeSession",
    "RecentActivity",
    "SessionPool",
    "SessionRequest",
    "Stats",
    "TagCount",
    "TagCountList",
    "TagOperation",
    "TagUpdate",
]
