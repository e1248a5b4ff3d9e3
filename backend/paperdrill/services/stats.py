from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta

import aiosqlite

from paperdrill.db.sqlite import query_papers_by_owner
from paperdrill.models.stats import DailyProgress, RecentActivity, Stats
from paperdrill.services.scheduler import ensure_utc
from paperdrill.services.selector import is_due

# Rough per-scan size used for the storage estimate
PAPER_STORAGE_KB = 200
WEEK_DAYS = 7
RECENT_ACTIVITY_LIMIT = 5


async def get_user_stats(db: aiosqlite.Connection, owner_id: str, now: datetime) -> Stats:
    """Dashboard numbers for one owner, all computed relative to ``now``."""
    now = ensure_utc(now)
    papers = await query_papers_by_owner(db, owner_id)

    tag_distribution: Counter[str] = Counter()
    for paper in papers:
        tag_distribution.update(paper.tags)

    practiced = [
        (ensure_utc(p.last_practiced), p) for p in papers if p.last_practiced is not None
    ]

    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    weekly_progress = []
    for offset in range(WEEK_DAYS - 1, -1, -1):
        start = today - timedelta(days=offset)
        end = start + timedelta(days=1)
        weekly_progress.append(
            DailyProgress(
                day=start.date(),
                count=sum(1 for ts, _ in practiced if start <= ts < end),
            )
        )

    practiced.sort(key=lambda item: item[0], reverse=True)
    recent_activity = [
        RecentActivity(id=p.id, type="grade" if p.is_correct else "practice", timestamp=ts)
        for ts, p in practiced[:RECENT_ACTIVITY_LIMIT]
    ]

    correct = sum(1 for p in papers if p.is_correct)
    return Stats(
        total_papers=len(papers),
        correct_rate=(correct / len(papers) * 100) if papers else 0.0,
        review_due=sum(1 for p in papers if is_due(p, now)),
        total_storage_kb=len(papers) * PAPER_STORAGE_KB,
        tag_distribution=dict(sorted(tag_distribution.items())),
        weekly_progress=weekly_progress,
        recent_activity=recent_activity,
    )
