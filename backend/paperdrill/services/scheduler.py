"""
Review scheduler: next-due-date computation for graded papers.

A paper graded correct leaves the review rotation (no due date). A paper graded
incorrect comes back after an interval picked from how long it had been since
the previous practice:

    days since last practice   next review in
    < 3                        1 day
    3 - 6                      3 days
    7 - 29                     7 days
    >= 30                      30 days

The interval depends on elapsed time only, not on how many times in a row the
paper was missed. Everything here is pure; callers pass ``now`` in.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

ONE_DAY = timedelta(days=1)

# (minimum elapsed days, interval), checked from the largest threshold down
_INTERVAL_STEPS: tuple[tuple[int, timedelta], ...] = (
    (30, timedelta(days=30)),
    (7, timedelta(days=7)),
    (3, timedelta(days=3)),
    (0, timedelta(days=1)),
)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_days(last_practiced_at: datetime | None, now: datetime) -> int:
    """Whole days between the previous practice and ``now`` (0 if never practiced)."""
    reference = ensure_utc(last_practiced_at) if last_practiced_at else ensure_utc(now)
    return (ensure_utc(now) - reference) // ONE_DAY


def review_interval(days: int) -> timedelta:
    for threshold, interval in _INTERVAL_STEPS:
        if days >= threshold:
            return interval
    # Negative elapsed time (clock skew, backdated grade) falls in the first bucket
    return ONE_DAY


def compute_next_due(
    is_correct: bool,
    last_practiced_at: datetime | None,
    now: datetime,
) -> datetime | None:
    """
    Compute when a paper should be reviewed again.

    Returns None for a correct answer, otherwise ``now`` plus the interval for
    the time elapsed since ``last_practiced_at``.
    """
    if is_correct:
        return None
    return ensure_utc(now) + review_interval(elapsed_days(last_practiced_at, now))
