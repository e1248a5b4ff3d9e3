"""
Practice-set composer.

Builds one practice session from a pool of papers, either by per-tag quotas or
by a uniform random sample. Selection only; nothing here touches the store.
"""
from __future__ import annotations

import logging
import random
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

from paperdrill.errors import ValidationError
from paperdrill.models.paper import Paper

logger = logging.getLogger(__name__)


def _quota_count(raw: Any) -> int:
    # bool is an int subclass; a checkbox value is not a count
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, float):
        return max(int(raw), 0) if raw.is_integer() else 0
    if isinstance(raw, str):
        try:
            return max(int(raw.strip()), 0)
        except ValueError:
            return 0
    return 0


def normalize_quotas(tag_quotas: Mapping[str, Any] | None) -> dict[str, int]:
    """Coerce UI quota input to non-negative ints; anything unusable becomes 0."""
    if not tag_quotas:
        return {}
    return {tag: _quota_count(raw) for tag, raw in tag_quotas.items()}


def _unique(pool: Iterable[Paper]) -> list[Paper]:
    seen: set[str] = set()
    unique: list[Paper] = []
    for paper in pool:
        if paper.id not in seen:
            seen.add(paper.id)
            unique.append(paper)
    return unique


def compose_session(
    pool: Iterable[Paper],
    target_size: Any,
    tag_quotas: Mapping[str, Any] | None = None,
    rng: random.Random | None = None,
) -> list[Paper]:
    """
    Pick the papers for one practice session.

    Quota mode (some quota > 0): for each tag in mapping order, draw up to its
    count uniformly without replacement from the papers still in the pool that
    carry the tag, then drop the drawn papers from the pool so a multi-tagged
    paper is credited to one tag only. Short tags yield what they have.
    ``target_size`` is ignored.

    Uniform mode: shuffle the pool (Fisher-Yates) and take the first
    ``min(target_size, len(pool))`` papers.

    Raises ValidationError if ``target_size`` is not an integer in uniform mode.
    """
    rng = rng or random.Random()
    remaining = _unique(pool)
    quotas = {tag: n for tag, n in normalize_quotas(tag_quotas).items() if n > 0}

    if quotas:
        session: list[Paper] = []
        for tag, count in quotas.items():
            candidates = [p for p in remaining if tag in p.tags]
            drawn = rng.sample(candidates, min(count, len(candidates)))
            if len(drawn) < count:
                logger.debug("Quota for tag %r short: wanted %d, got %d", tag, count, len(drawn))
            session.extend(drawn)
            drawn_ids = {p.id for p in drawn}
            remaining = [p for p in remaining if p.id not in drawn_ids]
        return session

    if isinstance(target_size, bool) or not isinstance(target_size, int):
        raise ValidationError(f"target_size must be an integer, got {target_size!r}")
    if target_size <= 0 or not remaining:
        return []

    rng.shuffle(remaining)
    return remaining[:target_size]


def remove_from_session(session: list[Paper], paper_ids: Iterable[str]) -> list[Paper]:
    """Drop deselected papers from a composed session. No scheduling effect."""
    removed = set(paper_ids)
    return [p for p in session if p.id not in removed]


def tag_counts(pool: Iterable[Paper]) -> dict[str, int]:
    """How many papers in the pool carry each tag, for sizing quotas."""
    counts: Counter[str] = Counter()
    for paper in pool:
        counts.update(set(paper.tags))
    return dict(sorted(counts.items()))
