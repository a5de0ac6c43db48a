"""
Reply selection: order matched candidates so that templates already used in
the current group are rotated to the back.

Candidates never used in the group within the lookback window ("fresh") come
first, highest score first. Recently used candidates ("stale") follow, the one
used longest ago first, so repeats rotate fairly when nothing fresher exists.

Example:
    >>> ranked = rank_candidates(candidates, usage_records, group_id="facebook.com/groups/123")
    >>> [c.template.id for c in ranked]
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from reply_auto.models import MatchCandidate, UsageRecord

DEFAULT_RESULT_SIZE = 3
DEFAULT_WINDOW_HOURS = 24

UsageKey = Tuple[str, int]


def latest_usage_by_key(
    usage_records: Iterable[UsageRecord],
    group_id: str,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    now: Optional[datetime] = None,
) -> Dict[UsageKey, datetime]:
    """
    Index the most recent in-window usage per (template_id, variant_index).

    Args:
        usage_records: Records returned by the usage log.
        group_id: Only records for this group are considered.
        window_hours: Lookback window in hours.
        now: Reference time; defaults to the current UTC time.

    Returns:
        Mapping of (template_id, variant_index) to the latest usage timestamp.
    """
    now = now or datetime.now(tz=timezone.utc)
    cutoff = now - timedelta(hours=window_hours)
    latest: Dict[UsageKey, datetime] = {}

    for record in usage_records:
        if record.group_id != group_id or record.timestamp <= cutoff:
            continue
        key = (record.template_id, record.variant_index)
        previous = latest.get(key)
        if previous is None or record.timestamp > previous:
            latest[key] = record.timestamp

    return latest


def mark_recent_usage(
    candidates: Iterable[MatchCandidate],
    latest: Dict[UsageKey, datetime],
) -> List[MatchCandidate]:
    """Set `recently_used` and `last_used_at` on each candidate from the usage index."""
    marked: List[MatchCandidate] = []
    for candidate in candidates:
        last_used = latest.get((candidate.template.id, candidate.variant_index))
        candidate.recently_used = last_used is not None
        candidate.last_used_at = last_used
        marked.append(candidate)
    return marked


def _stale_sort_key(candidate: MatchCandidate) -> Tuple[int, float]:
    # Candidates without a resolvable timestamp go first.
    if candidate.last_used_at is None:
        return (0, 0.0)
    return (1, candidate.last_used_at.timestamp())


def rank_candidates(
    candidates: Iterable[MatchCandidate],
    usage_records: Iterable[UsageRecord],
    group_id: str,
    result_size: int = DEFAULT_RESULT_SIZE,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    now: Optional[datetime] = None,
) -> List[MatchCandidate]:
    """
    Partition candidates into fresh and stale, sort each, and truncate.

    Args:
        candidates: Output of `collect_matches`.
        usage_records: Usage log records for the group.
        group_id: Conversation/context identifier.
        result_size: Maximum number of candidates to return.
        window_hours: Lookback window used to decide recency.
        now: Reference time; defaults to the current UTC time.

    Returns:
        Every fresh candidate (score descending, ties in encounter order)
        followed by stale candidates (oldest use first), at most `result_size`.
    """
    latest = latest_usage_by_key(usage_records, group_id, window_hours=window_hours, now=now)
    marked = mark_recent_usage(candidates, latest)

    fresh = [c for c in marked if not c.recently_used]
    stale = [c for c in marked if c.recently_used]

    fresh.sort(key=lambda c: c.score, reverse=True)
    stale.sort(key=_stale_sort_key)

    return (fresh + stale)[: max(result_size, 0)]
