"""
Per-group usage summaries built from usage log records.

Example:
    >>> records = await usage_log.query_usage("facebook.com/groups/123", None)
    >>> summary = summarize_group_usage(records, "facebook.com/groups/123", window_hours=24)
    >>> summary.recently_used_templates
    ['t1']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from reply_auto.models import UsageRecord
from reply_auto.stores.base import utc_now


@dataclass
class TemplateUsageStats:
    template_id: str
    first_used: datetime
    last_used: datetime
    total_usage: int = 0
    recent_usage: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template_id": self.template_id,
            "total_usage": self.total_usage,
            "recent_usage": self.recent_usage,
            "first_used": self.first_used.isoformat(),
            "last_used": self.last_used.isoformat(),
        }


@dataclass
class GroupUsageSummary:
    group_id: str
    total_usages: int = 0
    recent_usages: int = 0
    recently_used_templates: List[str] = field(default_factory=list)
    last_used_at: Optional[datetime] = None
    template_stats: List[TemplateUsageStats] = field(default_factory=list)

    @property
    def unique_templates_used(self) -> int:
        return len(self.template_stats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "total_usages": self.total_usages,
            "recent_usages": self.recent_usages,
            "unique_templates_used": self.unique_templates_used,
            "recently_used_templates": list(self.recently_used_templates),
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
            "template_stats": [stats.to_dict() for stats in self.template_stats],
        }


def summarize_group_usage(
    records: Iterable[UsageRecord],
    group_id: str,
    window_hours: float = 24,
    now: Optional[datetime] = None,
) -> GroupUsageSummary:
    """
    Aggregate a group's usage history.

    Args:
        records: Usage records; records for other groups are ignored.
        group_id: Group to summarize.
        window_hours: Records newer than `now - window_hours` count as recent.
        now: Reference time; defaults to the current UTC time.

    Returns:
        A GroupUsageSummary. Template stats and recently used template ids
        follow first-appearance order in `records`.
    """
    now = now or utc_now()
    cutoff = now - timedelta(hours=window_hours)
    summary = GroupUsageSummary(group_id=group_id)
    stats: Dict[str, TemplateUsageStats] = {}

    for record in records:
        if record.group_id != group_id:
            continue
        entry = stats.get(record.template_id)
        if entry is None:
            entry = TemplateUsageStats(
                template_id=record.template_id,
                first_used=record.timestamp,
                last_used=record.timestamp,
            )
            stats[record.template_id] = entry
        entry.total_usage += 1
        entry.first_used = min(entry.first_used, record.timestamp)
        entry.last_used = max(entry.last_used, record.timestamp)
        summary.total_usages += 1

        if record.timestamp > cutoff:
            entry.recent_usage += 1
            summary.recent_usages += 1
            if record.template_id not in summary.recently_used_templates:
                summary.recently_used_templates.append(record.template_id)

        if summary.last_used_at is None or record.timestamp > summary.last_used_at:
            summary.last_used_at = record.timestamp

    summary.template_stats = list(stats.values())
    return summary
