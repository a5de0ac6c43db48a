"""
Collaborator interfaces consumed by the suggestion pipeline.

The pipeline only awaits these coroutines; how templates and usage history are
persisted is left to the implementations in this package.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from reply_auto.errors import TemplateValidationError
from reply_auto.models import Template, UsageRecord
from reply_auto.utils.logger import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class TemplateStore(Protocol):
    async def list_templates(self) -> List[Template]:
        ...

    async def get_preferred_category(self) -> Optional[str]:
        ...


class UsageLog(Protocol):
    async def query_usage(self, group_id: str, window_hours: Optional[float]) -> List[UsageRecord]:
        ...

    async def query_window(self, window_hours: float) -> List[UsageRecord]:
        ...

    async def append_usage(self, record: UsageRecord) -> None:
        ...

    async def cleanup(self, older_than_days: float) -> int:
        ...

    async def clear_group(self, group_id: str) -> int:
        ...


class QuotaPolicy(Protocol):
    async def get_window_usage_count(self, window_hours: float) -> int:
        ...

    async def get_oldest_usage_at(self, window_hours: float) -> Optional[datetime]:
        ...


def parse_template_rows(rows: Iterable[Dict[str, Any]], source: str = "store") -> List[Template]:
    """
    Convert raw rows into validated templates, skipping malformed rows.

    Args:
        rows: Raw template mappings as read from a backend.
        source: Backend name used in log messages.

    Returns:
        Templates in row order. Invalid rows are logged and dropped.
    """
    templates: List[Template] = []
    for index, row in enumerate(rows):
        try:
            templates.append(Template.from_dict(row))
        except TemplateValidationError as exc:
            logger.warning("Skipping template row %d from %s: %s", index, source, exc)
    return templates


def filter_window(
    records: Iterable[UsageRecord],
    window_hours: Optional[float],
    now: datetime,
) -> List[UsageRecord]:
    """Keep records strictly newer than `now - window_hours`; None keeps everything."""
    if window_hours is None:
        return list(records)
    cutoff = now.timestamp() - window_hours * 3600
    return [record for record in records if record.timestamp.timestamp() > cutoff]
