"""
In-process template store and usage log, used by the CLI and tests.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from reply_auto.models import Template, UsageRecord
from reply_auto.stores.base import filter_window, parse_template_rows, utc_now


class InMemoryTemplateStore:
    def __init__(
        self,
        templates: Iterable[Template] = (),
        preferred_category: Optional[str] = None,
    ):
        self._templates: List[Template] = list(templates)
        self.preferred_category = preferred_category

    @classmethod
    def from_rows(cls, rows: Iterable[Dict[str, Any]], preferred_category: Optional[str] = None) -> "InMemoryTemplateStore":
        return cls(parse_template_rows(rows, source="memory"), preferred_category=preferred_category)

    async def list_templates(self) -> List[Template]:
        return list(self._templates)

    async def get_preferred_category(self) -> Optional[str]:
        return self.preferred_category


class InMemoryUsageLog:
    """
    Usage log held in a list guarded by a thread lock.

    The cleanup job runs on a scheduler thread with its own event loop, so
    every read and write takes the lock rather than relying on the loop.

    Args:
        records: Initial records.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        records: Iterable[UsageRecord] = (),
        clock: Callable[[], datetime] = utc_now,
    ):
        self._records: List[UsageRecord] = list(records)
        self._lock = threading.Lock()
        self.clock = clock

    def _snapshot(self) -> List[UsageRecord]:
        with self._lock:
            return list(self._records)

    async def query_usage(self, group_id: str, window_hours: Optional[float] = 24) -> List[UsageRecord]:
        in_group = [record for record in self._snapshot() if record.group_id == group_id]
        return filter_window(in_group, window_hours, self.clock())

    async def query_window(self, window_hours: float = 24) -> List[UsageRecord]:
        return filter_window(self._snapshot(), window_hours, self.clock())

    async def append_usage(self, record: UsageRecord) -> None:
        with self._lock:
            self._records.append(record)

    async def cleanup(self, older_than_days: float = 30) -> int:
        cutoff = self.clock() - timedelta(days=older_than_days)
        with self._lock:
            kept = [record for record in self._records if record.timestamp > cutoff]
            removed = len(self._records) - len(kept)
            self._records = kept
        return removed

    async def clear_group(self, group_id: str) -> int:
        with self._lock:
            kept = [record for record in self._records if record.group_id != group_id]
            removed = len(self._records) - len(kept)
            self._records = kept
        return removed
