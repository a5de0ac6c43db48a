"""
Quota policy derived from the usage log.

Every accepted suggestion counts toward the metered quota, whatever group it
was used in.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from reply_auto.stores.base import UsageLog


class UsageLogQuotaPolicy:
    def __init__(self, usage_log: UsageLog):
        self.usage_log = usage_log

    async def get_window_usage_count(self, window_hours: float = 24) -> int:
        return len(await self.usage_log.query_window(window_hours))

    async def get_oldest_usage_at(self, window_hours: float = 24) -> Optional[datetime]:
        records = await self.usage_log.query_window(window_hours)
        if not records:
            return None
        return min(record.timestamp for record in records)
