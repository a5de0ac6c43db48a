"""
JSON file backends for templates and usage history.

Template files hold either a list of template objects or a pack object with a
"templates" list (optionally "preferred_category"). Usage files map each group
id to its list of usage records, matching the layout the usage tracker has
always persisted.

Example:
    >>> store = JsonFileTemplateStore("templates.json")
    >>> templates = await store.list_templates()
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from reply_auto.errors import StoreError
from reply_auto.models import Template, UsageRecord
from reply_auto.stores.base import filter_window, parse_template_rows, utc_now
from reply_auto.utils.logger import get_logger

logger = get_logger(__name__)


def extract_template_rows(payload: Any) -> List[Dict[str, Any]]:
    """
    Pull template rows out of a decoded pack payload.

    Raises:
        StoreError: If the payload is neither a list nor a pack object.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("templates"), list):
        return payload["templates"]
    raise StoreError("Template pack must be a list or an object with a 'templates' list.")


class JsonFileTemplateStore:
    def __init__(self, path: str, preferred_category: Optional[str] = None):
        self.path = Path(path)
        self.preferred_category = preferred_category

    def _read(self) -> Any:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not read template file {self.path}: {exc}") from exc

    async def list_templates(self) -> List[Template]:
        payload = await asyncio.to_thread(self._read)
        return parse_template_rows(extract_template_rows(payload), source=str(self.path))

    async def get_preferred_category(self) -> Optional[str]:
        if self.preferred_category:
            return self.preferred_category
        payload = await asyncio.to_thread(self._read)
        if isinstance(payload, dict):
            return payload.get("preferred_category") or None
        return None


class JsonFileUsageLog:
    """
    Usage log persisted as `{group_id: [record, ...]}` in a JSON file.

    Writes go through a temporary file and `os.replace`, serialized by a
    thread lock so concurrent appends never interleave.
    """

    def __init__(self, path: str, clock: Callable[[], datetime] = utc_now):
        self.path = Path(path)
        self.clock = clock
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not read usage log {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"Usage log {self.path} must contain a JSON object.")
        return data

    def _save(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StoreError(f"Could not write usage log {self.path}: {exc}") from exc

    def _records(self, group_id: Optional[str] = None) -> List[UsageRecord]:
        data = self._load()
        groups = [group_id] if group_id is not None else list(data.keys())
        records: List[UsageRecord] = []
        for group in groups:
            for row in data.get(group, []):
                try:
                    records.append(UsageRecord.from_dict(row))
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning("Skipping malformed usage row in %s: %s", self.path, exc)
        return records

    def _append(self, record: UsageRecord) -> None:
        with self._lock:
            data = self._load()
            data.setdefault(record.group_id, []).append(record.to_dict())
            self._save(data)

    def _cleanup(self, older_than_days: float) -> int:
        cutoff = self.clock() - timedelta(days=older_than_days)
        removed = 0
        with self._lock:
            data = self._load()
            for group_id in list(data.keys()):
                kept = []
                for row in data[group_id]:
                    try:
                        keep = UsageRecord.from_dict(row).timestamp > cutoff
                    except (KeyError, TypeError, ValueError):
                        keep = False
                    if keep:
                        kept.append(row)
                removed += len(data[group_id]) - len(kept)
                if kept:
                    data[group_id] = kept
                else:
                    del data[group_id]
            if removed:
                self._save(data)
        return removed

    def _clear_group(self, group_id: str) -> int:
        with self._lock:
            data = self._load()
            rows = data.pop(group_id, None)
            if rows is None:
                return 0
            self._save(data)
        return len(rows)

    async def query_usage(self, group_id: str, window_hours: Optional[float] = 24) -> List[UsageRecord]:
        records = await asyncio.to_thread(self._records, group_id)
        return filter_window(records, window_hours, self.clock())

    async def query_window(self, window_hours: float = 24) -> List[UsageRecord]:
        records = await asyncio.to_thread(self._records)
        return filter_window(records, window_hours, self.clock())

    async def append_usage(self, record: UsageRecord) -> None:
        await asyncio.to_thread(self._append, record)

    async def cleanup(self, older_than_days: float = 30) -> int:
        removed = await asyncio.to_thread(self._cleanup, older_than_days)
        if removed:
            logger.info("Removed %d usage records older than %s days from %s", removed, older_than_days, self.path)
        return removed

    async def clear_group(self, group_id: str) -> int:
        return await asyncio.to_thread(self._clear_group, group_id)
