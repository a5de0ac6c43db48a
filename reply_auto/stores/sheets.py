"""
Google Sheets backends for the template library and usage log.

Worksheet layouts (first row is the header):
    templates: id | label | body | keywords | category | url | variants
        keywords are comma-separated, variants are separated by "|".
    usage: template_id | variant_index | group_id | timestamp
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import gspread

from reply_auto.errors import StoreError
from reply_auto.models import Template, UsageRecord
from reply_auto.sheets.client import GoogleSheetsClient
from reply_auto.stores.base import filter_window, parse_template_rows, utc_now
from reply_auto.utils.logger import get_logger

logger = get_logger(__name__)

USAGE_HEADER = ["template_id", "variant_index", "group_id", "timestamp"]


def _split_cell(value: Any, separator: str) -> List[str]:
    if isinstance(value, list):
        return value
    text = "" if value is None else str(value)
    return [part.strip() for part in text.split(separator) if part.strip()]


def sheet_row_to_template_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a worksheet record into the mapping `Template.from_dict` expects.

    A missing `keywords` column is passed through as missing so the row is
    rejected rather than silently matching nothing.
    """
    converted = dict(row)
    if "keywords" in row:
        converted["keywords"] = _split_cell(row["keywords"], ",")
    if "variants" in row:
        converted["variants"] = _split_cell(row["variants"], "|")
    return converted


class SheetsTemplateStore:
    def __init__(
        self,
        client: GoogleSheetsClient,
        worksheet: str = "templates",
        preferred_category: Optional[str] = None,
    ):
        self.client = client
        self.worksheet = worksheet
        self.preferred_category = preferred_category

    def _read_rows(self) -> List[Dict[str, Any]]:
        try:
            return self.client.read_records(self.worksheet)
        except (RuntimeError, gspread.exceptions.GSpreadException) as exc:
            raise StoreError(f"Could not read worksheet '{self.worksheet}': {exc}") from exc

    async def list_templates(self) -> List[Template]:
        rows = await asyncio.to_thread(self._read_rows)
        return parse_template_rows(
            (sheet_row_to_template_row(row) for row in rows),
            source=f"sheet:{self.worksheet}",
        )

    async def get_preferred_category(self) -> Optional[str]:
        return self.preferred_category


class SheetsUsageLog:
    def __init__(
        self,
        client: GoogleSheetsClient,
        worksheet: str = "usage",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.worksheet = worksheet
        self.clock = clock

    def _read_records(self) -> List[UsageRecord]:
        try:
            rows = self.client.read_records(self.worksheet)
        except (RuntimeError, gspread.exceptions.GSpreadException) as exc:
            raise StoreError(f"Could not read worksheet '{self.worksheet}': {exc}") from exc

        records: List[UsageRecord] = []
        for row in rows:
            try:
                records.append(UsageRecord.from_dict(row))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed usage row in '%s': %s", self.worksheet, exc)
        return records

    def _append(self, record: UsageRecord) -> None:
        try:
            self.client.ensure_header(self.worksheet, USAGE_HEADER)
            self.client.append_row(
                self.worksheet,
                [record.template_id, record.variant_index, record.group_id, record.timestamp.isoformat()],
            )
        except (RuntimeError, gspread.exceptions.GSpreadException) as exc:
            raise StoreError(f"Could not append to worksheet '{self.worksheet}': {exc}") from exc

    def _cleanup(self, older_than_days: float) -> int:
        cutoff = self.clock() - timedelta(days=older_than_days)
        try:
            rows = self.client.read_records(self.worksheet)
            expired: List[int] = []
            # Row 1 is the header, so record i lives on sheet row i + 2.
            for index, row in enumerate(rows):
                try:
                    if UsageRecord.from_dict(row).timestamp <= cutoff:
                        expired.append(index + 2)
                except (KeyError, TypeError, ValueError):
                    continue
            if expired:
                self.client.delete_rows(self.worksheet, expired)
        except (RuntimeError, gspread.exceptions.GSpreadException) as exc:
            raise StoreError(f"Could not clean up worksheet '{self.worksheet}': {exc}") from exc
        return len(expired)

    def _clear_group(self, group_id: str) -> int:
        try:
            rows = self.client.read_records(self.worksheet)
            matching = [index + 2 for index, row in enumerate(rows) if str(row.get("group_id", "")) == group_id]
            if matching:
                self.client.delete_rows(self.worksheet, matching)
        except (RuntimeError, gspread.exceptions.GSpreadException) as exc:
            raise StoreError(f"Could not clear group in worksheet '{self.worksheet}': {exc}") from exc
        return len(matching)

    async def query_usage(self, group_id: str, window_hours: Optional[float] = 24) -> List[UsageRecord]:
        records = await asyncio.to_thread(self._read_records)
        in_group = [record for record in records if record.group_id == group_id]
        return filter_window(in_group, window_hours, self.clock())

    async def query_window(self, window_hours: float = 24) -> List[UsageRecord]:
        records = await asyncio.to_thread(self._read_records)
        return filter_window(records, window_hours, self.clock())

    async def append_usage(self, record: UsageRecord) -> None:
        await asyncio.to_thread(self._append, record)

    async def cleanup(self, older_than_days: float = 30) -> int:
        return await asyncio.to_thread(self._cleanup, older_than_days)

    async def clear_group(self, group_id: str) -> int:
        return await asyncio.to_thread(self._clear_group, group_id)
