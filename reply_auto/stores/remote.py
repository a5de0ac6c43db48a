"""
Template store that downloads a JSON template pack over HTTP.

The pack uses the same layout as `JsonFileTemplateStore` files: a list of
template objects or an object with a "templates" list.

Example:
    >>> store = RemoteTemplateStore("https://packs.example.test/automotive.json")
    >>> templates = await store.list_templates()
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import requests

from reply_auto.errors import StoreError
from reply_auto.models import Template
from reply_auto.stores.base import parse_template_rows
from reply_auto.stores.json_file import extract_template_rows


class RemoteTemplateStore:
    def __init__(
        self,
        url: str,
        preferred_category: Optional[str] = None,
        timeout_seconds: int = 30,
        session: Optional[requests.Session] = None,
    ):
        if not url:
            raise ValueError("A template pack URL is required.")
        self.url = url
        self.preferred_category = preferred_category
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def fetch_pack(self) -> Any:
        """
        Download and decode the template pack.

        Returns:
            The decoded JSON payload.

        Raises:
            StoreError: If the request fails, returns a non-2xx status, or the
                body is not valid JSON.
        """
        try:
            response = self.session.get(self.url, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise StoreError(f"Template pack request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise StoreError(
                f"Template pack request failed with status {response.status_code}: {response.text}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise StoreError("Failed to decode template pack as JSON.") from exc

    async def list_templates(self) -> List[Template]:
        payload = await asyncio.to_thread(self.fetch_pack)
        return parse_template_rows(extract_template_rows(payload), source=self.url)

    async def get_preferred_category(self) -> Optional[str]:
        return self.preferred_category
