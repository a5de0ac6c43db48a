"""
Wire template stores, usage logs, and the quota policy from engine settings.
"""

from __future__ import annotations

from typing import Optional

from reply_auto.config.settings import EngineSettings
from reply_auto.sheets.client import GoogleSheetsClient
from reply_auto.stores.base import TemplateStore, UsageLog
from reply_auto.stores.json_file import JsonFileTemplateStore, JsonFileUsageLog
from reply_auto.stores.memory import InMemoryUsageLog
from reply_auto.stores.quota import UsageLogQuotaPolicy
from reply_auto.stores.remote import RemoteTemplateStore
from reply_auto.stores.sheets import SheetsTemplateStore, SheetsUsageLog
from reply_auto.workflow.pipeline import SuggestionPipeline


def _sheets_client(settings: EngineSettings) -> GoogleSheetsClient:
    return GoogleSheetsClient(
        spreadsheet_name=settings.spreadsheet_name,
        spreadsheet_id=settings.spreadsheet_id or None,
    )


def build_template_store(
    settings: EngineSettings,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> TemplateStore:
    """
    Create the template store named by `settings.template_source`.

    Raises:
        ValueError: For an unknown source name.
    """
    preferred = settings.preferred_category or None
    source = settings.template_source
    if source == "json":
        return JsonFileTemplateStore(settings.templates_path, preferred_category=preferred)
    if source == "url":
        return RemoteTemplateStore(settings.templates_url, preferred_category=preferred)
    if source == "sheets":
        return SheetsTemplateStore(
            sheets_client or _sheets_client(settings),
            worksheet=settings.templates_worksheet,
            preferred_category=preferred,
        )
    raise ValueError(f"Unknown TEMPLATE_SOURCE '{source}'.")


def build_usage_log(
    settings: EngineSettings,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> UsageLog:
    """
    Create the usage log named by `settings.usage_source`.

    Raises:
        ValueError: For an unknown source name.
    """
    source = settings.usage_source
    if source == "json":
        return JsonFileUsageLog(settings.usage_log_path)
    if source == "memory":
        return InMemoryUsageLog()
    if source == "sheets":
        return SheetsUsageLog(sheets_client or _sheets_client(settings), worksheet=settings.usage_worksheet)
    raise ValueError(f"Unknown USAGE_LOG_SOURCE '{source}'.")


def build_pipeline(settings: EngineSettings) -> SuggestionPipeline:
    """
    Assemble a SuggestionPipeline whose quota is counted from its usage log.
    """
    sheets_client = None
    if "sheets" in (settings.template_source, settings.usage_source):
        sheets_client = _sheets_client(settings)

    usage_log = build_usage_log(settings, sheets_client)
    return SuggestionPipeline(
        template_store=build_template_store(settings, sheets_client),
        usage_log=usage_log,
        quota_policy=UsageLogQuotaPolicy(usage_log),
        settings=settings,
    )
