"""
Helpers for loading engine configuration from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def load_environment(dotenv_path: Optional[str] = ".env") -> None:
    """
    Load environment variables from a .env file and the host environment.

    Args:
        dotenv_path: Path to the .env file. Defaults to ".env".

    Returns:
        None. Modifies process environment in-place.
    """
    if dotenv_path and os.path.isfile(dotenv_path):
        load_dotenv(dotenv_path)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw.strip() else default
    except ValueError:
        return default


@dataclass(frozen=True)
class EngineSettings:
    """
    Tunables for the suggestion pipeline and its backends.

    Attributes:
        result_size: Maximum ranked suggestions returned.
        window_hours: Rolling window for usage recency and quota counting.
        quota_max: Suggestions allowed per window for metered callers.
        default_url: Link used when a template has none.
        preferred_category: Category that earns the category bonus when the
            caller does not name one.
        ignore_seconds: Delay before a shown suggestion counts as ignored.
        retention_days: Usage records older than this are cleaned up.
        cleanup_interval_hours: How often the cleanup job runs.
        template_source: "json", "url" or "sheets".
        templates_path: Template pack file for the "json" source.
        templates_url: Template pack URL for the "url" source.
        usage_source: "json", "sheets" or "memory".
        usage_log_path: Usage log file for the "json" source.
        spreadsheet_id: Spreadsheet key; takes precedence over the name.
        spreadsheet_name: Spreadsheet opened by name when no key is set.
        templates_worksheet: Worksheet holding template rows.
        usage_worksheet: Worksheet holding usage rows.
    """

    result_size: int = 3
    window_hours: float = 24
    quota_max: int = 3
    default_url: str = ""
    preferred_category: str = ""
    ignore_seconds: float = 10
    retention_days: float = 30
    cleanup_interval_hours: float = 6
    template_source: str = "json"
    templates_path: str = "templates.json"
    templates_url: str = ""
    usage_source: str = "json"
    usage_log_path: str = "usage_log.json"
    spreadsheet_id: str = ""
    spreadsheet_name: str = "Reply Templates"
    templates_worksheet: str = "templates"
    usage_worksheet: str = "usage"


def get_engine_settings() -> EngineSettings:
    """
    Collect engine settings from environment variables, falling back to defaults.
    """
    return EngineSettings(
        result_size=_int_env("SUGGESTION_RESULT_SIZE", 3),
        window_hours=_float_env("USAGE_WINDOW_HOURS", 24),
        quota_max=_int_env("QUOTA_MAX_SUGGESTIONS", 3),
        default_url=os.getenv("DEFAULT_PROMO_URL", ""),
        preferred_category=os.getenv("PREFERRED_CATEGORY", ""),
        ignore_seconds=_float_env("IGNORE_TIMER_SECONDS", 10),
        retention_days=_float_env("USAGE_RETENTION_DAYS", 30),
        cleanup_interval_hours=_float_env("USAGE_CLEANUP_INTERVAL_HOURS", 6),
        template_source=os.getenv("TEMPLATE_SOURCE", "json").lower(),
        templates_path=os.getenv("TEMPLATES_PATH", "templates.json"),
        templates_url=os.getenv("TEMPLATES_URL", ""),
        usage_source=os.getenv("USAGE_LOG_SOURCE", "json").lower(),
        usage_log_path=os.getenv("USAGE_LOG_PATH", "usage_log.json"),
        spreadsheet_id=os.getenv("GOOGLE_SHEET_ID", ""),
        spreadsheet_name=os.getenv("GOOGLE_SPREADSHEET_NAME", "Reply Templates"),
        templates_worksheet=os.getenv("GOOGLE_WS_TEMPLATES", "templates"),
        usage_worksheet=os.getenv("GOOGLE_WS_USAGE", "usage"),
    )
