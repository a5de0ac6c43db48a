"""
Rolling-window quota checks that keep metered callers within their allowance.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from reply_auto.models import QuotaState, Suggestion
from reply_auto.stores.base import QuotaPolicy
from reply_auto.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_PER_WINDOW = 3
DEFAULT_WINDOW_HOURS = 24
LIMIT_TEMPLATE_ID = "limit_reached"
LIMIT_TEMPLATE_LABEL = "Usage Limit"


async def check_quota(
    policy: Optional[QuotaPolicy],
    unmetered: bool,
    max_per_window: int = DEFAULT_MAX_PER_WINDOW,
    window_hours: float = DEFAULT_WINDOW_HOURS,
) -> QuotaState:
    """
    Decide whether the caller may receive suggestions right now.

    Args:
        policy: Source of the rolling usage count; None means no metering data.
        unmetered: True for tiers without a quota.
        max_per_window: Allowed suggestions per rolling window.
        window_hours: Rolling window length in hours.

    Returns:
        A QuotaState. Unmetered callers, missing policies, and unreadable
        policies are always allowed.
    """
    if unmetered or policy is None:
        return QuotaState(allowed=True, used=0, max=max_per_window)

    try:
        used = await policy.get_window_usage_count(window_hours)
        if used < max_per_window:
            return QuotaState(allowed=True, used=used, max=max_per_window)
        oldest = await policy.get_oldest_usage_at(window_hours)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Quota policy unavailable, allowing request: %s", exc, exc_info=True)
        return QuotaState(allowed=True, used=0, max=max_per_window)

    reset_at = oldest + timedelta(hours=window_hours) if oldest else None
    return QuotaState(allowed=False, used=used, max=max_per_window, reset_at=reset_at)


def hours_until_reset(reset_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole hours (rounded up) until the oldest windowed entry expires."""
    if reset_at is None:
        return 0
    now = now or datetime.now(tz=timezone.utc)
    remaining = (reset_at - now).total_seconds() / 3600
    return max(0, math.ceil(remaining))


def _window_name(window_hours: float) -> str:
    if window_hours == 24:
        return "Daily"
    return f"{window_hours:g}-hour"


def build_limit_notice(
    state: QuotaState,
    now: Optional[datetime] = None,
    window_hours: float = DEFAULT_WINDOW_HOURS,
) -> Suggestion:
    """
    Build the synthetic suggestion shown instead of results when the quota is spent.

    The notice names the quota window ("Daily" for 24 hours) and the whole
    hours left until the oldest counted suggestion leaves it.
    """
    hours = hours_until_reset(state.reset_at, now)
    text = (
        f"{_window_name(window_hours)} limit reached ({min(state.used, state.max)}/{state.max} suggestions used). "
        f"Upgrade to Pro for unlimited suggestions or wait {hours} hours for reset."
    )
    return Suggestion(
        text=text,
        template_id=LIMIT_TEMPLATE_ID,
        template_label=LIMIT_TEMPLATE_LABEL,
        is_limit_notice=True,
    )
