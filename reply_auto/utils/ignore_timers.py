"""
Deferred "ignored suggestion" actions, one per template id.

A timer starts when a suggestion is shown. If the user neither accepts nor
dismisses it before the delay elapses, the `on_ignore` callback runs with the
template id. Restarting a timer for the same id replaces the pending one, and
any interaction with the suggestion cancels it.

Example:
    >>> registry = IgnoreTimerRegistry(on_ignore=lambda template_id: print("ignored", template_id))
    >>> registry.start()
    >>> registry.start_timer("t1")
    >>> registry.cancel_timer("t1")
    True
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytz
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from reply_auto.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_IGNORE_SECONDS = 10.0
JOB_PREFIX = "ignore:"


class IgnoreTimerRegistry:
    """
    Keyed registry of ignore timers backed by an APScheduler BackgroundScheduler.

    Args:
        on_ignore: Called with the template id when a timer fires.
        delay_seconds: Delay before a shown suggestion counts as ignored.
        scheduler: Optional scheduler to share; a private one is created otherwise.
    """

    def __init__(
        self,
        on_ignore: Callable[[str], None],
        delay_seconds: float = DEFAULT_IGNORE_SECONDS,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.on_ignore = on_ignore
        self.delay_seconds = delay_seconds
        self.scheduler = scheduler or BackgroundScheduler(timezone=pytz.utc)

    @staticmethod
    def _job_id(template_id: str) -> str:
        return f"{JOB_PREFIX}{template_id}"

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _fire(self, template_id: str) -> None:
        try:
            self.on_ignore(template_id)
            logger.info("Suggestion for template %s ignored after %.0f seconds", template_id, self.delay_seconds)
        except Exception as exc:  # noqa: BLE001
            logger.error("Ignore callback failed for template %s: %s", template_id, exc, exc_info=True)

    def start_timer(self, template_id: str) -> None:
        """
        Start (or restart) the ignore timer for a template.
        """
        self.start()
        run_date = datetime.now(tz=timezone.utc) + timedelta(seconds=self.delay_seconds)
        self.scheduler.add_job(
            func=self._fire,
            trigger=DateTrigger(run_date=run_date, timezone=pytz.utc),
            args=[template_id],
            id=self._job_id(template_id),
            name=f"Ignore timer {template_id}",
            replace_existing=True,
            misfire_grace_time=None,
        )

    def cancel_timer(self, template_id: str) -> bool:
        """
        Cancel a pending timer.

        Returns:
            True if a pending timer was removed, False if none was pending.
        """
        try:
            self.scheduler.remove_job(self._job_id(template_id))
        except JobLookupError:
            return False
        return True

    def pending(self) -> List[str]:
        """Template ids with a pending timer."""
        return [
            job.id[len(JOB_PREFIX):]
            for job in self.scheduler.get_jobs()
            if job.id.startswith(JOB_PREFIX)
        ]

    def clear(self) -> None:
        for template_id in self.pending():
            self.cancel_timer(template_id)
