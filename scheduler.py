"""
APScheduler configuration for usage-log maintenance.

Usage records only matter inside the rolling window, so a periodic job drops
records older than the retention horizon (default 30 days, every 6 hours).
"""

import asyncio
import logging
from datetime import datetime

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from reply_auto.config.settings import EngineSettings, get_engine_settings
from reply_auto.stores.base import UsageLog

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = 'usage_cleanup'


class UsageCleanupScheduler:
    """
    Manages scheduled cleanup of expired usage records.

    Features:
        - Runs cleanup every `cleanup_interval_hours` (default: 6)
        - Uses BackgroundScheduler to run alongside the web server
        - Removes records older than `retention_days` (default: 30)

    Example:
        scheduler = UsageCleanupScheduler(usage_log)
        scheduler.add_cleanup_job()
        scheduler.start()
    """

    def __init__(self, usage_log: UsageLog, settings: EngineSettings = None):
        """
        Initialize the scheduler.

        Args:
            usage_log: Usage log whose expired records are removed.
            settings: Engine settings; read from the environment when omitted.
        """
        self.settings = settings or get_engine_settings()
        self.usage_log = usage_log
        self.scheduler = BackgroundScheduler(timezone=pytz.utc)
        self.interval_hours = self.settings.cleanup_interval_hours
        self.retention_days = self.settings.retention_days

        logger.info(
            f"Cleanup scheduler initialized: every {self.interval_hours}h, "
            f"retention {self.retention_days} days"
        )

    def add_cleanup_job(self, run_immediately: bool = True):
        """
        Add the periodic cleanup job to the scheduler.

        Args:
            run_immediately: Also run one cleanup as soon as the scheduler starts.
        """
        self.scheduler.add_job(
            func=self._execute_cleanup_job,
            trigger=IntervalTrigger(hours=self.interval_hours, timezone=pytz.utc),
            id=CLEANUP_JOB_ID,
            name='Usage Log Cleanup',
            replace_existing=True,
            next_run_time=datetime.now(pytz.utc) if run_immediately else None,
        )

        logger.info(f"Usage cleanup job scheduled every {self.interval_hours}h")

    def start(self):
        """Start the scheduler."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started successfully")
        else:
            logger.warning("Scheduler already running")

    def shutdown(self):
        """Gracefully shutdown the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shut down successfully")

    def get_status(self) -> dict:
        """
        Get current scheduler status.

        Returns:
            Dictionary with running flag, interval description, and next run time.
        """
        status = {
            "running": self.scheduler.running,
            "interval": f"every {self.interval_hours}h, retention {self.retention_days} days",
            "next_run": None
        }

        if self.scheduler.running:
            job = self.scheduler.get_job(CLEANUP_JOB_ID)
            if job and job.next_run_time:
                status["next_run"] = job.next_run_time.isoformat()

        return status

    def _execute_cleanup_job(self) -> int:
        """
        Remove expired usage records.

        Runs on the scheduler's worker thread, so the coroutine gets its own loop.
        """
        logger.info("Starting scheduled usage cleanup")
        try:
            removed = asyncio.run(self.usage_log.cleanup(self.retention_days))
            logger.info(f"Usage cleanup completed, removed {removed} records")
            return removed
        except Exception as e:
            logger.error(f"Usage cleanup failed with error: {e}", exc_info=True)
            return 0


def execute_cleanup_sync(usage_log: UsageLog = None, settings: EngineSettings = None) -> int:
    """
    Run one cleanup pass immediately, without the scheduler.
    """
    settings = settings or get_engine_settings()
    if usage_log is None:
        from reply_auto.workflow.backends import build_usage_log
        usage_log = build_usage_log(settings)

    logger.info("Manual usage cleanup triggered")
    removed = asyncio.run(usage_log.cleanup(settings.retention_days))
    logger.info(f"Manual cleanup completed, removed {removed} records")
    return removed


if __name__ == "__main__":
    import argparse
    import time

    from reply_auto.config.settings import load_environment
    from reply_auto.workflow.backends import build_usage_log

    parser = argparse.ArgumentParser(description="Usage log cleanup scheduler")
    parser.add_argument(
        "--run-now",
        action="store_true",
        help="Run one cleanup pass immediately instead of starting the scheduler"
    )
    args = parser.parse_args()

    load_environment()
    engine_settings = get_engine_settings()

    if args.run_now:
        print("Running usage cleanup immediately...")
        execute_cleanup_sync(settings=engine_settings)
    else:
        print("Starting cleanup scheduler in background mode...")
        scheduler = UsageCleanupScheduler(build_usage_log(engine_settings), engine_settings)
        scheduler.add_cleanup_job()
        scheduler.start()

        try:
            while True:
                time.sleep(60)
        except KeyboardInterrupt:
            scheduler.shutdown()
