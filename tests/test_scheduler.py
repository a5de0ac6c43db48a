"""Tests for the usage cleanup scheduler."""

from datetime import timedelta
from unittest.mock import AsyncMock

from conftest import NOW

from reply_auto.config.settings import EngineSettings
from reply_auto.models import UsageRecord
from reply_auto.stores.memory import InMemoryUsageLog
from scheduler import CLEANUP_JOB_ID, UsageCleanupScheduler, execute_cleanup_sync

SETTINGS = EngineSettings(retention_days=30, cleanup_interval_hours=6)


def usage_log():
    return InMemoryUsageLog(
        [
            UsageRecord("old", "g1", NOW - timedelta(days=45)),
            UsageRecord("recent", "g1", NOW - timedelta(days=2)),
        ],
        clock=lambda: NOW,
    )


def test_cleanup_job_removes_expired_records():
    scheduler = UsageCleanupScheduler(usage_log(), SETTINGS)

    assert scheduler._execute_cleanup_job() == 1


def test_cleanup_job_contains_failures():
    failing_log = AsyncMock()
    failing_log.cleanup.side_effect = OSError("disk gone")
    scheduler = UsageCleanupScheduler(failing_log, SETTINGS)

    assert scheduler._execute_cleanup_job() == 0


def test_execute_cleanup_sync():
    assert execute_cleanup_sync(usage_log(), SETTINGS) == 1


def test_status_reports_next_run():
    scheduler = UsageCleanupScheduler(usage_log(), SETTINGS)
    scheduler.add_cleanup_job(run_immediately=False)
    scheduler.start()
    try:
        status = scheduler.get_status()
        assert status["running"] is True
        assert status["next_run"] is not None
        assert scheduler.scheduler.get_job(CLEANUP_JOB_ID) is not None
    finally:
        scheduler.shutdown()

    assert scheduler.get_status()["running"] is False
