"""Tests for the Celery alert tasks and the beat schedule."""
from unittest.mock import AsyncMock, patch

from forge_crm.services.alert_families import FAMILIES
from forge_crm.workers import alert_tasks
from forge_crm.workers.celery_app import celery_app


def test_beat_schedule_covers_every_family():
    """Every alert family has a scheduled task."""
    scheduled = {entry["task"].rsplit(".", 1)[1] for entry in celery_app.conf.beat_schedule.values()}
    assert scheduled == {
        "quota_check", "activity_check", "task_check", "stale_check",
        "marketing_weekly", "marketing_monthly", "monthly_review",
    }
    assert len(FAMILIES) == len(scheduled)


def test_run_alert_family_returns_report():
    report = {"success": True, "family": "task", "processed": 3, "summary": {"no_alert_needed": 3}}
    with patch.object(alert_tasks, "_run_family", new=AsyncMock(return_value=report)) as run:
        assert alert_tasks.task_check() == report
    run.assert_awaited_once_with("task")


def test_run_alert_family_failure_returns_error_dict():
    """An aborted run (e.g. the database is down) is reported, not raised into the worker."""
    with patch.object(alert_tasks, "_run_family", new=AsyncMock(side_effect=ConnectionError("db down"))):
        result = alert_tasks.marketing_monthly()
    assert result == {"status": "error", "family": "marketing-monthly", "error": "db down"}
