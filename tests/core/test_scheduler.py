"""Tests for job registration and manual triggering."""

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from mosque_directory.core import scheduler


@pytest.fixture(autouse=True)
def clean_registry(monkeypatch):
    monkeypatch.setattr(scheduler, "_job_registry", {})
    monkeypatch.setattr(scheduler, "_scheduler", None)


@pytest.mark.asyncio
async def test_trigger_returns_job_result():
    async def job():
        return {"regenerated": 2}

    scheduler.register_job("rotate", job, IntervalTrigger(hours=1))

    result = await scheduler.trigger_job_manually("rotate")

    assert result["status"] == "success"
    assert result["result"] == {"regenerated": 2}


@pytest.mark.asyncio
async def test_trigger_reports_failure():
    async def job():
        raise RuntimeError("store unavailable")

    scheduler.register_job("broken", job, IntervalTrigger(hours=1))

    result = await scheduler.trigger_job_manually("broken")

    assert result["status"] == "error"
    assert result["error"] == "store unavailable"


@pytest.mark.asyncio
async def test_trigger_unknown_job():
    with pytest.raises(ValueError):
        await scheduler.trigger_job_manually("missing")


def test_list_without_running_scheduler():
    async def job():
        return None

    scheduler.register_job("report", job, IntervalTrigger(days=1))

    assert scheduler.list_registered_jobs() == [{"job_id": "report", "registered": True}]
    assert scheduler.pause_job("report") is False


@pytest.mark.asyncio
async def test_start_schedules_registered_jobs():
    async def job():
        return None

    scheduler.register_job("rotate", job, IntervalTrigger(hours=1))

    running = await scheduler.start_scheduler()
    try:
        assert running.get_job("rotate") is not None
        assert scheduler.pause_job("rotate") is True
        assert scheduler.list_registered_jobs()[0]["is_paused"] is True
        assert scheduler.resume_job("rotate") is True
    finally:
        await scheduler.stop_scheduler()

    assert scheduler.get_scheduler() is None
