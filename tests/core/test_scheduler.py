"""
Unit tests for the job registry and manual triggering.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from civic_portal.core import scheduler


@pytest.fixture(autouse=True)
def clean_registry():
    saved = dict(scheduler._job_registry)
    scheduler._job_registry.clear()
    yield
    scheduler._job_registry.clear()
    scheduler._job_registry.update(saved)


@pytest.mark.asyncio
async def test_trigger_registered_job():
    job = AsyncMock(return_value={"expired": 3})
    scheduler.register_job("test_job", job, IntervalTrigger(minutes=5))

    result = await scheduler.trigger_job_manually("test_job")

    assert result["status"] == "success"
    assert result["result"] == {"expired": 3}
    job.assert_awaited_once()


@pytest.mark.asyncio
async def test_trigger_reports_job_errors():
    job = AsyncMock(side_effect=RuntimeError("db down"))
    scheduler.register_job("failing_job", job, IntervalTrigger(minutes=5))

    result = await scheduler.trigger_job_manually("failing_job")

    assert result["status"] == "error"
    assert "db down" in result["error"]


@pytest.mark.asyncio
async def test_trigger_unknown_job_raises():
    with pytest.raises(ValueError):
        await scheduler.trigger_job_manually("missing")


def test_list_registered_jobs_before_start():
    scheduler.register_job("listed_job", AsyncMock(), IntervalTrigger(minutes=5))
    assert scheduler.list_registered_jobs() == [{"job_id": "listed_job", "next_run_time": None}]


def test_register_job_while_running_adds_it_immediately():
    running = MagicMock()
    running.running = True
    job = AsyncMock()
    trigger = IntervalTrigger(minutes=5)

    with patch.object(scheduler, "_scheduler", running):
        scheduler.register_job("late_job", job, trigger)

    running.add_job.assert_called_once_with(
        job, trigger=trigger, id="late_job", replace_existing=True
    )
