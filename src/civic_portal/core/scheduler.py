"""
Background Job Scheduler

APScheduler (AsyncIO) wrapper integrated with the FastAPI lifespan.

Jobs are registered during startup, before the scheduler starts, and are
added to the scheduler when it starts. Registered jobs can also be run
on demand through ``trigger_job_manually``.
"""

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Coroutine[Any, Any, Any]]


@dataclass
class _RegisteredJob:
    func: JobFunc
    trigger: BaseTrigger


_scheduler: AsyncIOScheduler | None = None
_job_registry: dict[str, _RegisteredJob] = {}


class SchedulerConfig:
    """Configuration for the background scheduler."""

    TIMEZONE = "UTC"

    JOB_DEFAULTS = {
        "coalesce": True,  # Collapse missed runs into one
        "max_instances": 1,
        "misfire_grace_time": 60 * 5,
    }


def _job_listener(event: JobExecutionEvent) -> None:
    if event.exception:
        logger.error(
            f"Job {event.job_id} failed with exception: {event.exception}",
            exc_info=event.exception,
        )
    else:
        logger.info(f"Job {event.job_id} executed successfully")


def _add_to_scheduler(scheduler: AsyncIOScheduler, job_id: str, job: _RegisteredJob) -> None:
    scheduler.add_job(job.func, trigger=job.trigger, id=job_id, replace_existing=True)
    logger.info(f"Scheduled job: {job_id}")


async def start_scheduler() -> AsyncIOScheduler:
    """Create the scheduler, add every registered job and start it."""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler already running, returning existing instance")
        return _scheduler

    _scheduler = AsyncIOScheduler(
        timezone=SchedulerConfig.TIMEZONE,
        job_defaults=SchedulerConfig.JOB_DEFAULTS,
    )
    _scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    for job_id, job in _job_registry.items():
        _add_to_scheduler(_scheduler, job_id, job)

    _scheduler.start()
    logger.info(f"Background job scheduler started with {len(_job_registry)} job(s)")
    return _scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler, waiting for running jobs to finish."""
    global _scheduler

    if _scheduler is None or not _scheduler.running:
        logger.debug("Scheduler not running, nothing to stop")
        return

    _scheduler.shutdown(wait=True)
    logger.info("Background job scheduler stopped")
    _scheduler = None


def register_job(job_id: str, func: JobFunc, trigger: BaseTrigger) -> None:
    """
    Register a job by id.

    If the scheduler is already running the job is scheduled immediately;
    otherwise it is scheduled when ``start_scheduler`` runs.
    """
    job = _RegisteredJob(func=func, trigger=trigger)
    _job_registry[job_id] = job

    if _scheduler is not None and _scheduler.running:
        _add_to_scheduler(_scheduler, job_id, job)
    else:
        logger.debug(f"Job {job_id} registered; it will be scheduled on start")


async def trigger_job_manually(job_id: str) -> dict[str, Any]:
    """
    Run a registered job now, outside its schedule.

    Raises:
        ValueError: If job_id is not registered
    """
    if job_id not in _job_registry:
        raise ValueError(
            f"Job {job_id} not found in registry. Available jobs: {list(_job_registry)}"
        )

    executed_at = datetime.now(UTC)
    logger.info(f"Manually triggering job: {job_id}")

    try:
        result = await _job_registry[job_id].func()
        return {
            "job_id": job_id,
            "status": "success",
            "executed_at": executed_at.isoformat(),
            "result": result,
        }
    except Exception as e:
        logger.error(f"Manual execution of job {job_id} failed: {e}", exc_info=True)
        return {
            "job_id": job_id,
            "status": "error",
            "executed_at": executed_at.isoformat(),
            "error": str(e),
        }


def list_registered_jobs() -> list[dict[str, Any]]:
    """List registered jobs with their next run time, if scheduled."""
    jobs = []
    for job_id in _job_registry:
        info: dict[str, Any] = {"job_id": job_id, "next_run_time": None}
        if _scheduler is not None:
            scheduled = _scheduler.get_job(job_id)
            if scheduled and scheduled.next_run_time:
                info["next_run_time"] = scheduled.next_run_time.isoformat()
        jobs.append(info)
    return jobs
