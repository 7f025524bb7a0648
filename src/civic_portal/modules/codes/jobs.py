"""
Code Records Background Jobs

Burns unused codes whose expiry has passed so they never linger as
redeemable rows. The job is idempotent.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from civic_portal.core.database import async_session_maker
from civic_portal.core.scheduler import register_job
from civic_portal.modules.codes import repository

logger = logging.getLogger(__name__)

JOB_ID_EXPIRE_CODES = "codes_expire_stale"
EXPIRE_INTERVAL_MINUTES = 5


async def expire_stale_codes() -> dict[str, Any]:
    """Mark every expired, unused code as used."""
    executed_at = datetime.now(UTC)

    async with async_session_maker() as db:
        expired = await repository.expire_stale(db, executed_at)
        await db.commit()

    logger.info(f"Code expiry job completed. Expired: {expired}")
    return {"executed_at": executed_at.isoformat(), "expired": expired}


def register_code_jobs() -> None:
    """Register code jobs; call during startup, before the scheduler starts."""
    register_job(
        job_id=JOB_ID_EXPIRE_CODES,
        func=expire_stale_codes,
        trigger=IntervalTrigger(minutes=EXPIRE_INTERVAL_MINUTES),
    )
    logger.info(f"Registered job: {JOB_ID_EXPIRE_CODES} (interval: {EXPIRE_INTERVAL_MINUTES} minutes)")
