"""
Activity Log Repository
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ActionType, ActivityLog

TARGET_USER_REQUEST = "USER_REQUEST"


async def append(
    db: AsyncSession,
    *,
    actor_id: str | None,
    action_type: ActionType,
    target_id: str,
    description: str,
    details: dict[str, Any] | None = None,
    target_type: str = TARGET_USER_REQUEST,
) -> ActivityLog:
    """Append an entry and commit it."""
    entry = ActivityLog(
        actor_id=actor_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        description=description,
        details=details or {},
    )

    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    return entry


async def list_recent(
    db: AsyncSession,
    *,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[ActivityLog], int]:
    """Return a page of entries (newest first) and the total count."""
    total = await db.scalar(select(func.count()).select_from(ActivityLog))

    result = await db.execute(
        select(ActivityLog)
        .order_by(ActivityLog.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total or 0
