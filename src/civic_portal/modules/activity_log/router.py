"""
Activity Log Admin Router

- GET /admin/activity-logs - Most recent decisions, newest first
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.core.auth import AdminUser, get_current_admin_user
from civic_portal.core.database import get_db
from civic_portal.modules.activity_log import repository
from civic_portal.modules.activity_log.schemas import ActivityLogItem, ActivityLogListResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ActivityLogListResponse,
    summary="List Activity Log",
    description="Approval and rejection history, newest first. **Access:** Admin only",
)
async def list_activity_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ActivityLogListResponse:
    try:
        entries, total = await repository.list_recent(db, page=page, page_size=page_size)
    except Exception as e:
        logger.exception(f"Error listing activity logs: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred.",
            },
        ) from e

    logger.info(f"Admin {admin.id} listed activity logs: total={total}")

    return ActivityLogListResponse(
        items=[ActivityLogItem.model_validate(entry) for entry in entries],
        total=total,
        page=page,
        page_size=page_size,
    )
