"""
Registrations Admin Router

API endpoints for administrators to review registration requests.
All endpoints require authentication and the admin role.

Endpoints:
- GET /admin/registrations - List requests with filters and pagination
- GET /admin/registrations/{id} - Get request details
- POST /admin/registrations/{id}/approve - Approve, provision and issue activation code
- POST /admin/registrations/{id}/reject - Reject with an optional reason

Security:
- All endpoints require a valid JWT with the admin role
- Rate limiting on decision endpoints
- A second decision on the same request returns 409 ALREADY_DECIDED
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.core.auth import AdminUser, get_current_admin_user
from civic_portal.core.database import get_db
from civic_portal.core.rate_limit import RateLimitExceeded, check_rate_limit
from civic_portal.modules.registrations import service
from civic_portal.modules.registrations.models import RegistrationStatus
from civic_portal.modules.registrations.schemas import (
    ApproveResponse,
    RegistrationDetailResponse,
    RegistrationListItem,
    RegistrationListResponse,
    RejectRequest,
    RejectResponse,
)
from civic_portal.modules.registrations.service import (
    AlreadyDecidedError,
    RegistrationServiceError,
)
from civic_portal.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Rate Limiting Configuration
# ============================================

RATE_LIMIT_APPROVE = (10, 60)  # 10 approvals per minute
RATE_LIMIT_REJECT = (10, 60)  # 10 rejections per minute


async def _check_admin_rate_limit(
    admin: AdminUser,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Check rate limit for an admin action.

    Raises:
        RateLimitExceeded: If rate limit is exceeded
    """
    key = f"admin:{action}:{admin.id}"
    allowed = await check_rate_limit(key, limit, window_seconds)

    if not allowed:
        logger.warning(
            f"Rate limit exceeded for admin {admin.id} on action '{action}': "
            f"{limit}/{window_seconds}s"
        )
        raise RateLimitExceeded(limit, window_seconds)


def _handle_service_error(e: RegistrationServiceError) -> HTTPException:
    """Convert service errors to HTTPExceptions."""
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


@router.get(
    "",
    response_model=RegistrationListResponse,
    summary="List Registration Requests",
    description="""
Get a paginated list of registration requests, oldest first.

**Filters:**
- `status`: pending, approved or rejected
- `role`: standard, field_agent, organization or admin

**Access:** Admin only
""",
    responses={
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
    },
)
async def list_registrations(
    status_filter: RegistrationStatus | None = Query(
        None,
        alias="status",
        description="Filter by request status",
    ),
    role: UserRole | None = Query(None, description="Filter by requested role"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> RegistrationListResponse:
    try:
        result = await service.admin_get_registrations_list(
            db,
            status=status_filter,
            role=role,
            page=page,
            page_size=page_size,
        )

        logger.info(
            f"Admin {admin.id} listed registrations: "
            f"total={result['total']}, returned={len(result['items'])}"
        )

        return RegistrationListResponse(
            items=[RegistrationListItem.model_validate(item) for item in result["items"]],
            total=result["total"],
            page=result["page"],
            page_size=result["page_size"],
        )

    except RegistrationServiceError as e:
        raise _handle_service_error(e) from e
    except Exception as e:
        logger.exception(f"Error listing registrations: {e}")
        raise _internal_error() from e


@router.get(
    "/{request_id}",
    response_model=RegistrationDetailResponse,
    summary="Get Registration Request",
    description="""
Get the full registration request, including role attributes, the
decision, and the activation code once approved.

**Access:** Admin only
""",
    responses={
        404: {"description": "Registration request not found"},
    },
)
async def get_registration(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> RegistrationDetailResponse:
    try:
        request = await service.admin_get_registration_detail(db, request_id)
        logger.info(f"Admin {admin.id} viewed registration {request_id}")
        return RegistrationDetailResponse.model_validate(request)

    except RegistrationServiceError as e:
        raise _handle_service_error(e) from e
    except Exception as e:
        logger.exception(f"Error getting registration {request_id}: {e}")
        raise _internal_error() from e


@router.post(
    "/{request_id}/approve",
    response_model=ApproveResponse,
    summary="Approve Registration",
    description="""
Approve a pending registration request.

**This action:**
1. Claims the request (pending -> approved)
2. Reuses or creates the identity for the request email
3. Creates or refreshes the profile and the role record
4. Issues a 4-digit activation code
5. Emails the code to the applicant (best-effort)

Steps 1-4 commit together. If any of them fails the request stays
pending and the call can be retried. The activation code is returned in
the response even if the email could not be sent.

**Rate Limit:** 10 approvals per minute

**Access:** Admin only
""",
    responses={
        404: {"description": "Registration request not found"},
        409: {
            "description": "Request already approved or rejected",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "ALREADY_DECIDED",
                            "message": "This registration request has already been processed (approved).",
                        }
                    }
                }
            },
        },
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Provisioning failed; the request is still pending"},
    },
)
async def approve_registration(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApproveResponse:
    await _check_admin_rate_limit(admin, "approve", *RATE_LIMIT_APPROVE)

    try:
        result = await service.approve_registration(db, request_id, str(admin.id))

        logger.info(f"Admin {admin.id} approved registration {request_id}")

        return ApproveResponse(
            id=result["id"],
            user_id=result["user_id"],
            activation_code=result["activation_code"],
            email_sent=result["email_sent"],
            message=result["message"],
        )

    except AlreadyDecidedError as e:
        logger.warning(f"Registration {request_id} already decided: {e.message}")
        raise _handle_service_error(e) from e
    except RegistrationServiceError as e:
        raise _handle_service_error(e) from e
    except Exception as e:
        logger.exception(f"Error approving registration {request_id}: {e}")
        raise _internal_error() from e


@router.post(
    "/{request_id}/reject",
    response_model=RejectResponse,
    summary="Reject Registration",
    description="""
Reject a pending registration request.

The reason (optional, max 1000 characters) is stored and emailed to the
applicant. When omitted a default reason is used. No account is created.

**Rate Limit:** 10 rejections per minute

**Access:** Admin only
""",
    responses={
        404: {"description": "Registration request not found"},
        409: {"description": "Request already approved or rejected"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def reject_registration(
    request_id: UUID,
    data: RejectRequest | None = None,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> RejectResponse:
    await _check_admin_rate_limit(admin, "reject", *RATE_LIMIT_REJECT)

    try:
        result = await service.reject_registration(
            db, request_id, str(admin.id), data.reason if data else None
        )

        logger.info(f"Admin {admin.id} rejected registration {request_id}")

        return RejectResponse(
            id=result["id"],
            status=result["status"],
            rejection_reason=result["rejection_reason"],
            message=result["message"],
        )

    except AlreadyDecidedError as e:
        logger.warning(f"Registration {request_id} already decided: {e.message}")
        raise _handle_service_error(e) from e
    except RegistrationServiceError as e:
        raise _handle_service_error(e) from e
    except Exception as e:
        logger.exception(f"Error rejecting registration {request_id}: {e}")
        raise _internal_error() from e
