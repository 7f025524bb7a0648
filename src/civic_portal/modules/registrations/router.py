"""
Registrations Router

Public endpoints for the registration flow. No authentication: the
applicant has no account yet, and quick-action links are authorized by
their signed token.

Endpoints:
- POST /registrations - Submit a registration request
- GET /registrations/quick-action - Approve or reject from an admin email link (HTML)

Security:
- Quick-action tokens are checked before the request is looked up
- Quick-action links are rate limited per client IP
- The HTML pages never include exception details
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.core.database import get_db
from civic_portal.core.rate_limit import rate_limit
from civic_portal.modules.registrations import pages, service
from civic_portal.modules.registrations.schemas import (
    RegistrationCreate,
    RegistrationSubmitResponse,
)
from civic_portal.modules.registrations.service import (
    AlreadyDecidedError,
    DuplicateRegistrationError,
    InvalidTokenError,
    RegistrationNotFoundError,
    RegistrationServiceError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=RegistrationSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Registration Request",
    description="""
Submit a registration request for review.

Field agents may send `role_attributes` of kind `field_agent`
(region, commune, neighborhood); organizations may send kind
`organization` (name, sector, address, phone). Other roles take no
attributes.

After review the applicant receives either an activation code or a
rejection email.

**Duplicate Prevention:** one pending request per email.
""",
    responses={
        409: {
            "description": "A pending request already exists for this email",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "DUPLICATE_REGISTRATION",
                            "message": "A registration request for a@example.com is already awaiting review.",
                        }
                    }
                }
            },
        },
        422: {"description": "Validation error (e.g. role_attributes kind does not match role)"},
    },
)
async def submit_registration(
    data: RegistrationCreate,
    db: AsyncSession = Depends(get_db),
) -> RegistrationSubmitResponse:
    try:
        request = await service.submit_registration(db, data)
        return RegistrationSubmitResponse.model_validate(request)

    except DuplicateRegistrationError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": e.error_code,
                "message": e.message,
            },
        ) from e
    except RegistrationServiceError as e:
        logger.error(f"Registration service error: {e.message}")
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.error_code,
                "message": e.message,
            },
        ) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error submitting registration: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e


@router.get(
    "/quick-action",
    response_class=HTMLResponse,
    summary="Approve or Reject from Email Link",
    description="""
Target of the approve/reject links in the admin notification email.

The token is derived from the request id and a server secret. The link
works once, while the request is pending; later clicks show an
"already processed" page.

**Rate limit:** 20 requests per minute per client IP.
""",
)
@rate_limit(limit=20, window_seconds=60)
async def quick_action(
    request: Request,
    action: Literal["approve", "reject"] = Query(...),
    id: UUID = Query(..., description="Registration request id"),
    token: str = Query(..., min_length=1, max_length=64),
    reason: str | None = Query(None, max_length=1000),
    db: AsyncSession = Depends(get_db),
) -> HTMLResponse:
    try:
        result = await service.handle_quick_action(
            db,
            action=action,
            request_id=id,
            token=token,
            reason=reason,
        )
    except InvalidTokenError:
        return HTMLResponse(pages.invalid_link_page(), status_code=status.HTTP_403_FORBIDDEN)
    except (AlreadyDecidedError, RegistrationNotFoundError):
        return HTMLResponse(pages.already_processed_page(), status_code=status.HTTP_409_CONFLICT)
    except Exception as e:
        logger.exception(f"Quick action {action} failed for registration {id}: {e}")
        return HTMLResponse(
            pages.failure_page(), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    logger.info(f"Quick action {action} completed for registration {id}")

    if action == "approve":
        return HTMLResponse(
            pages.approved_page(
                result["username"],
                result["activation_code"],
                result["email_sent"],
            )
        )
    return HTMLResponse(pages.rejected_page(result["username"], result["rejection_reason"]))
