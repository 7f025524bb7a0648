"""
Codes Router

Public endpoints for one-time codes.

Endpoints:
- POST /codes/send - Email a 6-digit code for login, registration or password reset
- POST /codes/verify - Redeem a code (OTP or 4-digit activation code)

Security:
- Per-email rate limits: 5 sends and 10 verifications per 15 minutes
- Verification failures are indistinguishable (wrong, missing or expired)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.core.database import get_db
from civic_portal.core.rate_limit import enforce_rate_limit
from civic_portal.modules.codes import service
from civic_portal.modules.codes.schemas import (
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from civic_portal.modules.codes.service import CodeServiceError

logger = logging.getLogger(__name__)

router = APIRouter()

OTP_WINDOW_SECONDS = 15 * 60
OTP_SEND_LIMIT = 5
OTP_VERIFY_LIMIT = 10


def _error_response(e: CodeServiceError) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )


@router.post(
    "/send",
    response_model=SendCodeResponse,
    summary="Send Verification Code",
    description="""
Email a 6-digit verification code.

A new request for the same email and purpose replaces any earlier code.
The code expires after 10 minutes and can be used once.

**Rate limit:** 5 requests per email per 15 minutes.
""",
    responses={
        429: {"description": "Too many codes requested for this email"},
        503: {
            "description": "Email delivery failed on every provider",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "CODE_DELIVERY_FAILED",
                            "message": "The verification code could not be delivered. Please try again later.",
                        }
                    }
                }
            },
        },
    },
)
async def send_code(
    data: SendCodeRequest,
    db: AsyncSession = Depends(get_db),
) -> SendCodeResponse:
    await enforce_rate_limit(f"otp:send:{data.email}", OTP_SEND_LIMIT, OTP_WINDOW_SECONDS)

    try:
        result = await service.request_otp(db, data.email, data.purpose)
        return SendCodeResponse(expires_in=result["expires_in"])

    except CodeServiceError as e:
        raise _error_response(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error sending code: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e


@router.post(
    "/verify",
    response_model=VerifyCodeResponse,
    summary="Verify Code",
    description="""
Redeem a verification or activation code.

Redeeming a registration code or an approval activation code marks the
account as verified, after which it can sign in.

**Rate limit:** 10 attempts per email per 15 minutes.
""",
    responses={
        400: {
            "description": "Invalid or expired code",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "INVALID_OR_EXPIRED_CODE",
                            "message": "Invalid or expired code.",
                        }
                    }
                }
            },
        },
        429: {"description": "Too many attempts for this email"},
    },
)
async def verify_code(
    data: VerifyCodeRequest,
    db: AsyncSession = Depends(get_db),
) -> VerifyCodeResponse:
    await enforce_rate_limit(f"otp:verify:{data.email}", OTP_VERIFY_LIMIT, OTP_WINDOW_SECONDS)

    try:
        result = await service.verify_code(db, data.email, data.purpose, data.code)
        return VerifyCodeResponse(admitted=result["admitted"])

    except CodeServiceError as e:
        raise _error_response(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error verifying code: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e
