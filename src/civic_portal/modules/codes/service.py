"""
Code Service

Generation, issuing and verification of one-time codes.

- OTPs (login, registration, password reset) are 6 digits, 100000-999999.
- Activation codes (issued at registration approval) are 4 digits,
  0000-9999, always zero-padded.
- Verification is single-use: the conditional UPDATE on ``used`` is the
  serialization point, so concurrent verifications yield one success.
- Failure responses never distinguish "wrong code", "no code" and
  "expired code".
"""

import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.core.config import settings
from civic_portal.core.email import AllProvidersFailedError, NotificationType, send_notification
from civic_portal.modules.codes import repository
from civic_portal.modules.codes.models import CodePurpose
from civic_portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

OTP_MIN = 100_000
OTP_RANGE = 900_000
ACTIVATION_CODE_LENGTH = 4

# Codes that can be requested directly by email
OTP_PURPOSES = frozenset(
    {CodePurpose.LOGIN, CodePurpose.REGISTRATION, CodePurpose.PASSWORD_RESET}
)

# Successful verification of these marks the identity as verified
ADMITTING_PURPOSES = frozenset({CodePurpose.APPROVAL_ACTIVATION, CodePurpose.REGISTRATION})


class CodeServiceError(Exception):
    """Base exception for code service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class InvalidOrExpiredError(CodeServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid or expired code.",
            error_code="INVALID_OR_EXPIRED_CODE",
            status_code=400,
        )


class PurposeNotAllowedError(CodeServiceError):
    def __init__(self, purpose: CodePurpose):
        super().__init__(
            message=f"Codes for '{purpose.value}' cannot be requested directly.",
            error_code="PURPOSE_NOT_ALLOWED",
            status_code=400,
        )


class CodeDeliveryError(CodeServiceError):
    def __init__(self):
        super().__init__(
            message="The verification code could not be delivered. Please try again later.",
            error_code="CODE_DELIVERY_FAILED",
            status_code=503,
        )


def generate_otp() -> str:
    """6-digit OTP in 100000-999999."""
    return str(OTP_MIN + secrets.randbelow(OTP_RANGE))


def generate_activation_code() -> str:
    """4-digit activation code, zero-padded (e.g. "0042")."""
    return f"{secrets.randbelow(10**ACTIVATION_CODE_LENGTH):0{ACTIVATION_CODE_LENGTH}d}"


def code_lifetime(purpose: CodePurpose) -> timedelta:
    if purpose == CodePurpose.APPROVAL_ACTIVATION:
        return timedelta(minutes=settings.activation_code_expiry_minutes)
    return timedelta(minutes=settings.otp_expiry_minutes)


async def issue_code(
    db: AsyncSession,
    email: str,
    purpose: CodePurpose,
    code: str | None = None,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """
    Store a fresh code for (email, purpose) without committing.

    Args:
        db: Database session (caller commits)
        email: Normalized (lowercase) email
        purpose: Code purpose
        code: Pre-generated code; generated for the purpose if omitted
        now: Clock override for tests

    Returns:
        (code, expires_at)
    """
    if code is None:
        code = (
            generate_activation_code()
            if purpose == CodePurpose.APPROVAL_ACTIVATION
            else generate_otp()
        )
    expires_at = (now or datetime.now(UTC)) + code_lifetime(purpose)

    await repository.upsert_code(
        db,
        email=email.lower(),
        purpose=purpose,
        code=code,
        expires_at=expires_at,
    )
    return code, expires_at


async def request_otp(db: AsyncSession, email: str, purpose: CodePurpose) -> dict:
    """
    Issue an OTP and deliver it by email.

    Delivery failure is a hard error here: no other channel surfaces
    the code to the user.

    Returns:
        Dict with success and expires_in (seconds)

    Raises:
        PurposeNotAllowedError: For purposes that cannot be requested directly
        CodeDeliveryError: If every email provider failed
    """
    if purpose not in OTP_PURPOSES:
        raise PurposeNotAllowedError(purpose)

    email = email.strip().lower()
    code, _expires_at = await issue_code(db, email, purpose)
    await db.commit()

    try:
        receipt = await send_notification(
            NotificationType.OTP,
            email,
            {
                "code": code,
                "purpose": purpose.value,
                "expires_in_minutes": settings.otp_expiry_minutes,
            },
        )
    except AllProvidersFailedError as e:
        logger.error(f"OTP delivery failed for {email} ({purpose.value}): {e}")
        raise CodeDeliveryError() from e

    logger.info(f"OTP issued for {email} ({purpose.value}) via {receipt.provider}")
    return {
        "success": True,
        "expires_in": int(code_lifetime(purpose).total_seconds()),
    }


def _codes_match(stored: str, submitted: str) -> bool:
    return hmac.compare_digest(stored.encode(), submitted.encode())


async def verify_code(
    db: AsyncSession,
    email: str,
    purpose: CodePurpose,
    submitted_code: str,
    now: datetime | None = None,
) -> dict:
    """
    Redeem a code.

    An expired but matching code is burned (``used=true``) before the
    failure is reported, so it can never be replayed.

    Returns:
        Dict with email, purpose, verified_at and admitted

    Raises:
        InvalidOrExpiredError: For any failure
    """
    email = email.strip().lower()
    submitted_code = submitted_code.strip()
    now = now or datetime.now(UTC)

    record = await repository.get_unused(db, email, purpose)

    if record is None or not _codes_match(record.code, submitted_code):
        logger.warning(f"Code verification failed for {email} ({purpose.value})")
        raise InvalidOrExpiredError()

    if now > record.expires_at:
        await repository.mark_used(db, record.id, record.code, now)
        await db.commit()
        logger.warning(f"Expired code presented for {email} ({purpose.value}); burned")
        raise InvalidOrExpiredError()

    consumed = await repository.consume(db, record.id, record.code, now)
    if not consumed:
        await db.rollback()
        logger.warning(f"Code for {email} ({purpose.value}) was consumed concurrently")
        raise InvalidOrExpiredError()

    admitted = False
    if purpose in ADMITTING_PURPOSES:
        admitted = await UserRepository.mark_verified(db, email)

    await db.commit()
    logger.info(f"Code verified for {email} ({purpose.value}), admitted={admitted}")

    return {
        "email": email,
        "purpose": purpose,
        "verified_at": now,
        "admitted": admitted,
    }
