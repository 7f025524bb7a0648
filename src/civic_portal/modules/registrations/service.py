"""
Registration Service Layer

Business logic for registration requests and the approval engine.

This module implements:
1. Submission:
   - One pending request per email
   - Password hashed on arrival; role attributes stored as validated JSON
   - Best-effort admin notification carrying signed approve/reject links

2. Approval (the decision commit path):
   - Claim the request with a conditional UPDATE (pending -> approved)
   - Reuse or create the identity, upsert profile and role record
   - Upsert the 4-digit activation code record
   - Commit; any failure before this point rolls everything back and
     leaves the request pending, so the call can be retried

3. Rejection:
   - Claim the request (pending -> rejected) with a reason and commit

4. After commit (best-effort, never fails the call):
   - Notify the applicant
   - Append an activity log entry

Concurrency:
- Two concurrent decisions on the same request: one claim matches the
  row, the other matches nothing and fails with AlreadyDecidedError.
- Deciding an already decided request fails loudly; decisions are not
  idempotent across repeats.
"""

import contextlib
import logging
import secrets
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.core.config import settings
from civic_portal.core.email import NotificationType, send_notification
from civic_portal.core.security import hash_password
from civic_portal.modules.activity_log import repository as activity_log
from civic_portal.modules.activity_log.models import ActionType
from civic_portal.modules.codes.models import CodePurpose
from civic_portal.modules.codes.service import generate_activation_code, issue_code
from civic_portal.modules.registrations import repository
from civic_portal.modules.registrations.helpers import (
    DEFAULT_ORGANIZATION_NAME,
    DEFAULT_SECTOR,
    QUICK_ACTION_ACTOR_ID,
    build_quick_action_url,
    compose_department,
    verify_quick_action_token,
)
from civic_portal.modules.registrations.models import RegistrationRequest, RegistrationStatus
from civic_portal.modules.registrations.schemas import RegistrationCreate
from civic_portal.modules.roles.repository import RoleRecordRepository
from civic_portal.modules.users.models import UserRole
from civic_portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Your registration request could not be approved."
TEMP_PASSWORD_BYTES = 24

CHANNEL_PANEL = "panel"
CHANNEL_EMAIL_LINK = "email_link"


class RegistrationServiceError(Exception):
    """Base exception for registration service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class RegistrationNotFoundError(RegistrationServiceError):
    """Raised when a registration request is not found."""

    def __init__(self, request_id: UUID | None = None):
        message = (
            f"Registration request {request_id} not found"
            if request_id
            else "Registration request not found"
        )
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
        )


class AlreadyDecidedError(RegistrationServiceError):
    """Raised when a request has already been approved or rejected."""

    def __init__(self, current_status: RegistrationStatus | None = None):
        self.current_status = current_status
        status_text = f" ({current_status.value})" if current_status else ""
        super().__init__(
            message=f"This registration request has already been processed{status_text}.",
            error_code="ALREADY_DECIDED",
            status_code=409,
        )


class ProvisioningError(RegistrationServiceError):
    """Raised when the identity, profile, role record or code could not be created."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="PROVISIONING_FAILED",
            status_code=500,
        )


class DecisionPersistenceError(RegistrationServiceError):
    """Raised when a rejection could not be written; the request stays pending."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="DECISION_FAILED",
            status_code=500,
        )


class DuplicateRegistrationError(RegistrationServiceError):
    """Raised when the email already has a pending request."""

    def __init__(self, email: str):
        super().__init__(
            message=f"A registration request for {email} is already awaiting review.",
            error_code="DUPLICATE_REGISTRATION",
            status_code=409,
        )


class InvalidTokenError(RegistrationServiceError):
    """Raised when a quick-action link token does not match."""

    def __init__(self):
        super().__init__(
            message="Invalid or tampered action link.",
            error_code="INVALID_TOKEN",
            status_code=403,
        )


async def _send_best_effort(
    notification_type: NotificationType,
    to_email: str,
    data: dict[str, Any],
) -> bool:
    """Send a notification; log and report False on any failure."""
    try:
        await send_notification(notification_type, to_email, data)
        return True
    except Exception as e:
        logger.error(f"Failed to send {notification_type.value} email to {to_email}: {e}", exc_info=True)
        return False


async def _log_decision_best_effort(
    db: AsyncSession,
    *,
    actor_id: str,
    action_type: ActionType,
    target_id: UUID,
    description: str,
    details: dict[str, Any],
) -> None:
    try:
        await activity_log.append(
            db,
            # Email-link decisions have no authenticated actor
            actor_id=None if actor_id == QUICK_ACTION_ACTOR_ID else actor_id,
            action_type=action_type,
            target_id=str(target_id),
            description=description,
            details=details,
        )
    except Exception as e:
        logger.error(f"Failed to write activity log for {target_id}: {e}", exc_info=True)
        with contextlib.suppress(Exception):
            await db.rollback()


def _channel_for(actor_id: str) -> str:
    return CHANNEL_EMAIL_LINK if actor_id == QUICK_ACTION_ACTOR_ID else CHANNEL_PANEL


# ============================================
# Submission
# ============================================


async def submit_registration(db: AsyncSession, data: RegistrationCreate) -> RegistrationRequest:
    """
    Store a new pending registration request.

    Args:
        db: Database session
        data: Validated submission

    Returns:
        The stored RegistrationRequest

    Raises:
        DuplicateRegistrationError: If the email already has a pending request
    """
    logger.info(f"Processing registration submission for {data.email} ({data.role.value})")

    if await repository.get_pending_by_email(db, data.email):
        logger.warning(f"Duplicate pending registration for {data.email}")
        raise DuplicateRegistrationError(data.email)

    try:
        request = await repository.create(
            db,
            email=data.email,
            username=data.username,
            role=data.role,
            external_id=data.external_id,
            role_attributes=data.role_attributes.model_dump() if data.role_attributes else None,
            password_hash=hash_password(data.password.get_secret_value()),
        )
    except IntegrityError as e:
        # Lost a race on the pending-email unique index
        await db.rollback()
        logger.warning(f"Duplicate pending registration for {data.email} (concurrent submit)")
        raise DuplicateRegistrationError(data.email) from e

    logger.info(f"Created registration request {request.id}")

    if settings.admin_notification_email:
        await _send_best_effort(
            NotificationType.ADMIN_NOTIFICATION,
            settings.admin_notification_email,
            {
                "username": request.username,
                "email": request.email,
                "role_label": request.role.label,
                "external_id": request.external_id,
                "approve_url": build_quick_action_url(request.id, "approve"),
                "reject_url": build_quick_action_url(request.id, "reject"),
            },
        )
    else:
        logger.warning("ADMIN_NOTIFICATION_EMAIL not set, skipping admin notification")

    return request


# ============================================
# Decisions
# ============================================


async def _get_pending_or_raise(db: AsyncSession, request_id: UUID) -> RegistrationRequest:
    request = await repository.get_by_id(db, request_id)

    if not request:
        logger.warning(f"Registration request not found: {request_id}")
        raise RegistrationNotFoundError(request_id)

    if request.status != RegistrationStatus.PENDING:
        logger.warning(
            f"Registration request {request_id} already decided: status={request.status.value}"
        )
        raise AlreadyDecidedError(request.status)

    return request


async def _lost_race(db: AsyncSession, request: RegistrationRequest) -> AlreadyDecidedError:
    """Roll back a lost claim and build the error with the winner's status."""
    await db.rollback()
    current_status = None
    with contextlib.suppress(Exception):
        await db.refresh(request)
        current_status = request.status
    logger.warning(f"Registration request {request.id} was decided concurrently")
    return AlreadyDecidedError(current_status)


async def _provision_identity(
    db: AsyncSession,
    *,
    email: str,
    username: str,
    role: UserRole,
    external_id: str,
    role_attributes: dict[str, Any],
    password_hash: str | None,
) -> UUID:
    """
    Reuse or create the identity, then upsert its profile and role record.

    Every write is keyed by the identity id, so repeating this for the
    same email leaves one profile and one role record.
    """
    existing_user = await UserRepository.get_by_email(db, email)
    if existing_user:
        user_id = existing_user.id
        logger.info(f"Reusing existing identity {user_id} for {email}")
    else:
        must_change_password = False
        if password_hash is None:
            password_hash = hash_password(secrets.token_urlsafe(TEMP_PASSWORD_BYTES))
            must_change_password = True

        user = await UserRepository.create(
            db,
            email=email,
            password_hash=password_hash,
            is_active=True,
            is_verified=False,
            must_change_password=must_change_password,
        )
        user_id = user.id

    await UserRepository.upsert_profile(
        db,
        user_id=user_id,
        role=role,
        username=username,
        external_id=external_id,
    )

    if role == UserRole.FIELD_AGENT:
        await RoleRecordRepository.upsert_field_agent(
            db,
            user_id=user_id,
            department=compose_department(
                role_attributes.get("region"),
                role_attributes.get("commune"),
                role_attributes.get("neighborhood"),
            ),
        )
    elif role == UserRole.ORGANIZATION:
        await RoleRecordRepository.upsert_organization(
            db,
            user_id=user_id,
            name=role_attributes.get("name") or DEFAULT_ORGANIZATION_NAME,
            sector=role_attributes.get("sector") or DEFAULT_SECTOR,
            address=role_attributes.get("address"),
            phone=role_attributes.get("phone"),
        )

    return user_id


async def approve_registration(
    db: AsyncSession,
    request_id: UUID,
    actor_id: str,
) -> dict:
    """
    Approve a pending request, provision the identity and issue an activation code.

    Args:
        db: Database session
        request_id: UUID of the registration request
        actor_id: Admin id, or QUICK_ACTION_ACTOR_ID for email links

    Returns:
        Dict with id, username, user_id, activation_code, email_sent, message

    Raises:
        RegistrationNotFoundError: If the request doesn't exist
        AlreadyDecidedError: If the request is no longer pending
        ProvisioningError: If any step before the commit failed
    """
    logger.info(f"Actor {actor_id} approving registration {request_id}")

    request = await _get_pending_or_raise(db, request_id)

    # Read everything up front; a rollback expires the instance
    email = request.email
    username = request.username
    role = request.role
    external_id = request.external_id
    role_attributes = dict(request.role_attributes or {})
    password_hash = request.password_hash

    activation_code = generate_activation_code()
    decided_at = datetime.now(UTC)

    try:
        # ============================================
        # DECISION TRANSACTION: claim, provision, issue code, commit
        # ============================================
        claimed = await repository.claim_decision(
            db,
            request_id,
            RegistrationStatus.APPROVED,
            decided_by=actor_id,
            decided_at=decided_at,
            activation_code=activation_code,
        )
        if not claimed:
            raise await _lost_race(db, request)

        user_id = await _provision_identity(
            db,
            email=email,
            username=username,
            role=role,
            external_id=external_id,
            role_attributes=role_attributes,
            password_hash=password_hash,
        )

        await issue_code(
            db,
            email,
            CodePurpose.APPROVAL_ACTIVATION,
            code=activation_code,
            now=decided_at,
        )

        await db.commit()

    except RegistrationServiceError:
        raise
    except Exception as e:
        logger.error(f"Provisioning failed for registration {request_id}: {e}", exc_info=True)
        with contextlib.suppress(Exception):
            await db.rollback()
        raise ProvisioningError(
            "Failed to provision the account. The request is still pending; please try again."
        ) from e

    logger.info(f"Registration {request_id} approved. User ID: {user_id}")

    email_sent = await _send_best_effort(
        NotificationType.APPROVAL,
        email,
        {
            "activation_code": activation_code,
            "username": username,
            "role_label": role.label,
        },
    )

    await _log_decision_best_effort(
        db,
        actor_id=actor_id,
        action_type=ActionType.APPROVE,
        target_id=request_id,
        description=f"Approved {role.label.lower()} registration for {username}",
        details={
            "pending_user_id": str(request_id),
            "user_id": str(user_id),
            "user_type": role.value,
            "approved_via": _channel_for(actor_id),
        },
    )

    message = (
        "Registration approved. The activation code was emailed to the applicant."
        if email_sent
        else "Registration approved, but the activation email could not be sent. "
        "Share the activation code with the applicant directly."
    )

    return {
        "id": request_id,
        "username": username,
        "user_id": user_id,
        "activation_code": activation_code,
        "email_sent": email_sent,
        "message": message,
    }


async def reject_registration(
    db: AsyncSession,
    request_id: UUID,
    actor_id: str,
    reason: str | None = None,
) -> dict:
    """
    Reject a pending request. No identity is provisioned.

    Returns:
        Dict with id, username, status, rejection_reason, message

    Raises:
        RegistrationNotFoundError: If the request doesn't exist
        AlreadyDecidedError: If the request is no longer pending
        DecisionPersistenceError: If the rejection could not be written
    """
    logger.info(f"Actor {actor_id} rejecting registration {request_id}")

    request = await _get_pending_or_raise(db, request_id)

    email = request.email
    username = request.username
    role = request.role
    rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON

    try:
        claimed = await repository.claim_decision(
            db,
            request_id,
            RegistrationStatus.REJECTED,
            decided_by=actor_id,
            decided_at=datetime.now(UTC),
            rejection_reason=rejection_reason,
        )
        if not claimed:
            raise await _lost_race(db, request)

        await db.commit()
    except RegistrationServiceError:
        raise
    except Exception as e:
        logger.error(f"Failed to record rejection for registration {request_id}: {e}", exc_info=True)
        with contextlib.suppress(Exception):
            await db.rollback()
        raise DecisionPersistenceError(
            "Failed to record the rejection. The request is still pending; please try again."
        ) from e

    logger.info(f"Registration {request_id} rejected")

    await _send_best_effort(
        NotificationType.REJECTION,
        email,
        {"username": username, "reason": rejection_reason},
    )

    await _log_decision_best_effort(
        db,
        actor_id=actor_id,
        action_type=ActionType.REJECT,
        target_id=request_id,
        description=f"Rejected {role.label.lower()} registration for {username}",
        details={
            "pending_user_id": str(request_id),
            "user_type": role.value,
            "rejected_via": _channel_for(actor_id),
            "reason": rejection_reason,
        },
    )

    return {
        "id": request_id,
        "username": username,
        "status": RegistrationStatus.REJECTED,
        "rejection_reason": rejection_reason,
        "message": "Registration rejected.",
    }


async def handle_quick_action(
    db: AsyncSession,
    *,
    action: str,
    request_id: UUID,
    token: str,
    reason: str | None = None,
) -> dict:
    """
    Decide a request from an email link.

    The token is checked before the request is looked up, so a bad link
    reveals nothing about which ids exist.

    Raises:
        InvalidTokenError: If the token does not match the request id
        ValueError: If action is not approve or reject
        RegistrationNotFoundError, AlreadyDecidedError, ProvisioningError,
        DecisionPersistenceError
    """
    if not verify_quick_action_token(request_id, token):
        logger.warning(f"Invalid quick-action token for registration {request_id}")
        raise InvalidTokenError()

    if action == "approve":
        return await approve_registration(db, request_id, QUICK_ACTION_ACTOR_ID)
    if action == "reject":
        return await reject_registration(db, request_id, QUICK_ACTION_ACTOR_ID, reason)

    raise ValueError(f"Unknown quick action: {action}")


# ============================================
# Admin queries
# ============================================


async def admin_get_registrations_list(
    db: AsyncSession,
    *,
    status: RegistrationStatus | None = None,
    role: UserRole | None = None,
    page: int = 1,
    page_size: int = 20,
) -> dict:
    """
    Get a paginated list of registration requests.

    Returns:
        Dict with items, total, page and page_size
    """
    page = max(1, page)
    page_size = min(max(1, page_size), 100)

    logger.info(
        f"Admin listing registrations: status={status}, role={role}, "
        f"page={page}, page_size={page_size}"
    )

    items, total = await repository.get_registrations_for_admin(
        db,
        status=status,
        role=role,
        skip=(page - 1) * page_size,
        limit=page_size,
    )

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
    }


async def admin_get_registration_detail(
    db: AsyncSession,
    request_id: UUID,
) -> RegistrationRequest:
    """
    Raises:
        RegistrationNotFoundError: If the request doesn't exist
    """
    request = await repository.get_by_id(db, request_id)

    if not request:
        logger.warning(f"Registration request not found: {request_id}")
        raise RegistrationNotFoundError(request_id)

    return request
