"""
Registration Requests Repository

Database operations for registration requests.

The pending -> approved/rejected transition is claimed with a conditional
UPDATE (``WHERE status = 'pending'``). Under concurrent decisions only one
statement matches the row; the other sees zero rows and loses. Claims are
executed but not committed: the approval transaction commits once
provisioning and code issuance have succeeded.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.modules.users.models import UserRole

from .models import RegistrationRequest, RegistrationStatus

# Decisions are final: only pending requests can move, and only once
VALID_STATUS_TRANSITIONS: dict[RegistrationStatus, set[RegistrationStatus]] = {
    RegistrationStatus.PENDING: {
        RegistrationStatus.APPROVED,
        RegistrationStatus.REJECTED,
    },
    # Terminal states - no transitions allowed
    RegistrationStatus.APPROVED: set(),
    RegistrationStatus.REJECTED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(
        self,
        current_status: RegistrationStatus,
        new_status: RegistrationStatus,
    ):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def ensure_transition(current_status: RegistrationStatus, new_status: RegistrationStatus) -> None:
    """
    Raises:
        InvalidStatusTransitionError: If the state machine forbids the move
    """
    if new_status not in VALID_STATUS_TRANSITIONS.get(current_status, set()):
        raise InvalidStatusTransitionError(current_status, new_status)


async def create(
    db: AsyncSession,
    *,
    email: str,
    username: str,
    role: UserRole,
    external_id: str,
    role_attributes: dict[str, Any] | None,
    password_hash: str | None,
) -> RegistrationRequest:
    """Create a pending registration request and commit it."""
    request = RegistrationRequest(
        email=email.lower(),
        username=username,
        role=role,
        external_id=external_id,
        role_attributes=role_attributes,
        password_hash=password_hash,
        status=RegistrationStatus.PENDING,
    )

    db.add(request)
    await db.commit()
    await db.refresh(request)

    return request


async def get_by_id(db: AsyncSession, id: UUID) -> RegistrationRequest | None:
    """Get registration request by ID."""
    return await db.get(RegistrationRequest, id)


async def get_pending_by_email(db: AsyncSession, email: str) -> RegistrationRequest | None:
    result = await db.execute(
        select(RegistrationRequest).where(
            func.lower(RegistrationRequest.email) == email.lower(),
            RegistrationRequest.status == RegistrationStatus.PENDING,
        )
    )
    return result.scalars().first()


def build_claim_decision(
    request_id: UUID,
    new_status: RegistrationStatus,
    *,
    decided_by: str,
    decided_at: datetime,
    activation_code: str | None = None,
    rejection_reason: str | None = None,
):
    """Conditional UPDATE that only matches a request still in ``pending``."""
    ensure_transition(RegistrationStatus.PENDING, new_status)

    values: dict[str, Any] = {
        "status": new_status,
        "decided_by": decided_by,
        "decided_at": decided_at,
    }
    if activation_code is not None:
        values["activation_code"] = activation_code
    if rejection_reason is not None:
        values["rejection_reason"] = rejection_reason

    return (
        update(RegistrationRequest)
        .where(
            RegistrationRequest.id == request_id,
            RegistrationRequest.status == RegistrationStatus.PENDING,
        )
        .values(**values)
        .returning(RegistrationRequest.id)
        .execution_options(synchronize_session=False)
    )


async def claim_decision(
    db: AsyncSession,
    request_id: UUID,
    new_status: RegistrationStatus,
    *,
    decided_by: str,
    decided_at: datetime,
    activation_code: str | None = None,
    rejection_reason: str | None = None,
) -> bool:
    """
    Flip a pending request to its terminal status without committing.

    Returns:
        True if this call won the transition; False if the request was
        not pending (already decided, or decided concurrently)
    """
    result = await db.execute(
        build_claim_decision(
            request_id,
            new_status,
            decided_by=decided_by,
            decided_at=decided_at,
            activation_code=activation_code,
            rejection_reason=rejection_reason,
        )
    )
    return result.scalar_one_or_none() is not None


async def get_registrations_for_admin(
    db: AsyncSession,
    *,
    status: RegistrationStatus | None = None,
    role: UserRole | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[RegistrationRequest], int]:
    """
    Get registration requests with filters and pagination, oldest first.

    Returns:
        Tuple of (list of requests, total count matching filters)
    """
    query = select(RegistrationRequest)

    if status:
        query = query.where(RegistrationRequest.status == status)
    if role:
        query = query.where(RegistrationRequest.role == role)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(RegistrationRequest.created_at.asc()).offset(skip).limit(limit)
    result = await db.execute(query)

    return list(result.scalars().all()), total
