"""
Registration Request Models

A registration request is created on submission (status=pending) and is
decided exactly once, by approval or rejection. Rows are never deleted;
they double as the audit trail of who decided what.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import ENUM, JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from civic_portal.core.database import Base
from civic_portal.modules.users.models import UserRole


class RegistrationStatus(str, enum.Enum):
    """Status of a registration request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RegistrationRequest(Base):
    """
    Registration request awaiting (or carrying) an admin decision.

    ``role_attributes`` holds only validated, role-tagged attributes.
    The password never enters it: it is hashed on submission and kept in
    ``password_hash`` until the identity is provisioned.
    """

    __tablename__ = "registration_requests"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Applicant
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        ENUM(
            UserRole,
            name="user_role",
            values_callable=lambda e: [m.value for m in e],
            create_type=False,
        ),
        nullable=False,
    )
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)
    role_attributes: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Decision
    status: Mapped[RegistrationStatus] = mapped_column(
        Enum(
            RegistrationStatus,
            name="registration_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=RegistrationStatus.PENDING,
    )
    # Admin UUID, or the fixed actor id for email-link decisions
    decided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    activation_code: Mapped[str | None] = mapped_column(String(8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_registration_requests_status", "status"),
        Index("ix_registration_requests_email", "email"),
        # One pending request per email
        Index(
            "uq_registration_requests_pending_email",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<RegistrationRequest(id={self.id}, role={self.role.value}, status={self.status.value})>"
