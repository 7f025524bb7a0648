"""
Code Record Model

One-time codes (OTPs and activation codes) keyed by (email, purpose).
Issuing a new code for the same pair overwrites the previous row, so at
most one live code exists per pair. A row is consumed at most once: both
successful verification and expiry detection set ``used``.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from civic_portal.core.database import Base


class CodePurpose(str, enum.Enum):
    """What a code unlocks."""

    LOGIN = "login"
    REGISTRATION = "registration"
    PASSWORD_RESET = "password_reset"
    APPROVAL_ACTIVATION = "approval_activation"


class CodeRecord(Base):
    __tablename__ = "code_records"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    purpose: Mapped[CodePurpose] = mapped_column(
        Enum(CodePurpose, name="code_purpose", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String(8), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("email", "purpose", name="uq_code_records_email_purpose"),
        Index("ix_code_records_unused_expiry", "used", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<CodeRecord(email={self.email}, purpose={self.purpose.value}, used={self.used})>"
