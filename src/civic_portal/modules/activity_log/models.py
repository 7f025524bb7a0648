"""
Activity Log Model

Append-only audit trail of admin decisions. Rows are never updated or
deleted.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from civic_portal.core.database import Base


class ActionType(str, enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Null for system or email-link actions
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    action_type: Mapped[ActionType] = mapped_column(
        Enum(ActionType, name="activity_action_type"), nullable=False
    )
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_activity_logs_created_at", "created_at"),
        Index("ix_activity_logs_target", "target_type", "target_id"),
    )
