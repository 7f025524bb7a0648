"""
Role Record Models

Role-specific records provisioned when a registration is approved.
Each table holds at most one row per identity (unique user_id), so
re-running approval upserts instead of duplicating.
"""

import uuid
from enum import Enum

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column

from civic_portal.modules.shared import BaseModel


class FieldAgentStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class OrganizationStatus(str, Enum):
    APPROVED = "approved"
    SUSPENDED = "suspended"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class FieldAgent(BaseModel):
    """Field agent attached to an administrative area."""

    __tablename__ = "field_agents"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    # "Region" or "Region - Commune (Neighborhood)"
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[FieldAgentStatus] = mapped_column(
        ENUM(FieldAgentStatus, name="field_agent_status", values_callable=_enum_values),
        nullable=False,
        default=FieldAgentStatus.ACTIVE,
    )

    def __repr__(self) -> str:
        return f"<FieldAgent(user_id={self.user_id}, department={self.department})>"


class Organization(BaseModel):
    """Registered organization (association)."""

    __tablename__ = "organizations"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sector: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    status: Mapped[OrganizationStatus] = mapped_column(
        ENUM(OrganizationStatus, name="organization_status", values_callable=_enum_values),
        nullable=False,
        default=OrganizationStatus.APPROVED,
    )

    def __repr__(self) -> str:
        return f"<Organization(user_id={self.user_id}, name={self.name})>"
