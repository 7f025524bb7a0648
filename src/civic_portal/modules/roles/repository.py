"""
Role Record Repository

Keyed upserts for field agent and organization records. Statements are
executed but not committed; the approval transaction commits them.
"""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.modules.roles.models import (
    FieldAgent,
    FieldAgentStatus,
    Organization,
    OrganizationStatus,
)

logger = logging.getLogger(__name__)


def build_field_agent_upsert(*, user_id: UUID, department: str):
    stmt = insert(FieldAgent).values(
        user_id=user_id,
        department=department,
        status=FieldAgentStatus.ACTIVE,
    )
    return stmt.on_conflict_do_update(
        index_elements=[FieldAgent.user_id],
        set_={
            "department": stmt.excluded.department,
            "status": stmt.excluded.status,
            "updated_at": func.now(),
        },
    )


def build_organization_upsert(
    *,
    user_id: UUID,
    name: str,
    sector: str,
    address: str | None,
    phone: str | None,
):
    stmt = insert(Organization).values(
        user_id=user_id,
        name=name,
        sector=sector,
        address=address,
        phone=phone,
        status=OrganizationStatus.APPROVED,
    )
    return stmt.on_conflict_do_update(
        index_elements=[Organization.user_id],
        set_={
            "name": stmt.excluded.name,
            "sector": stmt.excluded.sector,
            "address": stmt.excluded.address,
            "phone": stmt.excluded.phone,
            "status": stmt.excluded.status,
            "updated_at": func.now(),
        },
    )


class RoleRecordRepository:
    """Repository for role-specific records."""

    @staticmethod
    async def upsert_field_agent(db: AsyncSession, *, user_id: UUID, department: str) -> None:
        await db.execute(build_field_agent_upsert(user_id=user_id, department=department))
        logger.info(f"Upserted field agent record for user {user_id}")

    @staticmethod
    async def upsert_organization(
        db: AsyncSession,
        *,
        user_id: UUID,
        name: str,
        sector: str,
        address: str | None = None,
        phone: str | None = None,
    ) -> None:
        await db.execute(
            build_organization_upsert(
                user_id=user_id,
                name=name,
                sector=sector,
                address=address,
                phone=phone,
            )
        )
        logger.info(f"Upserted organization record for user {user_id}")
