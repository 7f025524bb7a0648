"""
User Repository

Database operations for identities and profiles. Methods flush but do not
commit; the calling service owns the transaction.
"""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.modules.users.models import User, UserProfile, UserRole

logger = logging.getLogger(__name__)


def build_profile_upsert(
    *,
    user_id: UUID,
    role: UserRole,
    username: str,
    external_id: str,
):
    """INSERT ... ON CONFLICT (id) DO UPDATE for a user profile."""
    stmt = insert(UserProfile).values(
        id=user_id,
        role=role,
        username=username,
        external_id=external_id,
    )
    return stmt.on_conflict_do_update(
        index_elements=[UserProfile.id],
        set_={
            "role": stmt.excluded.role,
            "username": stmt.excluded.username,
            "external_id": stmt.excluded.external_id,
            "updated_at": func.now(),
        },
    )


class UserRepository:
    """Repository for identity and profile database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        is_active: bool = True,
        is_verified: bool = False,
        must_change_password: bool = False,
    ) -> User:
        """
        Create a new identity.

        Args:
            db: Database session
            email: Email address (unique, stored lowercase)
            password_hash: bcrypt hash
            is_active: Whether the account may sign in
            is_verified: Whether the holder has redeemed a code
            must_change_password: Force a password change on first login

        Returns:
            The flushed User
        """
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            is_active=is_active,
            is_verified=is_verified,
            must_change_password=must_change_password,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id}")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Case-insensitive lookup by email."""
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert_profile(
        db: AsyncSession,
        *,
        user_id: UUID,
        role: UserRole,
        username: str,
        external_id: str,
    ) -> None:
        """Create or refresh the profile for ``user_id``; safe to repeat."""
        await db.execute(
            build_profile_upsert(
                user_id=user_id,
                role=role,
                username=username,
                external_id=external_id,
            )
        )

    @staticmethod
    async def mark_verified(db: AsyncSession, email: str) -> bool:
        """
        Mark the identity for ``email`` as verified.

        Returns:
            True if an identity was updated
        """
        result = await db.execute(
            update(User)
            .where(func.lower(User.email) == email.lower())
            .values(is_verified=True)
        )
        return result.rowcount > 0
