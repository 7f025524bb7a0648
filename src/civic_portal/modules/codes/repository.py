"""
Code Records Repository

Every state change is a conditional statement so that concurrent callers
serialize on the row: only one UPDATE can flip ``used`` from false to true.
Functions here execute statements; services decide when to commit.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import CodePurpose, CodeRecord


def build_code_upsert(
    *,
    email: str,
    purpose: CodePurpose,
    code: str,
    expires_at: datetime,
):
    """INSERT ... ON CONFLICT (email, purpose) DO UPDATE, resetting the record."""
    stmt = insert(CodeRecord).values(
        email=email,
        purpose=purpose,
        code=code,
        expires_at=expires_at,
        used=False,
        verified_at=None,
    )
    return stmt.on_conflict_do_update(
        index_elements=[CodeRecord.email, CodeRecord.purpose],
        set_={
            "code": stmt.excluded.code,
            "expires_at": stmt.excluded.expires_at,
            "used": False,
            "verified_at": None,
            "created_at": func.now(),
        },
    )


async def upsert_code(
    db: AsyncSession,
    *,
    email: str,
    purpose: CodePurpose,
    code: str,
    expires_at: datetime,
) -> None:
    """Store ``code`` for (email, purpose), superseding any previous code."""
    await db.execute(build_code_upsert(email=email, purpose=purpose, code=code, expires_at=expires_at))


async def get_unused(db: AsyncSession, email: str, purpose: CodePurpose) -> CodeRecord | None:
    result = await db.execute(
        select(CodeRecord).where(
            CodeRecord.email == email,
            CodeRecord.purpose == purpose,
            CodeRecord.used.is_(False),
        )
    )
    return result.scalar_one_or_none()


def build_consume(record_id: UUID, code: str, verified_at: datetime):
    return (
        update(CodeRecord)
        .where(
            CodeRecord.id == record_id,
            CodeRecord.code == code,
            CodeRecord.used.is_(False),
        )
        .values(used=True, verified_at=verified_at)
        .returning(CodeRecord.id)
        .execution_options(synchronize_session=False)
    )


async def consume(db: AsyncSession, record_id: UUID, code: str, verified_at: datetime) -> bool:
    """
    Atomically mark a matching, unused record as verified.

    Returns:
        True if this call consumed the record; False if another caller
        (or a newer code) got there first
    """
    result = await db.execute(build_consume(record_id, code, verified_at))
    return result.scalar_one_or_none() is not None


def build_burn_expired(record_id: UUID, code: str, now: datetime):
    """
    Conditional UPDATE burning the expired code that was read.

    A superseding code reuses the row (same id), so the match on ``code``
    and ``expires_at`` keeps a fresh code from being burned.
    """
    return (
        update(CodeRecord)
        .where(
            CodeRecord.id == record_id,
            CodeRecord.code == code,
            CodeRecord.expires_at <= now,
            CodeRecord.used.is_(False),
        )
        .values(used=True)
        .execution_options(synchronize_session=False)
    )


async def mark_used(db: AsyncSession, record_id: UUID, code: str, now: datetime) -> bool:
    """Burn an expired record without verifying it. Returns False if it was superseded."""
    result = await db.execute(build_burn_expired(record_id, code, now))
    return result.rowcount > 0


async def expire_stale(db: AsyncSession, now: datetime) -> int:
    """Burn every unused record whose expiry has passed. Returns the row count."""
    result = await db.execute(
        update(CodeRecord)
        .where(CodeRecord.used.is_(False), CodeRecord.expires_at < now)
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
