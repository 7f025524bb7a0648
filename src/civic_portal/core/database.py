"""
Database Configuration

Async SQLAlchemy engine, session factory and declarative base.

Every statement runs under a server-side statement and lock timeout plus a
driver-side command timeout, so a blocked decision fails instead of hanging.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from civic_portal.core.config import Settings, settings


def build_connect_args(config: Settings) -> dict[str, Any]:
    """asyncpg connect arguments bounding every call by ``database_timeout_seconds``."""
    timeout_ms = str(int(config.database_timeout_seconds * 1000))
    return {
        "timeout": config.database_timeout_seconds,
        "command_timeout": config.database_timeout_seconds,
        "server_settings": {
            "statement_timeout": timeout_ms,
            "lock_timeout": timeout_ms,
        },
    }


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
    connect_args=build_connect_args(settings),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a database session.

    The session is rolled back if the request handler raises, so a failed
    request never leaves a half-written transaction open.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Verify database connectivity on startup."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose of the connection pool."""
    await engine.dispose()
