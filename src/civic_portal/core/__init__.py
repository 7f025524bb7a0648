"""
Core module - Configuration, database, security, and utilities.
"""

from civic_portal.core.config import get_settings, settings
from civic_portal.core.database import Base, close_db, get_db, init_db
from civic_portal.core.redis import close_redis, get_redis, init_redis
from civic_portal.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
