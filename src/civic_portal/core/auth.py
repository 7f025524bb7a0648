"""
Admin Authentication

FastAPI dependencies that validate JWT bearer tokens and enforce the
``admin`` role on the registration review endpoints.

SECURITY NOTE:
- The test-token bypass is only active when PYTHON_ENV=development
- Staging and production always require a signed JWT
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from civic_portal.core.config import settings
from civic_portal.core.security import decode_token

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass
class AdminUser:
    """
    An authenticated portal administrator, populated from JWT claims.

    Attributes:
        id: Identity id (``sub`` claim)
        email: Admin email address
        role: Role claim; must be ``admin``
        name: Display name, if present in the token
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    def __str__(self) -> str:
        return f"AdminUser(id={self.id}, email={self.email}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    env_var = os.getenv("PYTHON_ENV", "").lower()
    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )
    if is_safe:
        logger.warning("SECURITY: Development auth mode is ENABLED. Never use it in production!")
    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_ADMIN = AdminUser(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    email="admin@civicportal.dev",
    role=ADMIN_ROLE,
    name="Development Admin",
)


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> AdminUser:
    """
    Validate a bearer token and build the AdminUser from its claims.

    Raises:
        HTTPException 401: If the token is invalid, expired, of the wrong
            type, or missing required claims
    """
    if _DEVELOPMENT_MODE and token in ("dev-token", "test-token"):
        logger.debug("Development mode: using test admin")
        return _DEV_ADMIN

    payload = decode_token(token)
    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        subject = payload.get("sub")
        if not subject:
            raise ValueError("Missing 'sub' claim in token")
        return AdminUser(
            id=UUID(subject),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            name=payload.get("name"),
        )
    except ValueError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_admin_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AdminUser:
    """
    Dependency for admin-only endpoints.

    Raises:
        HTTPException 401: If the token is missing, invalid, or expired
        HTTPException 403: If the caller is not an admin
    """
    user = await _validate_jwt_token(credentials.credentials)

    if user.role != ADMIN_ROLE:
        logger.warning(
            f"Access denied: user {user.id} has role '{user.role}', '{ADMIN_ROLE}' required"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Administrator access is required for this endpoint.",
            },
        )

    logger.debug(f"Authenticated admin: {user.id}")
    return user


__all__ = [
    "ADMIN_ROLE",
    "AdminUser",
    "get_current_admin_user",
]
