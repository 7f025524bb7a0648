"""Authentication module."""

from civic_portal.modules.auth.router import router
from civic_portal.modules.auth.schemas import LoginRequest, LoginResponse, TokenResponse

__all__ = ["router", "LoginRequest", "LoginResponse", "TokenResponse"]
