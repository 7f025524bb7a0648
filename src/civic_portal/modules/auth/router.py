"""Authentication router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from civic_portal.core.database import get_db
from civic_portal.core.security import create_access_token, create_refresh_token, verify_password
from civic_portal.modules.auth.schemas import LoginRequest, LoginResponse, UserResponse
from civic_portal.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": "INVALID_CREDENTIALS",
            "message": "Invalid email or password.",
        },
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Accounts created by registration approval can sign in only after the
    activation code has been redeemed (POST /codes/verify).

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account inactive or not yet activated
    """
    user = await UserRepository.get_by_email(db, credentials.email)

    if not user:
        logger.warning(f"Login attempt for non-existent email: {credentials.email}")
        raise _invalid_credentials()

    if not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Invalid password for user: {credentials.email}")
        raise _invalid_credentials()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_INACTIVE",
                "message": "Your account has been deactivated.",
            },
        )

    if not user.is_verified:
        logger.warning(f"Login attempt before activation: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_NOT_ACTIVATED",
                "message": "Enter the activation code sent to your email before signing in.",
            },
        )

    profile = user.profile
    role = profile.role.value if profile else None
    username = profile.username if profile else None

    additional_claims = {"email": user.email, "role": role, "name": username}

    access_token = create_access_token(
        subject=str(user.id),
        additional_claims=additional_claims,
    )
    refresh_token = create_refresh_token(subject=str(user.id))

    logger.info(f"User logged in: {user.email} (role: {role})")

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        user=UserResponse(
            id=str(user.id),
            email=user.email,
            username=username,
            role=role,
            is_active=user.is_active,
            is_verified=user.is_verified,
            must_change_password=user.must_change_password,
            created_at=user.created_at.isoformat(),
        ),
    )
