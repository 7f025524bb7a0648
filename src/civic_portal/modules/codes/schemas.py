"""
Code Schemas

Request/response models for the OTP send and verify endpoints.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from .models import CodePurpose


class SendCodeRequest(BaseModel):
    """Request a one-time code by email."""

    email: EmailStr
    purpose: CodePurpose = Field(
        default=CodePurpose.LOGIN,
        description="login, registration or password_reset",
    )

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class SendCodeResponse(BaseModel):
    success: bool = True
    message: str = "Verification code sent."
    expires_in: int = Field(..., description="Seconds until the code expires")


class VerifyCodeRequest(BaseModel):
    """Submit a code for verification."""

    email: EmailStr
    purpose: CodePurpose = CodePurpose.LOGIN
    code: str = Field(..., min_length=1, max_length=16)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("code")
    @classmethod
    def _strip_code(cls, v: str) -> str:
        return v.strip()


class VerifyCodeResponse(BaseModel):
    success: bool = True
    verified: bool = True
    message: str = "Code verified."
    admitted: bool = Field(
        default=False,
        description="True when the verification activated the matching account",
    )
