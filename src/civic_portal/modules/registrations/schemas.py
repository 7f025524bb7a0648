"""
Registration Schemas

Pydantic schemas for request validation and response serialization.

Role-specific attributes are a tagged union discriminated by ``kind``.
The password travels as a ``SecretStr`` and is never part of the
attribute map.
"""

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, SecretStr, field_validator, model_validator

from civic_portal.modules.registrations.models import RegistrationStatus
from civic_portal.modules.users.models import UserRole


class FieldAgentAttributes(BaseModel):
    """Where a field agent operates."""

    kind: Literal["field_agent"] = "field_agent"
    region: str = Field(..., min_length=1, max_length=100)
    commune: str | None = Field(None, max_length=100)
    neighborhood: str | None = Field(None, max_length=100)


class OrganizationAttributes(BaseModel):
    """Organization details."""

    kind: Literal["organization"] = "organization"
    name: str = Field(..., min_length=1, max_length=200)
    sector: str = Field(..., min_length=1, max_length=100)
    address: str | None = Field(None, max_length=500)
    phone: str | None = Field(None, max_length=30)


RoleAttributes = Annotated[
    FieldAgentAttributes | OrganizationAttributes,
    Field(discriminator="kind"),
]

# Roles that carry attributes, and the attribute kind each expects
ROLE_ATTRIBUTE_KINDS: dict[UserRole, str] = {
    UserRole.FIELD_AGENT: "field_agent",
    UserRole.ORGANIZATION: "organization",
}


class RegistrationCreate(BaseModel):
    """Request body for POST /registrations."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=100)
    password: SecretStr = Field(..., description="At least 8 characters")
    external_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="National ID or registration number",
    )
    role: UserRole
    role_attributes: RoleAttributes | None = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def _password_length(cls, v: SecretStr) -> SecretStr:
        if not 8 <= len(v.get_secret_value()) <= 128:
            raise ValueError("password must be between 8 and 128 characters")
        return v

    @field_validator("username", "external_id")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def validate_role_attributes(self) -> "RegistrationCreate":
        """Attributes, when present, must match the requested role."""
        if self.role_attributes is None:
            return self

        expected_kind = ROLE_ATTRIBUTE_KINDS.get(self.role)
        if expected_kind is None:
            raise ValueError(f"role '{self.role.value}' does not take role_attributes")
        if self.role_attributes.kind != expected_kind:
            raise ValueError(
                f"role_attributes of kind '{self.role_attributes.kind}' "
                f"do not match role '{self.role.value}'"
            )
        return self


class RegistrationSubmitResponse(BaseModel):
    """Response after submitting a registration request."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    status: RegistrationStatus
    message: str = "Registration submitted. You will receive an email once it has been reviewed."


# ============================================
# Admin Schemas
# ============================================


class RegistrationListItem(BaseModel):
    """Registration summary for the admin list view."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Registration request UUID")
    email: str
    username: str
    role: UserRole
    external_id: str
    status: RegistrationStatus
    created_at: datetime = Field(..., description="When the request was submitted")
    decided_at: datetime | None = None


class RegistrationListResponse(BaseModel):
    """Paginated list of registration requests."""

    items: list[RegistrationListItem]
    total: int = Field(..., ge=0, description="Total requests matching filters")
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, le=100)


class RegistrationDetailResponse(RegistrationListItem):
    """Full registration request, including the decision and activation code."""

    role_attributes: dict | None = None
    decided_by: str | None = Field(None, description="Admin id or 'admin-via-email'")
    rejection_reason: str | None = None
    activation_code: str | None = Field(
        None, description="Activation code issued at approval (admin support lookup)"
    )
    updated_at: datetime


class RejectRequest(BaseModel):
    """Request body for rejecting a registration."""

    reason: str | None = Field(
        None,
        max_length=1000,
        description="Reason shown to the applicant; a default is used when omitted",
        json_schema_extra={"example": "Incomplete documents"},
    )

    @field_validator("reason")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class ApproveResponse(BaseModel):
    """
    Response after approving a registration.

    The activation code is returned so the admin can pass it on even if
    the email did not go out.
    """

    success: bool = True
    id: UUID = Field(..., description="Registration request UUID")
    status: RegistrationStatus = RegistrationStatus.APPROVED
    user_id: UUID = Field(..., description="Provisioned identity UUID")
    activation_code: str = Field(..., description="4-digit activation code")
    email_sent: bool = Field(..., description="Whether the activation email was delivered")
    message: str


class RejectResponse(BaseModel):
    """Response after rejecting a registration."""

    success: bool = True
    id: UUID = Field(..., description="Registration request UUID")
    status: RegistrationStatus = RegistrationStatus.REJECTED
    rejection_reason: str
    message: str = "Registration rejected."
