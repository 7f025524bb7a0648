"""
Validation tests for registration schemas.
"""

import pytest
from pydantic import ValidationError

from civic_portal.modules.registrations.schemas import (
    FieldAgentAttributes,
    OrganizationAttributes,
    RegistrationCreate,
    RejectRequest,
)
from civic_portal.modules.users.models import UserRole


def _payload(**overrides) -> dict:
    payload = {
        "email": "  Amina@Example.com ",
        "username": "amina",
        "password": "correct-horse",
        "external_id": "NID-0042",
        "role": "field_agent",
        "role_attributes": {"kind": "field_agent", "region": "Capital"},
    }
    payload.update(overrides)
    return payload


class TestRegistrationCreate:
    def test_valid_field_agent(self):
        data = RegistrationCreate(**_payload())

        assert data.email == "amina@example.com"
        assert data.role == UserRole.FIELD_AGENT
        assert isinstance(data.role_attributes, FieldAgentAttributes)
        assert data.role_attributes.region == "Capital"

    def test_valid_organization(self):
        data = RegistrationCreate(
            **_payload(
                role="organization",
                role_attributes={"kind": "organization", "name": "Green Hands", "sector": "Environment"},
            )
        )
        assert isinstance(data.role_attributes, OrganizationAttributes)

    def test_standard_without_attributes(self):
        data = RegistrationCreate(**_payload(role="standard", role_attributes=None))
        assert data.role_attributes is None

    def test_attribute_kind_must_match_role(self):
        with pytest.raises(ValidationError):
            RegistrationCreate(
                **_payload(
                    role="organization",
                    role_attributes={"kind": "field_agent", "region": "Capital"},
                )
            )

    def test_standard_role_takes_no_attributes(self):
        with pytest.raises(ValidationError):
            RegistrationCreate(**_payload(role="standard"))

    def test_unknown_attribute_kind_rejected(self):
        with pytest.raises(ValidationError):
            RegistrationCreate(**_payload(role_attributes={"kind": "volunteer", "region": "Capital"}))

    @pytest.mark.parametrize("password", ["short", "x" * 129])
    def test_password_length(self, password):
        with pytest.raises(ValidationError):
            RegistrationCreate(**_payload(password=password))

    def test_password_is_not_echoed(self):
        data = RegistrationCreate(**_payload())
        assert "correct-horse" not in repr(data)
        assert data.password.get_secret_value() == "correct-horse"


class TestRejectRequest:
    def test_blank_reason_becomes_none(self):
        assert RejectRequest(reason="   ").reason is None

    def test_reason_trimmed(self):
        assert RejectRequest(reason=" Incomplete documents ").reason == "Incomplete documents"

    def test_reason_max_length(self):
        with pytest.raises(ValidationError):
            RejectRequest(reason="x" * 1001)
