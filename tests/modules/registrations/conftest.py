"""
Fixtures for registration tests.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from civic_portal.modules.registrations.models import RegistrationRequest, RegistrationStatus
from civic_portal.modules.users.models import UserRole


def make_request(
    role: UserRole = UserRole.FIELD_AGENT,
    status: RegistrationStatus = RegistrationStatus.PENDING,
    role_attributes: dict | None = None,
    password_hash: str | None = "$2b$12$hash",
) -> MagicMock:
    request = MagicMock(spec=RegistrationRequest)
    request.id = uuid4()
    request.email = "amina@example.com"
    request.username = "amina"
    request.role = role
    request.external_id = "NID-0042"
    request.role_attributes = role_attributes
    request.password_hash = password_hash
    request.status = status
    request.decided_by = None
    request.decided_at = None
    request.rejection_reason = None
    request.activation_code = None
    request.created_at = datetime(2026, 1, 1, tzinfo=UTC)
    request.updated_at = datetime(2026, 1, 1, tzinfo=UTC)
    return request


@pytest.fixture
def field_agent_request():
    return make_request(
        role=UserRole.FIELD_AGENT,
        role_attributes={
            "kind": "field_agent",
            "region": "Capital",
            "commune": "North",
            "neighborhood": None,
        },
    )


@pytest.fixture
def organization_request():
    return make_request(
        role=UserRole.ORGANIZATION,
        role_attributes={"kind": "organization", "name": "Green Hands", "sector": "Environment"},
        password_hash=None,
    )


@pytest.fixture
def registration_factory():
    return make_request
