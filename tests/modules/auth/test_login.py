"""
Login tests: activation gates sign-in.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from civic_portal.core.database import get_db
from civic_portal.core.security import decode_token, hash_password
from civic_portal.main import app
from civic_portal.modules.users.models import UserRole

USERS = "civic_portal.modules.users.repository.UserRepository"
PASSWORD = "correct-horse"


@pytest.fixture
def client(mock_db):
    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="module")
def password_hash():
    return hash_password(PASSWORD)


def _user(password_hash: str, *, is_verified: bool = True, is_active: bool = True) -> MagicMock:
    user = MagicMock()
    user.id = uuid4()
    user.email = "amina@example.com"
    user.password_hash = password_hash
    user.is_active = is_active
    user.is_verified = is_verified
    user.must_change_password = False
    user.created_at = datetime(2026, 1, 1, tzinfo=UTC)
    user.profile.role = UserRole.FIELD_AGENT
    user.profile.username = "amina"
    return user


def _login(client, password: str = PASSWORD):
    return client.post(
        "/api/v1/auth/login",
        json={"email": "amina@example.com", "password": password},
    )


def test_verified_user_gets_tokens(client, password_hash):
    user = _user(password_hash)
    with patch(f"{USERS}.get_by_email", new_callable=AsyncMock, return_value=user):
        response = _login(client)

    assert response.status_code == 200
    body = response.json()
    claims = decode_token(body["access_token"])
    assert claims["sub"] == str(user.id)
    assert claims["role"] == "field_agent"
    assert body["user"]["is_verified"] is True


def test_unactivated_user_refused(client, password_hash):
    user = _user(password_hash, is_verified=False)
    with patch(f"{USERS}.get_by_email", new_callable=AsyncMock, return_value=user):
        response = _login(client)

    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "ACCOUNT_NOT_ACTIVATED"


def test_wrong_password(client, password_hash):
    user = _user(password_hash)
    with patch(f"{USERS}.get_by_email", new_callable=AsyncMock, return_value=user):
        response = _login(client, "wrong-password")

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "INVALID_CREDENTIALS"


def test_unknown_email(client):
    with patch(f"{USERS}.get_by_email", new_callable=AsyncMock, return_value=None):
        response = _login(client)

    assert response.status_code == 401
