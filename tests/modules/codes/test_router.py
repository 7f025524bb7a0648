"""
HTTP tests for the OTP endpoints.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from civic_portal.core.database import get_db
from civic_portal.main import app
from civic_portal.modules.codes.service import CodeDeliveryError, InvalidOrExpiredError

SERVICE = "civic_portal.modules.codes.service"


@pytest.fixture
def client(mock_db):
    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_send_code(client):
    with patch(
        f"{SERVICE}.request_otp",
        new_callable=AsyncMock,
        return_value={"success": True, "expires_in": 600},
    ):
        response = client.post("/api/v1/codes/send", json={"email": "a@x.com"})

    assert response.status_code == 200
    assert response.json()["expires_in"] == 600


def test_send_code_delivery_failure(client):
    with patch(f"{SERVICE}.request_otp", new_callable=AsyncMock, side_effect=CodeDeliveryError()):
        response = client.post("/api/v1/codes/send", json={"email": "a@x.com"})

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "CODE_DELIVERY_FAILED"


def test_send_code_rate_limited_per_email(client):
    with patch(
        f"{SERVICE}.request_otp",
        new_callable=AsyncMock,
        return_value={"success": True, "expires_in": 600},
    ):
        codes = [
            client.post("/api/v1/codes/send", json={"email": "A@x.com"}).status_code
            for _ in range(6)
        ]
        other = client.post("/api/v1/codes/send", json={"email": "b@x.com"}).status_code

    assert codes == [200] * 5 + [429]
    assert other == 200


def test_verify_code_admits(client):
    with patch(
        f"{SERVICE}.verify_code",
        new_callable=AsyncMock,
        return_value={"admitted": True},
    ) as mock_verify:
        response = client.post(
            "/api/v1/codes/verify",
            json={"email": "a@x.com", "purpose": "approval_activation", "code": " 0417 "},
        )

    assert response.status_code == 200
    assert response.json()["admitted"] is True
    assert mock_verify.await_args.args[3] == "0417"


def test_verify_code_invalid(client):
    with patch(f"{SERVICE}.verify_code", new_callable=AsyncMock, side_effect=InvalidOrExpiredError()):
        response = client.post(
            "/api/v1/codes/verify",
            json={"email": "a@x.com", "purpose": "login", "code": "123456"},
        )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "INVALID_OR_EXPIRED_CODE"
