"""
HTTP tests for the registration endpoints.

The service layer is patched; these tests check status codes, error
bodies, HTML pages and admin guards.
"""

from unittest.mock import AsyncMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from civic_portal.core.auth import ADMIN_ROLE, AdminUser, get_current_admin_user
from civic_portal.core.database import get_db
from civic_portal.main import app
from civic_portal.modules.registrations.models import RegistrationStatus
from civic_portal.modules.registrations.service import (
    AlreadyDecidedError,
    DuplicateRegistrationError,
    InvalidTokenError,
    ProvisioningError,
    RegistrationNotFoundError,
)

SERVICE = "civic_portal.modules.registrations.service"

ADMIN = AdminUser(
    id=UUID("7d0c1f0e-0000-4000-8000-000000000001"),
    email="admin@example.com",
    role=ADMIN_ROLE,
)


@pytest.fixture
def client(mock_db):
    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_admin_user] = lambda: ADMIN
    yield TestClient(app)
    app.dependency_overrides.clear()


def _approve_result(request_id: UUID, email_sent: bool = True) -> dict:
    return {
        "id": request_id,
        "username": "amina",
        "user_id": uuid4(),
        "activation_code": "0417",
        "email_sent": email_sent,
        "message": "Registration approved.",
    }


class TestSubmit:
    def _body(self) -> dict:
        return {
            "email": "amina@example.com",
            "username": "amina",
            "password": "correct-horse",
            "external_id": "NID-0042",
            "role": "field_agent",
            "role_attributes": {"kind": "field_agent", "region": "Capital"},
        }

    def test_submit_created(self, client, registration_factory):
        stored = registration_factory()
        with patch(f"{SERVICE}.submit_registration", new_callable=AsyncMock, return_value=stored):
            response = client.post("/api/v1/registrations", json=self._body())

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == str(stored.id)
        assert body["status"] == "pending"
        assert "password" not in body

    def test_submit_duplicate(self, client):
        with patch(
            f"{SERVICE}.submit_registration",
            new_callable=AsyncMock,
            side_effect=DuplicateRegistrationError("amina@example.com"),
        ):
            response = client.post("/api/v1/registrations", json=self._body())

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "DUPLICATE_REGISTRATION"

    def test_submit_kind_mismatch_is_422(self, client):
        body = self._body()
        body["role"] = "organization"

        response = client.post("/api/v1/registrations", json=body)

        assert response.status_code == 422


class TestAdminDecisions:
    def test_approve(self, client):
        request_id = uuid4()
        with patch(
            f"{SERVICE}.approve_registration",
            new_callable=AsyncMock,
            return_value=_approve_result(request_id, email_sent=False),
        ) as mock_approve:
            response = client.post(f"/api/v1/admin/registrations/{request_id}/approve")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "approved"
        assert body["activation_code"] == "0417"
        assert body["email_sent"] is False
        assert mock_approve.await_args.args[1:] == (request_id, str(ADMIN.id))

    def test_approve_already_decided(self, client):
        with patch(
            f"{SERVICE}.approve_registration",
            new_callable=AsyncMock,
            side_effect=AlreadyDecidedError(RegistrationStatus.REJECTED),
        ):
            response = client.post(f"/api/v1/admin/registrations/{uuid4()}/approve")

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ALREADY_DECIDED"

    def test_approve_not_found(self, client):
        with patch(
            f"{SERVICE}.approve_registration",
            new_callable=AsyncMock,
            side_effect=RegistrationNotFoundError(),
        ):
            response = client.post(f"/api/v1/admin/registrations/{uuid4()}/approve")

        assert response.status_code == 404

    def test_approve_provisioning_failure(self, client):
        with patch(
            f"{SERVICE}.approve_registration",
            new_callable=AsyncMock,
            side_effect=ProvisioningError("Failed to provision the account."),
        ):
            response = client.post(f"/api/v1/admin/registrations/{uuid4()}/approve")

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "PROVISIONING_FAILED"

    def test_approve_rate_limited(self, client):
        request_id = uuid4()
        with patch(
            f"{SERVICE}.approve_registration",
            new_callable=AsyncMock,
            return_value=_approve_result(request_id),
        ):
            codes = [
                client.post(f"/api/v1/admin/registrations/{request_id}/approve").status_code
                for _ in range(11)
            ]

        assert codes[:10] == [200] * 10
        assert codes[10] == 429

    def test_reject_with_reason(self, client):
        request_id = uuid4()
        with patch(
            f"{SERVICE}.reject_registration",
            new_callable=AsyncMock,
            return_value={
                "id": request_id,
                "username": "amina",
                "status": RegistrationStatus.REJECTED,
                "rejection_reason": "Incomplete documents",
                "message": "Registration rejected.",
            },
        ) as mock_reject:
            response = client.post(
                f"/api/v1/admin/registrations/{request_id}/reject",
                json={"reason": "Incomplete documents"},
            )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["rejection_reason"] == "Incomplete documents"
        assert mock_reject.await_args.args[3] == "Incomplete documents"

    def test_reject_without_body(self, client):
        request_id = uuid4()
        with patch(
            f"{SERVICE}.reject_registration",
            new_callable=AsyncMock,
            return_value={
                "id": request_id,
                "username": "amina",
                "status": RegistrationStatus.REJECTED,
                "rejection_reason": "Your registration request could not be approved.",
                "message": "Registration rejected.",
            },
        ) as mock_reject:
            response = client.post(f"/api/v1/admin/registrations/{request_id}/reject")

        assert response.status_code == 200
        assert mock_reject.await_args.args[3] is None

    def test_list(self, client, registration_factory):
        items = [registration_factory(), registration_factory()]
        with patch(
            f"{SERVICE}.admin_get_registrations_list",
            new_callable=AsyncMock,
            return_value={"items": items, "total": 2, "page": 1, "page_size": 20},
        ) as mock_list:
            response = client.get("/api/v1/admin/registrations?status=pending")

        assert response.status_code == 200
        assert response.json()["total"] == 2
        assert mock_list.await_args.kwargs["status"] == RegistrationStatus.PENDING

    def test_requires_admin(self, mock_db):
        async def _get_db():
            yield mock_db

        app.dependency_overrides[get_db] = _get_db
        try:
            response = TestClient(app).post(f"/api/v1/admin/registrations/{uuid4()}/approve")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code in (401, 403)


class TestQuickActionPages:
    def _url(self, action: str = "approve") -> str:
        return f"/api/v1/registrations/quick-action?action={action}&id={uuid4()}&token=abcdef0123456789"

    def test_approved_page_shows_code(self, client):
        with patch(
            f"{SERVICE}.handle_quick_action",
            new_callable=AsyncMock,
            return_value=_approve_result(uuid4()),
        ):
            response = client.get(self._url())

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "0417" in response.text
        assert "amina" in response.text

    def test_rejected_page_shows_reason(self, client):
        with patch(
            f"{SERVICE}.handle_quick_action",
            new_callable=AsyncMock,
            return_value={
                "id": uuid4(),
                "username": "amina",
                "status": RegistrationStatus.REJECTED,
                "rejection_reason": "<b>Incomplete</b>",
                "message": "Registration rejected.",
            },
        ):
            response = client.get(self._url("reject"))

        assert response.status_code == 200
        assert "&lt;b&gt;Incomplete&lt;/b&gt;" in response.text

    def test_invalid_token_page(self, client):
        with patch(
            f"{SERVICE}.handle_quick_action",
            new_callable=AsyncMock,
            side_effect=InvalidTokenError(),
        ):
            response = client.get(self._url())

        assert response.status_code == 403
        assert "Invalid link" in response.text

    def test_already_processed_page(self, client):
        with patch(
            f"{SERVICE}.handle_quick_action",
            new_callable=AsyncMock,
            side_effect=AlreadyDecidedError(RegistrationStatus.APPROVED),
        ):
            response = client.get(self._url())

        assert response.status_code == 409
        assert "Already processed" in response.text

    def test_failure_page_hides_details(self, client):
        with patch(
            f"{SERVICE}.handle_quick_action",
            new_callable=AsyncMock,
            side_effect=RuntimeError("password authentication failed for user postgres"),
        ):
            response = client.get(self._url())

        assert response.status_code == 500
        assert "postgres" not in response.text

    def test_unknown_action_is_422(self, client):
        response = client.get(self._url("delete"))
        assert response.status_code == 422
