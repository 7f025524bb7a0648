"""
Tests for the activity log repository and admin listing.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from civic_portal.core.auth import ADMIN_ROLE, AdminUser, get_current_admin_user
from civic_portal.core.database import get_db
from civic_portal.main import app
from civic_portal.modules.activity_log import repository
from civic_portal.modules.activity_log.models import ActionType, ActivityLog


@pytest.mark.asyncio
async def test_append_commits_entry(mock_db):
    entry = await repository.append(
        mock_db,
        actor_id=None,
        action_type=ActionType.APPROVE,
        target_id="3f2b8c1e-7a44-4f0e-9d1a-2b6c5e8f9a01",
        description="Approved field agent registration for amina",
        details={"approved_via": "email_link"},
    )

    added = mock_db.add.call_args.args[0]
    assert added is entry
    assert entry.actor_id is None
    assert entry.target_type == repository.TARGET_USER_REQUEST
    assert entry.details == {"approved_via": "email_link"}
    mock_db.commit.assert_awaited_once()


def test_list_exposes_details_as_metadata(mock_db):
    entry = MagicMock(spec=ActivityLog)
    entry.id = uuid4()
    entry.actor_id = "7d0c1f0e-0000-4000-8000-000000000001"
    entry.action_type = ActionType.REJECT
    entry.target_type = repository.TARGET_USER_REQUEST
    entry.target_id = str(uuid4())
    entry.description = "Rejected standard user registration for amina"
    entry.details = {"reason": "Incomplete documents"}
    entry.created_at = datetime(2026, 1, 1, tzinfo=UTC)

    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_admin_user] = lambda: AdminUser(
        id=UUID(entry.actor_id), email="admin@example.com", role=ADMIN_ROLE
    )
    try:
        with patch(
            "civic_portal.modules.activity_log.repository.list_recent",
            new_callable=AsyncMock,
            return_value=([entry], 1),
        ):
            response = TestClient(app).get("/api/v1/admin/activity-logs")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    item = response.json()["items"][0]
    assert item["action_type"] == "REJECT"
    assert item["metadata"] == {"reason": "Incomplete documents"}
