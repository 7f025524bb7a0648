"""
Tests for quick-action tokens and department composition.
"""

from urllib.parse import parse_qs, urlparse
from uuid import UUID

from civic_portal.core.config import settings
from civic_portal.modules.registrations.helpers import (
    QUICK_ACTION_PATH,
    build_quick_action_url,
    compose_department,
    make_quick_action_token,
    verify_quick_action_token,
)

REQUEST_ID = UUID("3f2b8c1e-7a44-4f0e-9d1a-2b6c5e8f9a01")


class TestQuickActionToken:
    def test_token_is_deterministic(self):
        assert make_quick_action_token(REQUEST_ID, "s3cret") == make_quick_action_token(
            str(REQUEST_ID), "s3cret"
        )

    def test_token_is_sixteen_hex_chars(self):
        token = make_quick_action_token(REQUEST_ID, "s3cret")
        assert len(token) == 16
        int(token, 16)

    def test_token_depends_on_secret(self):
        assert make_quick_action_token(REQUEST_ID, "a") != make_quick_action_token(REQUEST_ID, "b")

    def test_verify_accepts_matching_token(self):
        token = make_quick_action_token(REQUEST_ID, "s3cret")
        assert verify_quick_action_token(REQUEST_ID, token, "s3cret") is True

    def test_verify_rejects_token_for_other_request(self):
        token = make_quick_action_token(REQUEST_ID, "s3cret")
        other = UUID("00000000-0000-0000-0000-000000000000")
        assert verify_quick_action_token(other, token, "s3cret") is False

    def test_verify_rejects_truncated_token(self):
        token = make_quick_action_token(REQUEST_ID, "s3cret")
        assert verify_quick_action_token(REQUEST_ID, token[:8], "s3cret") is False

    def test_url_carries_action_id_and_token(self):
        url = urlparse(build_quick_action_url(REQUEST_ID, "approve"))
        query = parse_qs(url.query)

        assert url.path == QUICK_ACTION_PATH
        assert query["action"] == ["approve"]
        assert query["id"] == [str(REQUEST_ID)]
        assert query["token"] == [make_quick_action_token(REQUEST_ID, settings.quick_action_secret)]


class TestComposeDepartment:
    def test_region_only(self):
        assert compose_department("Capital") == "Capital"

    def test_region_and_commune(self):
        assert compose_department("Capital", "North") == "Capital - North"

    def test_full_location(self):
        assert compose_department("Capital", "North", "Harbor") == "Capital - North (Harbor)"

    def test_neighborhood_ignored_without_commune(self):
        assert compose_department("Capital", None, "Harbor") == "Capital"

    def test_missing_region_uses_default(self):
        assert compose_department(None) == "Unspecified"
