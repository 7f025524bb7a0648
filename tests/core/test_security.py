"""
Unit tests for password hashing and JWT helpers.
"""

from datetime import timedelta

from civic_portal.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_is_not_plaintext(self):
        hashed = hash_password("correct horse battery")
        assert hashed != "correct horse battery"
        assert hashed.startswith("$2")

    def test_verify_accepts_correct_password(self):
        hashed = hash_password("s3cret-passw0rd")
        assert verify_password("s3cret-passw0rd", hashed) is True

    def test_verify_rejects_wrong_password(self):
        hashed = hash_password("s3cret-passw0rd")
        assert verify_password("wrong-password", hashed) is False


class TestTokens:
    def test_access_token_round_trip(self):
        token = create_access_token("user-123", additional_claims={"role": "admin"})
        payload = decode_token(token)

        assert payload is not None
        assert payload["sub"] == "user-123"
        assert payload["type"] == "access"
        assert payload["role"] == "admin"

    def test_refresh_token_type(self):
        payload = decode_token(create_refresh_token("user-123"))
        assert payload is not None
        assert payload["type"] == "refresh"

    def test_expired_token_decodes_to_none(self):
        token = create_access_token("user-123", expires_delta=timedelta(seconds=-5))
        assert decode_token(token) is None

    def test_garbage_token_decodes_to_none(self):
        assert decode_token("not-a-jwt") is None
