"""
SQL shape tests for the code records repository.

Statements are compiled with the PostgreSQL dialect; no database needed.
"""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from civic_portal.modules.codes.models import CodePurpose
from civic_portal.modules.codes.repository import (
    build_burn_expired,
    build_code_upsert,
    build_consume,
)


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_upsert_is_keyed_by_email_and_purpose():
    sql = _sql(
        build_code_upsert(
            email="a@x.com",
            purpose=CodePurpose.LOGIN,
            code="123456",
            expires_at=datetime(2026, 1, 1, tzinfo=UTC),
        )
    )

    assert "INSERT INTO code_records" in sql
    assert "ON CONFLICT (email, purpose) DO UPDATE" in sql
    # A superseding code resets the single-use flag
    assert "used = " in sql
    assert "verified_at = " in sql


def test_consume_only_matches_unused_record():
    sql = _sql(build_consume(uuid4(), "0417", datetime(2026, 1, 1, tzinfo=UTC)))

    assert sql.startswith("UPDATE code_records SET")
    assert "code_records.used IS false" in sql
    assert "code_records.code = " in sql
    assert "RETURNING code_records.id" in sql


def test_expiry_burn_only_matches_the_expired_code_read():
    sql = _sql(build_burn_expired(uuid4(), "123456", datetime(2026, 1, 1, tzinfo=UTC)))

    assert sql.startswith("UPDATE code_records SET used=")
    # A code issued after the read reuses the row and must survive the burn
    assert "code_records.code = " in sql
    assert "code_records.expires_at <= " in sql
    assert "code_records.used IS false" in sql
