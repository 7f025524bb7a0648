"""
Tests for database connection settings.
"""

from civic_portal.core.config import Settings
from civic_portal.core.database import build_connect_args


def test_connect_args_bound_every_call():
    args = build_connect_args(Settings(database_timeout_seconds=5))

    assert args["timeout"] == 5
    assert args["command_timeout"] == 5
    assert args["server_settings"] == {"statement_timeout": "5000", "lock_timeout": "5000"}


def test_default_timeout_is_applied():
    args = build_connect_args(Settings())

    assert args["command_timeout"] == 15.0
    assert args["server_settings"]["lock_timeout"] == "15000"
