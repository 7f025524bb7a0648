"""
Shared test fixtures.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from civic_portal.core import rate_limit


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture(autouse=True)
def clear_rate_limits():
    """Reset the in-memory rate limit store between tests."""
    rate_limit._memory_store.clear()
    yield
    rate_limit._memory_store.clear()
