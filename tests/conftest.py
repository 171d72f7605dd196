"""Shared pytest fixtures for newsletter service tests."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from tests.helpers import build_settings


@pytest.fixture
def settings():
    """Default test settings."""
    return build_settings()


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def mock_email_client():
    """Email gateway double recording every send."""
    client = AsyncMock()
    client.send_email = AsyncMock(return_value=None)
    return client
