"""Factories shared by unit and API tests."""
from unittest.mock import MagicMock

from app.core.config import Settings

HMAC_SECRET = "super-long-and-secret-random-key-needed-to-verify-message-integrity"


def build_settings(**overrides) -> Settings:
    """Factory for Settings that ignores any local .env file."""
    values = {
        "database_url": "sqlite+aiosqlite:///:memory:",
        "app_base_url": "http://testserver",
        "hmac_secret": HMAC_SECRET,
        "email_base_url": "http://email.test",
        "email_sender": "newsletter@example.com",
        "email_authorization_token": "my-secret-token",
        "email_timeout_milliseconds": 200,
        "rate_limit_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def result_with(**attributes):
    """Build a fake SQLAlchemy result whose methods return the given values.

    ``result_with(scalar_one_or_none=user)`` makes
    ``result.scalar_one_or_none()`` return ``user``.
    """
    result = MagicMock()
    for name, value in attributes.items():
        getattr(result, name).return_value = value
    return result
