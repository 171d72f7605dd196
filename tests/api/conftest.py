"""Fixtures for end-to-end tests through the ASGI app.

Each test gets its own SQLite database file, a fakeredis session store and a
recording transport standing in for the Postmark API.
"""
import pytest

from app.api.routes import login as login_routes
from tests.api.helpers import shutdown_app, spawn_app


@pytest.fixture
async def test_app(tmp_path):
    """A fresh app with an admin account and no subscribers."""
    app = await spawn_app(tmp_path)
    yield app
    await shutdown_app(app)


@pytest.fixture
async def rate_limited_app(tmp_path):
    """App with the login limiter switched on at 2/minute."""
    login_routes.limiter.reset()
    app = await spawn_app(tmp_path, rate_limit_enabled=True, rate_limit_login="2/minute")
    yield app
    await shutdown_app(app)
    login_routes.limiter.reset()
