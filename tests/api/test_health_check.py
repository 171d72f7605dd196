"""End-to-end tests for the health endpoints."""
import pytest


@pytest.mark.api
@pytest.mark.asyncio
class TestHealthCheck:
    """Test liveness and database checks."""

    async def test_health_check_works(self, test_app):
        """✅ GET /health → 200."""
        response = await test_app.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_database_health(self, test_app):
        """✅ GET /health/db → database reachable."""
        response = await test_app.client.get("/health/db")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "sqlite"

    async def test_home_page(self, test_app):
        """✅ GET / renders the subscription form."""
        response = await test_app.client.get("/")

        assert response.status_code == 200
        assert 'action="/subscriptions"' in response.text
