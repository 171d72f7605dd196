"""End-to-end tests for the login form."""
import pytest

from tests.api.helpers import assert_is_redirect_to, shutdown_app, spawn_app


@pytest.mark.api
@pytest.mark.asyncio
class TestLogin:
    """Test POST /login and the flash message it leaves behind."""

    async def test_error_flash_message_is_set_on_failure(self, test_app):
        """✅ Wrong credentials → 303 to /login, error shown once."""
        response = await test_app.post_login("random-username", "random-password")
        assert_is_redirect_to(response, "/login")

        html_page = await test_app.get_login_html()
        assert "<p class=\"flash flash-error\"><i>Authentication failed</i></p>" in html_page

        # Reload the login page
        html_page = await test_app.get_login_html()
        assert "Authentication failed" not in html_page

    async def test_wrong_password_for_known_user(self, test_app):
        """✅ Known user, wrong password → same generic failure."""
        response = await test_app.post_login(test_app.admin_username, "not-the-password")

        assert_is_redirect_to(response, "/login")
        assert "Authentication failed" in await test_app.get_login_html()

    async def test_redirect_to_admin_dashboard_after_login_success(self, test_app):
        """✅ Valid credentials → 303 to the dashboard."""
        response = await test_app.login_as_admin()

        assert_is_redirect_to(response, "/admin/dashboard")
        assert "newsletter_session" in response.cookies

        html_page = (await test_app.get_admin_dashboard()).text
        assert f"Welcome {test_app.admin_username}!" in html_page

    async def test_session_id_is_renewed_on_login(self, test_app):
        """✅ A second login issues a different session id."""
        first = await test_app.login_as_admin()
        second = await test_app.login_as_admin()

        assert first.cookies["newsletter_session"] != second.cookies["newsletter_session"]

    async def test_login_form_renders(self, test_app):
        """✅ GET /login → form posting to /login."""
        response = await test_app.client.get("/login")

        assert response.status_code == 200
        assert "action=\"/login\"" in response.text


@pytest.mark.api
@pytest.mark.asyncio
class TestLoginRateLimit:
    """Test the per-client login limit."""

    async def test_attempts_over_the_limit_are_rejected(self, rate_limited_app):
        """✅ Third attempt within a minute at 2/minute → 429."""
        for _ in range(2):
            response = await rate_limited_app.post_login("random-username", "random-password")
            assert_is_redirect_to(response, "/login")

        response = await rate_limited_app.post_login("random-username", "random-password")

        assert response.status_code == 429

    async def test_limit_is_bound_per_app(self, rate_limited_app, tmp_path):
        """✅ An app without the limit keeps accepting while a limited one rejects."""
        other_dir = tmp_path / "other"
        other_dir.mkdir()
        unlimited_app = await spawn_app(other_dir)
        try:
            for _ in range(3):
                response = await unlimited_app.post_login("random-username", "random-password")
                assert_is_redirect_to(response, "/login")

            for _ in range(2):
                response = await rate_limited_app.post_login("random-username", "random-password")
                assert_is_redirect_to(response, "/login")
            response = await rate_limited_app.post_login("random-username", "random-password")
            assert response.status_code == 429

            response = await unlimited_app.post_login("random-username", "random-password")
            assert_is_redirect_to(response, "/login")
        finally:
            await shutdown_app(unlimited_app)
