"""End-to-end tests for the admin dashboard, the login guard and logout."""
import pytest

from tests.api.helpers import assert_is_redirect_to, newsletter_form


@pytest.mark.api
@pytest.mark.asyncio
class TestAdminGuard:
    """Every /admin route requires a logged-in session."""

    @pytest.mark.parametrize("method,path", [
        ("GET", "/admin/dashboard"),
        ("GET", "/admin/password"),
        ("POST", "/admin/password"),
        ("GET", "/admin/newsletter"),
        ("POST", "/admin/logout"),
    ])
    async def test_you_must_be_logged_in(self, test_app, method, path):
        """✅ Anonymous request → 303 to /login."""
        response = await test_app.client.request(method, path)

        assert_is_redirect_to(response, "/login")

    async def test_publish_requires_login_even_with_valid_body(self, test_app):
        """✅ Anonymous publish → 303 to /login, nothing sent."""
        await test_app.create_confirmed_subscriber()
        sent_before = len(test_app.email_server.requests)

        response = await test_app.post_publish_newsletter(newsletter_form())

        assert_is_redirect_to(response, "/login")
        assert len(test_app.email_server.requests) == sent_before

    async def test_forged_session_cookie_is_rejected(self, test_app):
        """✅ Unknown session id → treated as anonymous."""
        test_app.client.cookies.set("newsletter_session", "not-a-real-session")

        response = await test_app.get_admin_dashboard()

        assert_is_redirect_to(response, "/login")


@pytest.mark.api
@pytest.mark.asyncio
class TestDashboard:
    """Test GET /admin/dashboard."""

    async def test_dashboard_greets_the_admin(self, test_app):
        """✅ Logged in → 200 with the username."""
        await test_app.login_as_admin()

        response = await test_app.get_admin_dashboard()

        assert response.status_code == 200
        assert "Welcome admin!" in response.text
        assert "/admin/newsletter" in response.text


@pytest.mark.api
@pytest.mark.asyncio
class TestLogout:
    """Test POST /admin/logout."""

    async def test_logout_clears_session_state(self, test_app):
        """✅ Logout → flash on /login, dashboard locked again."""
        response = await test_app.login_as_admin()
        assert_is_redirect_to(response, "/admin/dashboard")

        response = await test_app.post_logout()
        assert_is_redirect_to(response, "/login")

        html_page = await test_app.get_login_html()
        assert "<p class=\"flash flash-info\"><i>You have successfully logged out.</i></p>" in html_page

        response = await test_app.get_admin_dashboard()
        assert_is_redirect_to(response, "/login")
