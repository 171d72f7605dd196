"""Helpers for end-to-end tests through the ASGI app.

The lifespan hook is not run by ``httpx.ASGITransport``, so ``spawn_app``
creates the schema and the admin account itself.
"""
import asyncio
import json
import re
import uuid
from dataclasses import dataclass
from typing import List, Optional, Set

import fakeredis.aioredis
import httpx
from sqlalchemy import select

from app.api.main import create_app
from app.core.database import init_db
from app.models import Subscriber
from app.providers.postmark import PostmarkEmailClient
from app.services.auth_service import AuthService
from tests.helpers import build_settings

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "everything-has-to-start-somewhere"


class EmailServer:
    """Stand-in for the Postmark API that records every accepted request."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.failing_recipients: Set[str] = set()
        self.delay = 0.0  # seconds before each reply, to overlap concurrent requests

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        recipient = json.loads(request.content)["To"]
        if recipient in self.failing_recipients:
            return httpx.Response(500)
        return httpx.Response(self.status_code, json={"ErrorCode": 0, "To": recipient})

    @property
    def bodies(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests]


@dataclass
class ConfirmationLinks:
    html: str
    plain_text: str


@dataclass
class TestApp:
    """Handle on a running app with helpers for common requests."""
    __test__ = False

    app: object
    client: httpx.AsyncClient
    email_server: EmailServer
    admin_username: str = ADMIN_USERNAME
    admin_password: str = ADMIN_PASSWORD
    admin_user_id: Optional[str] = None

    async def post_subscriptions(self, body: dict) -> httpx.Response:
        return await self.client.post("/subscriptions", data=body)

    def get_confirmation_links(self, email_body: dict) -> ConfirmationLinks:
        """Extract the confirmation link from both bodies of a sent email."""
        def get_link(text: str) -> str:
            links = re.findall(r"https?://[^\s\"<>]+", text)
            assert len(links) == 1, f"expected exactly one link, found {links}"
            return links[0]

        return ConfirmationLinks(
            html=get_link(email_body["HtmlBody"]),
            plain_text=get_link(email_body["TextBody"])
        )

    async def post_login(self, username: str, password: str) -> httpx.Response:
        return await self.client.post("/login", data={"username": username, "password": password})

    async def login_as_admin(self) -> httpx.Response:
        return await self.post_login(self.admin_username, self.admin_password)

    async def get_login_html(self) -> str:
        return (await self.client.get("/login")).text

    async def get_admin_dashboard(self) -> httpx.Response:
        return await self.client.get("/admin/dashboard")

    async def post_logout(self) -> httpx.Response:
        return await self.client.post("/admin/logout")

    async def get_change_password(self) -> httpx.Response:
        return await self.client.get("/admin/password")

    async def post_change_password(self, body: dict) -> httpx.Response:
        return await self.client.post("/admin/password", data=body)

    async def get_publish_newsletter(self) -> httpx.Response:
        return await self.client.get("/admin/newsletter")

    async def post_publish_newsletter(self, body: dict) -> httpx.Response:
        return await self.client.post("/admin/newsletter", data=body)

    async def subscribers(self) -> List[Subscriber]:
        async with self.app.state.session_factory() as db:
            result = await db.execute(select(Subscriber))
            return list(result.scalars().all())

    async def create_unconfirmed_subscriber(self, name: Optional[str] = None) -> ConfirmationLinks:
        name = name or f"subscriber-{uuid.uuid4().hex[:8]}"
        response = await self.post_subscriptions({"name": name, "email": f"{name}@example.com"})
        assert response.status_code == 200
        return self.get_confirmation_links(self.email_server.bodies[-1])

    async def create_confirmed_subscriber(self, name: Optional[str] = None) -> None:
        links = await self.create_unconfirmed_subscriber(name)
        response = await self.client.get(links.html)
        assert response.status_code == 200


def assert_is_redirect_to(response: httpx.Response, location: str) -> None:
    assert response.status_code == 303
    assert response.headers["location"] == location


def newsletter_form(idempotency_key: Optional[str] = None) -> dict:
    return {
        "title": "Newsletter title",
        "text_content": "Newsletter body as plain text",
        "html_content": "<p>Newsletter body as HTML</p>",
        "idempotency_key": idempotency_key or str(uuid.uuid4()),
    }


async def spawn_app(tmp_path, **settings_overrides) -> TestApp:
    settings = build_settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'newsletter.db'}",
        **settings_overrides
    )
    email_server = EmailServer()
    email_client = PostmarkEmailClient(
        base_url=settings.email_base_url,
        sender=str(settings.email_sender),
        authorization_token=settings.email_authorization_token,
        timeout=settings.email_timeout_seconds,
        transport=httpx.MockTransport(email_server)
    )
    redis_client = fakeredis.aioredis.FakeRedis(decode_responses=True)

    app = create_app(settings, redis_client=redis_client, email_client=email_client)
    await init_db(app.state.engine)
    async with app.state.session_factory() as db:
        admin = await AuthService.create_user(ADMIN_USERNAME, ADMIN_PASSWORD, db)

    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url=settings.app_base_url
    )
    return TestApp(app=app, client=client, email_server=email_server, admin_user_id=admin.user_id)


async def shutdown_app(test_app: TestApp) -> None:
    await test_app.client.aclose()
    await test_app.app.state.email_client.aclose()
    await test_app.app.state.redis.aclose()
    await test_app.app.state.engine.dispose()
