"""Server-side sessions stored in Redis and addressed by an opaque cookie."""
import json
import logging
import secrets
from typing import Any, Dict, Optional

import redis.asyncio as redis
from fastapi import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "newsletter_session"
USER_ID_KEY = "user_id"


class RedisSessionStore:
    """Persist session payloads as JSON under ``session:<id>`` keys."""

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        self.redis = client
        self.ttl_seconds = ttl_seconds

    def _make_key(self, session_id: str) -> str:
        return f"session:{session_id}"

    async def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        raw = await self.redis.get(self._make_key(session_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding session with undecodable payload")
            return None
        return data if isinstance(data, dict) else None

    async def save(self, session_id: str, data: Dict[str, Any]) -> None:
        await self.redis.set(self._make_key(session_id), json.dumps(data), ex=self.ttl_seconds)

    async def delete(self, session_id: str) -> None:
        await self.redis.delete(self._make_key(session_id))


class TypedSession:
    """Per-request view of the session: a single typed ``user_id`` value.

    Changes are buffered and written back by ``commit`` once the handler has
    produced its response.
    """

    def __init__(self, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.session_id = session_id
        self._data: Dict[str, Any] = dict(data or {})
        self._stale_ids: list[str] = []
        self._modified = False
        self._purged = False

    @classmethod
    async def load(cls, store: RedisSessionStore, session_id: Optional[str]) -> "TypedSession":
        """Resolve the cookie value into a session; unknown ids start empty."""
        if not session_id:
            return cls()
        data = await store.load(session_id)
        if data is None:
            return cls()
        return cls(session_id, data)

    def renew(self) -> None:
        """Issue a new session id, keeping the data (guards against fixation)."""
        if self.session_id:
            self._stale_ids.append(self.session_id)
        self.session_id = secrets.token_urlsafe(32)
        self._modified = True
        self._purged = False

    def insert_user_id(self, user_id: str) -> None:
        if not self.session_id:
            self.session_id = secrets.token_urlsafe(32)
        self._data[USER_ID_KEY] = str(user_id)
        self._modified = True
        self._purged = False

    def get_user_id(self) -> Optional[str]:
        value = self._data.get(USER_ID_KEY)
        return str(value) if value is not None else None

    def log_out(self) -> None:
        """Drop all session state; the cookie is removed on commit."""
        if self.session_id:
            self._stale_ids.append(self.session_id)
        self.session_id = None
        self._data = {}
        self._modified = False
        self._purged = True

    async def commit(self, store: RedisSessionStore, response: Response, *, secure: bool) -> None:
        """Write changes to the store and reflect them in the response cookie."""
        for stale_id in self._stale_ids:
            await store.delete(stale_id)
        self._stale_ids = []

        if self._purged:
            response.delete_cookie(SESSION_COOKIE_NAME, path="/")
            return

        if self._modified and self.session_id:
            await store.save(self.session_id, self._data)
            response.set_cookie(
                SESSION_COOKIE_NAME,
                self.session_id,
                max_age=store.ttl_seconds,
                path="/",
                httponly=True,
                secure=secure,
                samesite="lax",
            )


async def session_middleware(request: Request, call_next):
    """Attach a ``TypedSession`` to the request and persist it afterwards."""
    store: RedisSessionStore = request.app.state.session_store
    session = await TypedSession.load(store, request.cookies.get(SESSION_COOKIE_NAME))
    request.state.session = session

    response = await call_next(request)

    await session.commit(store, response, secure=request.app.state.settings.session_cookie_secure)
    return response


def get_session(request: Request) -> TypedSession:
    """FastAPI dependency returning the session resolved by the middleware."""
    return request.state.session
