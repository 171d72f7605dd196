"""One-time flash messages carried in a signed cookie."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List
import logging

from fastapi import Request
from jose import JWTError, jwt
from starlette.responses import Response

logger = logging.getLogger(__name__)

FLASH_COOKIE_NAME = "_flash"
FLASH_ALGORITHM = "HS256"
FLASH_MAX_AGE_SECONDS = 300


@dataclass(frozen=True)
class FlashMessage:
    """A notice shown on the next rendered page."""
    level: str
    content: str


def set_flash(response: Response, secret: str, content: str, level: str = "error") -> None:
    """
    Attach a signed flash message to the response.

    Args:
        response: Outgoing response (usually a 303 redirect)
        secret: HMAC key used to sign the cookie
        content: Human-readable notice
        level: "error" or "info"
    """
    expire = datetime.now(timezone.utc) + timedelta(seconds=FLASH_MAX_AGE_SECONDS)
    token = jwt.encode(
        {"messages": [{"level": level, "content": content}], "exp": expire},
        secret,
        algorithm=FLASH_ALGORITHM,
    )
    response.set_cookie(
        FLASH_COOKIE_NAME,
        token,
        max_age=FLASH_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        samesite="lax",
    )


def read_flash(request: Request, secret: str) -> List[FlashMessage]:
    """Return the flash messages on the request, ignoring tampered or expired cookies."""
    token = request.cookies.get(FLASH_COOKIE_NAME)
    if not token:
        return []

    try:
        payload = jwt.decode(token, secret, algorithms=[FLASH_ALGORITHM])
    except JWTError:
        logger.warning("Ignoring flash cookie with invalid signature or expiry")
        return []

    return [
        FlashMessage(level=str(m.get("level", "info")), content=str(m.get("content", "")))
        for m in payload.get("messages", [])
        if isinstance(m, dict)
    ]


def clear_flash(response: Response) -> None:
    """Remove the flash cookie so a reload no longer shows the messages."""
    response.delete_cookie(FLASH_COOKIE_NAME, path="/")
