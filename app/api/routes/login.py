"""Login form and session-based admin authentication."""
from contextvars import ContextVar
from typing import Optional
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address
import logging

from app.api.templating import render_page
from app.core.config import Settings, get_app_settings
from app.core.database import get_db
from app.core.errors import InvalidCredentials, UnexpectedError, error_chain
from app.core.flash import set_flash
from app.core.session import TypedSession, get_session
from app.services.auth_service import AuthService

router = APIRouter(tags=["authentication"])
logger = logging.getLogger(__name__)

# Rate limiter for the login endpoint. One instance serves every app; each
# app switches it on and sizes it through its own settings.
limiter = Limiter(key_func=get_remote_address)

DEFAULT_LOGIN_RATE_LIMIT = "5/minute"

_request_settings: ContextVar[Optional[Settings]] = ContextVar("login_request_settings", default=None)


async def bind_rate_limit_settings(settings: Settings = Depends(get_app_settings)) -> Settings:
    """Expose the serving app's settings to the limit provider for this request."""
    _request_settings.set(settings)
    return settings


def login_rate_limit() -> str:
    settings = _request_settings.get()
    return settings.rate_limit_login if settings is not None else DEFAULT_LOGIN_RATE_LIMIT


def rate_limit_exempt(request: Request) -> bool:
    return not request.app.state.settings.rate_limit_enabled


@router.get("/login")
async def login_form(request: Request, settings: Settings = Depends(get_app_settings)):
    """Render the login form along with any pending error message."""
    return render_page(request, "login.html", settings.hmac_secret)


@router.post("/login")
@limiter.limit(login_rate_limit, exempt_when=rate_limit_exempt)
async def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    db: AsyncSession = Depends(get_db),
    session: TypedSession = Depends(get_session),
    settings: Settings = Depends(bind_rate_limit_settings)
):
    """
    Login with username and password.

    On success the session id is renewed and the user is sent to the
    dashboard. On failure the user goes back to /login with a flash message.
    """
    try:
        user_id = await AuthService.validate_credentials(username, password, db)
    except (InvalidCredentials, UnexpectedError) as e:
        message = "Authentication failed" if isinstance(e, InvalidCredentials) else "Something went wrong"
        logger.warning(f"Login failed for '{username}': {error_chain(e)}")
        response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
        set_flash(response, settings.hmac_secret, message)
        return response

    session.renew()
    session.insert_user_id(user_id)
    logger.info(f"✓ User logged in: {username} (ID: {user_id})")
    return RedirectResponse("/admin/dashboard", status_code=status.HTTP_303_SEE_OTHER)
