"""Admin area: dashboard, logout, password change and newsletter publishing.

Every route depends on ``require_login``; without a user id in the session
the request is redirected to /login before the form body is looked at.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.templating import render_page
from app.core.auth import require_login
from app.core.config import Settings, get_app_settings
from app.core.database import get_db
from app.core.errors import InvalidCredentials
from app.core.flash import FlashMessage, set_flash
from app.core.session import TypedSession, get_session
from app.providers import EmailProvider, get_email_client
from app.services.auth_service import AuthService
from app.services.idempotency_service import IdempotencyKey, IdempotencyService, ReturnSavedResponse
from app.services.newsletter_service import IssueContent, NewsletterService

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 12
MAX_PASSWORD_LENGTH = 128

PUBLISHED_MESSAGE = "The newsletter issue has been published!"


def see_other(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/dashboard")
async def dashboard(
    request: Request,
    user_id: str = Depends(require_login),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    username = await AuthService.get_username(user_id, db)
    return render_page(request, "dashboard.html", settings.hmac_secret, {"username": username})


@router.post("/logout")
async def logout(
    user_id: str = Depends(require_login),
    session: TypedSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings)
):
    """End the session and send the user back to the login form."""
    session.log_out()
    logger.info(f"User logged out: {user_id}")
    response = see_other("/login")
    set_flash(response, settings.hmac_secret, "You have successfully logged out.", level="info")
    return response


@router.get("/password")
async def change_password_form(
    request: Request,
    user_id: str = Depends(require_login),
    settings: Settings = Depends(get_app_settings)
):
    return render_page(request, "password.html", settings.hmac_secret)


@router.post("/password")
async def change_password(
    current_password: str = Form(""),
    new_password: str = Form(""),
    new_password_check: str = Form(""),
    user_id: str = Depends(require_login),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """
    Change the logged-in user's password.

    Every outcome redirects back to /admin/password with a flash message.
    """
    response = see_other("/admin/password")

    if new_password != new_password_check:
        set_flash(
            response,
            settings.hmac_secret,
            "You entered two different new passwords - the field values must match."
        )
        return response

    if not MIN_PASSWORD_LENGTH <= len(new_password) <= MAX_PASSWORD_LENGTH:
        set_flash(
            response,
            settings.hmac_secret,
            f"The new password must be between {MIN_PASSWORD_LENGTH} and "
            f"{MAX_PASSWORD_LENGTH} characters long."
        )
        return response

    username = await AuthService.get_username(user_id, db)
    try:
        await AuthService.validate_credentials(username, current_password, db)
    except InvalidCredentials:
        logger.warning(f"Password change rejected for {user_id}: wrong current password")
        set_flash(response, settings.hmac_secret, "The current password is incorrect.")
        return response

    await AuthService.change_password(user_id, new_password, db)
    set_flash(response, settings.hmac_secret, "Your password has been changed.", level="info")
    return response


@router.get("/newsletter")
async def publish_newsletter_form(
    request: Request,
    user_id: str = Depends(require_login),
    settings: Settings = Depends(get_app_settings)
):
    """Render the issue form with a fresh idempotency key."""
    return render_page(
        request,
        "newsletter.html",
        settings.hmac_secret,
        {"idempotency_key": str(uuid.uuid4())}
    )


@router.post("/newsletter")
async def publish_newsletter(
    title: str = Form(""),
    text_content: str = Form(""),
    html_content: str = Form(""),
    idempotency_key: str = Form(""),
    user_id: str = Depends(require_login),
    db: AsyncSession = Depends(get_db),
    email_client: EmailProvider = Depends(get_email_client),
    settings: Settings = Depends(get_app_settings)
):
    """
    Publish a newsletter issue to every confirmed subscriber.

    A resubmission with the same idempotency key replays the stored response
    and notice without sending anything.
    """
    issue = IssueContent.parse(title, text_content, html_content)
    key = IdempotencyKey.parse(idempotency_key)

    action = await IdempotencyService.try_processing(db, key, user_id)
    if isinstance(action, ReturnSavedResponse):
        response = action.response
        if action.flash is not None:
            set_flash(response, settings.hmac_secret, action.flash.content, level=action.flash.level)
        return response

    report = await NewsletterService.publish_issue(db, email_client, issue, user_id)

    if report.failed:
        outcome = FlashMessage(
            level="error",
            content=f"The newsletter issue has been published, but {report.failed} "
                    f"deliveries failed. Check the logs for details."
        )
    else:
        outcome = FlashMessage(level="info", content=PUBLISHED_MESSAGE)

    response = await IdempotencyService.save_response(
        db, key, user_id, see_other("/admin/newsletter"), flash=outcome
    )
    set_flash(response, settings.hmac_secret, outcome.content, level=outcome.level)
    return response
