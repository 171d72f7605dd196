"""Subscription API routes: sign-up and double opt-in confirmation."""
from typing import Optional
from fastapi import APIRouter, Depends, Form, Query
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.core.config import Settings, get_app_settings
from app.core.database import get_db
from app.core.errors import AuthError, ValidationError
from app.providers import EmailProvider, get_email_client
from app.services.subscription_service import (
    NewSubscriber,
    SubscriptionService,
    send_confirmation_email
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])
logger = logging.getLogger(__name__)


@router.post("")
async def subscribe(
    name: str = Form(""),
    email: str = Form(""),
    db: AsyncSession = Depends(get_db),
    email_client: EmailProvider = Depends(get_email_client),
    settings: Settings = Depends(get_app_settings)
):
    """
    Add a pending subscriber and email them a confirmation link.

    Invalid input is rejected with 400 before anything is stored.
    """
    new_subscriber = NewSubscriber.parse(email, name)
    logger.info(f"Adding '{new_subscriber.email}' as a new subscriber")

    subscriber, subscription_token = await SubscriptionService.subscribe(new_subscriber, db)

    if subscription_token is not None:
        await send_confirmation_email(
            email_client,
            new_subscriber,
            settings.app_base_url,
            subscription_token
        )

    return {"status": subscriber.status}


@router.get("/confirm")
async def confirm(
    subscription_token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm a pending subscriber from the emailed link.

    Visiting the link again after confirmation succeeds without changes.
    """
    if not subscription_token:
        raise ValidationError("Missing subscription token")

    if not await SubscriptionService.confirm(subscription_token, db):
        logger.warning("Confirmation attempted with an unknown subscription token")
        raise AuthError("Unknown subscription token")

    return {"status": "confirmed"}
