"""Subscription service: double opt-in sign-up and confirmation."""
from typing import List, Optional, Tuple, Union
import logging
import secrets
import string

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StorageError, ValidationError, parse_model
from app.models import Subscriber, SubscriptionToken, STATUS_PENDING, STATUS_CONFIRMED
from app.providers import EmailProvider

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')
TOKEN_LENGTH = 25
TOKEN_ALPHABET = string.ascii_letters + string.digits


class NewSubscriber(BaseModel):
    """Validated sign-up form."""
    model_config = ConfigDict(frozen=True)

    email: EmailStr
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject whitespace-only names and any of ``/()"<>\\{}``."""
        if not v.strip():
            raise ValueError("Subscriber name cannot be empty")
        if any(c in FORBIDDEN_NAME_CHARACTERS for c in v):
            raise ValueError(f"{v} is not a valid subscriber name")
        return v

    @classmethod
    def parse(cls, email: str, name: str) -> "NewSubscriber":
        """
        Raises:
            ValidationError: If either field is invalid
        """
        return parse_model(cls, email=email, name=name)


class ConfirmedSubscriber(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: EmailStr

    @classmethod
    def parse(cls, email: str) -> "ConfirmedSubscriber":
        return parse_model(cls, email=email)


def generate_subscription_token() -> str:
    """Generate a random 25-character alphanumeric confirmation token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def build_confirmation_link(base_url: str, subscription_token: str) -> str:
    return f"{base_url}/subscriptions/confirm?subscription_token={subscription_token}"


async def send_confirmation_email(
    email_client: EmailProvider,
    subscriber: NewSubscriber,
    base_url: str,
    subscription_token: str
) -> None:
    """
    Email the confirmation link to a pending subscriber.

    Raises:
        EmailDeliveryError: If the gateway fails
    """
    confirmation_link = build_confirmation_link(base_url, subscription_token)
    html_body = (
        "<h1>Welcome</h1><br/>Welcome to our newsletter! "
        f"Click <a href=\"{confirmation_link}\">here</a> to confirm your subscription."
    )
    text_body = f"Welcome to our newsletter!\nVisit {confirmation_link} to confirm your subscription."

    await email_client.send_email(subscriber.email, "Welcome!", html_body, text_body)
    logger.info(f"Confirmation email sent to {subscriber.email}")


class SubscriptionService:
    """Service for subscriber storage and the confirmation workflow."""

    @staticmethod
    async def subscribe(
        new_subscriber: NewSubscriber,
        db: AsyncSession
    ) -> Tuple[Subscriber, Optional[str]]:
        """
        Store a pending subscriber and its confirmation token atomically.

        A pending subscriber who signs up again gets a fresh token on the
        existing row. A confirmed subscriber is left untouched.

        Args:
            new_subscriber: Validated form data
            db: Database session

        Returns:
            (subscriber, token); token is None when no confirmation is needed

        Raises:
            StorageError: If the transaction fails (nothing is persisted)
        """
        try:
            result = await db.execute(
                select(Subscriber).where(Subscriber.email == new_subscriber.email)
            )
            subscriber = result.scalar_one_or_none()

            if subscriber is not None and subscriber.status == STATUS_CONFIRMED:
                logger.info(f"Subscriber {subscriber.id} is already confirmed, nothing to do")
                return subscriber, None

            if subscriber is None:
                subscriber = Subscriber(
                    email=new_subscriber.email,
                    name=new_subscriber.name,
                    status=STATUS_PENDING
                )
                db.add(subscriber)
                await db.flush()
                logger.debug(f"Subscriber created with ID: {subscriber.id}")

            subscription_token = generate_subscription_token()
            db.add(SubscriptionToken(
                subscription_token=subscription_token,
                subscriber_id=subscriber.id
            ))

            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError("Failed to store new subscriber and its token") from e

        logger.info(f"Stored pending subscriber {subscriber.id}")
        return subscriber, subscription_token

    @staticmethod
    async def confirm(subscription_token: str, db: AsyncSession) -> bool:
        """
        Confirm the subscriber owning ``subscription_token``.

        Lookup and update share one transaction, and the subscriber row is
        locked where the database supports it, so replays observe either the
        pending or the confirmed state and never a partial one.

        Returns:
            True if the token is known (the subscriber is now confirmed),
            False if no such token exists

        Raises:
            StorageError: If the transaction fails
        """
        try:
            result = await db.execute(
                select(Subscriber)
                .join(SubscriptionToken, SubscriptionToken.subscriber_id == Subscriber.id)
                .where(SubscriptionToken.subscription_token == subscription_token)
                .with_for_update(of=Subscriber)
            )
            subscriber = result.scalar_one_or_none()

            if subscriber is None:
                await db.rollback()
                return False

            if subscriber.status == STATUS_CONFIRMED:
                logger.info(f"Subscriber {subscriber.id} already confirmed")
                await db.rollback()
                return True

            subscriber.status = STATUS_CONFIRMED
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError("Failed to confirm subscriber") from e

        logger.info(f"Subscriber {subscriber.id} confirmed")
        return True

    @staticmethod
    async def get_confirmed_subscribers(
        db: AsyncSession
    ) -> List[Union[ConfirmedSubscriber, ValidationError]]:
        """
        Load every confirmed subscriber.

        Stored addresses that no longer validate are returned as the
        ValidationError instead of raising, so one bad row cannot abort a run.
        """
        try:
            result = await db.execute(
                select(Subscriber.email).where(Subscriber.status == STATUS_CONFIRMED)
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to load confirmed subscribers") from e

        confirmed: List[Union[ConfirmedSubscriber, ValidationError]] = []
        for email in result.scalars().all():
            try:
                confirmed.append(ConfirmedSubscriber.parse(email))
            except ValidationError as e:
                confirmed.append(e)
        return confirmed
