"""Newsletter dispatcher: deliver an issue to every confirmed subscriber."""
from dataclasses import dataclass, field
from typing import List
import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import EmailDeliveryError, StorageError, ValidationError, error_chain, parse_model
from app.models import NewsletterIssue
from app.providers import EmailProvider
from app.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


class IssueContent(BaseModel):
    """Validated newsletter issue."""
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    text_content: str = Field(min_length=1)
    html_content: str = Field(min_length=1)

    @field_validator('title', 'text_content', 'html_content')
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("The newsletter content cannot be blank")
        return v

    @classmethod
    def parse(cls, title: str, text_content: str, html_content: str) -> "IssueContent":
        return parse_model(cls, title=title, text_content=text_content, html_content=html_content)


@dataclass
class DeliveryReport:
    """Outcome of one dispatch run."""
    delivered: int = 0
    skipped: int = 0
    failed_recipients: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_recipients)


class NewsletterService:
    """Service for publishing newsletter issues."""

    @staticmethod
    async def publish_issue(
        db: AsyncSession,
        email_client: EmailProvider,
        issue: IssueContent,
        user_id: str
    ) -> DeliveryReport:
        """
        Send ``issue`` once to every confirmed subscriber and record it.

        Subscribers whose stored address no longer validates are skipped.
        A recipient the gateway still rejects after its retries is logged and
        counted as failed; the run carries on with the rest. The issue row is
        added to the caller's transaction and committed with it.

        Args:
            db: Database session (transaction owned by the caller)
            email_client: Email gateway
            issue: Validated content
            user_id: Publishing admin

        Returns:
            DeliveryReport with per-run tallies
        """
        report = DeliveryReport()
        subscribers = await SubscriptionService.get_confirmed_subscribers(db)
        logger.info(f"Publishing '{issue.title}' to {len(subscribers)} confirmed subscribers")

        for subscriber in subscribers:
            if isinstance(subscriber, ValidationError):
                report.skipped += 1
                logger.warning(
                    f"Skipping a confirmed subscriber as stored details are invalid: {error_chain(subscriber)}"
                )
                continue

            try:
                await email_client.send_email(
                    subscriber.email,
                    issue.title,
                    issue.html_content,
                    issue.text_content
                )
                report.delivered += 1
            except EmailDeliveryError as e:
                report.failed_recipients.append(subscriber.email)
                logger.warning(
                    f"Failed to send newsletter issue to {subscriber.email}: {error_chain(e)}"
                )

        try:
            db.add(NewsletterIssue(
                title=issue.title,
                text_content=issue.text_content,
                html_content=issue.html_content,
                published_by=user_id,
                delivered_count=report.delivered,
                failed_count=report.failed,
                skipped_count=report.skipped
            ))
            await db.flush()
        except SQLAlchemyError as e:
            raise StorageError("Failed to record newsletter issue") from e

        logger.info(
            f"✓ Issue '{issue.title}' published: delivered={report.delivered}, "
            f"failed={report.failed}, skipped={report.skipped}"
        )
        return report
