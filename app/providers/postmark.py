"""Postmark transactional email provider implementation."""
import httpx
from typing import Optional
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)
import logging
from app.core.config import Settings
from app.providers import EmailProvider, EmailDeliveryError
from app.providers.models import EmailMessage


logger = logging.getLogger(__name__)


class PostmarkEmailClient(EmailProvider):
    """Postmark implementation of the email gateway."""

    TOKEN_HEADER = "X-Postmark-Server-Token"

    def __init__(
        self,
        base_url: str,
        sender: str,
        authorization_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.sender = sender
        self._authorization_token = authorization_token
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostmarkEmailClient":
        return cls(
            base_url=settings.email_base_url,
            sender=str(settings.email_sender),
            authorization_token=settings.email_authorization_token,
            timeout=settings.email_timeout_seconds,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    async def _post(self, message: EmailMessage) -> httpx.Response:
        """POST one email with retry logic for transient failures.

        Retries up to 3 times with exponential backoff for timeouts and
        connection errors. HTTP error statuses are not retried.
        """
        response = await self.client.post(
            f"{self.base_url}/email",
            headers={self.TOKEN_HEADER: self._authorization_token},
            json=message.to_postmark(),
        )
        response.raise_for_status()
        return response

    async def send_email(
        self,
        recipient: str,
        subject: str,
        html_content: str,
        text_content: str
    ) -> None:
        message = EmailMessage(
            sender=self.sender,
            recipient=recipient,
            subject=subject,
            html_body=html_content,
            text_body=text_content,
        )
        try:
            await self._post(message)
            logger.debug(f"Email accepted by provider for {recipient}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise EmailDeliveryError(
                    "Email provider rate limit exceeded (429). Please wait before sending more email."
                ) from e
            raise EmailDeliveryError(
                f"Email provider rejected message to {recipient}: HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise EmailDeliveryError(f"Email provider timeout after retries: {str(e)}") from e
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email provider connection error: {str(e)}") from e

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
