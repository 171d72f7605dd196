"""Abstract interface for transactional email providers."""
from abc import ABC, abstractmethod
from fastapi import Request
from app.core.errors import EmailDeliveryError


class EmailProvider(ABC):
    """Abstract base class for outbound email gateways."""

    @abstractmethod
    async def send_email(
        self,
        recipient: str,
        subject: str,
        html_content: str,
        text_content: str
    ) -> None:
        """
        Send one email from the configured sender address.

        Args:
            recipient: Validated recipient address
            subject: Email subject
            html_content: HTML body
            text_content: Plain-text body

        Raises:
            EmailDeliveryError: If the provider could not be reached or rejected the email
        """
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        return None


def get_email_client(request: Request) -> EmailProvider:
    """FastAPI dependency returning the app's email gateway."""
    return request.app.state.email_client


__all__ = ["EmailProvider", "EmailDeliveryError", "get_email_client"]
