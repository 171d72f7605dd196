"""Data models for outbound email."""
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailMessage:
    """A single transactional email as sent to the provider."""
    sender: str
    recipient: str
    subject: str
    html_body: str
    text_body: str

    def to_postmark(self) -> dict:
        """Serialize using the field names the Postmark API expects."""
        return {
            "From": self.sender,
            "To": self.recipient,
            "Subject": self.subject,
            "HtmlBody": self.html_body,
            "TextBody": self.text_body,
        }
