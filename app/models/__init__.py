"""Models package initialization."""
from app.models.user import User
from app.models.subscriber import Subscriber, SubscriptionToken, STATUS_PENDING, STATUS_CONFIRMED
from app.models.idempotency import IdempotencyRecord
from app.models.newsletter import NewsletterIssue

__all__ = [
    "User",
    "Subscriber",
    "SubscriptionToken",
    "STATUS_PENDING",
    "STATUS_CONFIRMED",
    "IdempotencyRecord",
    "NewsletterIssue"
]
