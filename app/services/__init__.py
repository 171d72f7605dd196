"""Services package initialization."""
from app.services.auth_service import AuthService
from app.services.subscription_service import SubscriptionService
from app.services.idempotency_service import IdempotencyService
from app.services.newsletter_service import NewsletterService

__all__ = [
    "AuthService",
    "SubscriptionService",
    "IdempotencyService",
    "NewsletterService"
]
