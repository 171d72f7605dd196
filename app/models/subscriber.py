"""Subscriber and confirmation token models."""
from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship, validates
from datetime import datetime, timezone
import uuid
from app.core.database import Base


STATUS_PENDING = "pending_confirmation"
STATUS_CONFIRMED = "confirmed"

# Allowed forward transitions; confirmed is terminal
_TRANSITIONS = {
    STATUS_PENDING: {STATUS_PENDING, STATUS_CONFIRMED},
    STATUS_CONFIRMED: {STATUS_CONFIRMED},
}


class Subscriber(Base):
    """A newsletter subscriber going through double opt-in."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            f"status IN ('{STATUS_PENDING}', '{STATUS_CONFIRMED}')",
            name="ck_subscriptions_status",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    subscribed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    status = Column(String, default=STATUS_PENDING, nullable=False)

    # Relationships
    tokens = relationship("SubscriptionToken", back_populates="subscriber", cascade="all, delete-orphan")

    @validates('status')
    def validate_status(self, key, value):
        """Status only moves forward: pending_confirmation -> confirmed."""
        if value not in _TRANSITIONS:
            raise ValueError(f"Unknown subscriber status: {value}")
        current = self.status
        if current is not None and value not in _TRANSITIONS[current]:
            raise ValueError(f"Subscriber status cannot move from {current} to {value}")
        return value


class SubscriptionToken(Base):
    """One-time confirmation token mapping to exactly one subscriber."""

    __tablename__ = "subscription_tokens"

    subscription_token = Column(String, primary_key=True)
    subscriber_id = Column(String, ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationship
    subscriber = relationship("Subscriber", back_populates="tokens")
