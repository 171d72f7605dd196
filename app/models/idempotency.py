"""Idempotency record model for newsletter publishing."""
from sqlalchemy import Column, String, Text, Integer, DateTime, LargeBinary, JSON, ForeignKey, PrimaryKeyConstraint
from datetime import datetime, timezone
from app.core.database import Base


class IdempotencyRecord(Base):
    """Outcome of a publish request, keyed by (user_id, idempotency_key).

    The response columns stay NULL until the request that inserted the row
    has finished dispatching; they are written in the same transaction.
    """

    __tablename__ = "idempotency"
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "idempotency_key", name="pk_idempotency"),
    )

    user_id = Column(String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    idempotency_key = Column(String, nullable=False)
    response_status_code = Column(Integer, nullable=True)
    response_headers = Column(JSON, nullable=True)  # list of [name, value] pairs
    response_body = Column(LargeBinary, nullable=True)
    response_flash_level = Column(String, nullable=True)
    response_flash_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
