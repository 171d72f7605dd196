"""Published newsletter issue model."""
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from datetime import datetime, timezone
import uuid
from app.core.database import Base


class NewsletterIssue(Base):
    """An issue that was dispatched, with its delivery tallies."""

    __tablename__ = "newsletter_issues"

    newsletter_issue_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    text_content = Column(Text, nullable=False)
    html_content = Column(Text, nullable=False)
    published_by = Column(String, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True)
    published_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    delivered_count = Column(Integer, default=0, nullable=False)
    failed_count = Column(Integer, default=0, nullable=False)
    skipped_count = Column(Integer, default=0, nullable=False)
