"""Admin user model."""
from sqlalchemy import Column, String
import uuid
from app.core.database import Base


class User(Base):
    """Admin account allowed to publish newsletter issues.

    Rows are created out-of-band (startup seed, provisioning script, tests)
    and only ever mutated by a password change.
    """

    __tablename__ = "users"

    user_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
