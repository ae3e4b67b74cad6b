from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from .base import Base


class Event(Base):
    """Audit event for subscription and payment lifecycle changes."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    event = Column(String, nullable=False)
    ts = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
