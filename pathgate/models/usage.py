"""Per-chapter usage counters.

One row per user and chapter. The stored period is compared with the
caller's current period on every read; a stale row counts as zero and is
overwritten on the next consumption, so no history accumulates.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from .base import Base


class ChatUsage(Base):
    """Daily chat turns per user and chapter."""

    __tablename__ = "chat_usage"

    user_id = Column(String(64), primary_key=True)
    chapter_id = Column(String(64), primary_key=True)
    period_key = Column(String(10), nullable=False)  # YYYY-MM-DD
    used = Column(Integer, nullable=False, server_default="0")
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class McqUsage(Base):
    """Monthly MCQ generations per user and chapter."""

    __tablename__ = "mcq_usage"

    user_id = Column(String(64), primary_key=True)
    chapter_id = Column(String(64), primary_key=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    used = Column(Integer, nullable=False, server_default="0")
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


__all__ = ["ChatUsage", "McqUsage"]
