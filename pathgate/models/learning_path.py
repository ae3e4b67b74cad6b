from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, String

from .base import Base


class LearningPathRecord(Base):
    """Learning path structure written by the content service."""

    __tablename__ = "learning_paths"

    id = Column(String(64), primary_key=True)
    title = Column(String, nullable=True)
    structure = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class ChapterProgress(Base):
    """Learner progress on a single chapter of a learning path."""

    __tablename__ = "chapter_progress"

    user_id = Column(String(64), primary_key=True)
    learning_path_id = Column(String(64), primary_key=True)
    chapter_id = Column(String(64), primary_key=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    score = Column(Float, nullable=True)


__all__ = ["LearningPathRecord", "ChapterProgress"]
