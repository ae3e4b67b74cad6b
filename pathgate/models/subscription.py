"""Paid subscription records.

A subscription is either global (``scope == "global"``) or tied to a single
learning path (``scope == <path id>``). Only one record per user and scope may
be active at a time; the partial unique index below enforces it for
concurrent reconciliations as well.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    text,
)

from .base import Base

GLOBAL_SCOPE = "global"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    scope = Column(String(64), nullable=False, default=GLOBAL_SCOPE)
    plan_type = Column(Enum("basic", "premium", name="plan_type"), nullable=False)
    plan_amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    daily_chat_limit = Column(Integer, nullable=False)
    monthly_mcq_limit = Column(Integer, nullable=False)
    max_learning_paths_per_payment = Column(Integer, nullable=False, server_default="1")
    learning_paths_saved = Column(Integer, nullable=False, server_default="0", default=0)
    start_date = Column(DateTime(timezone=True), nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    external_payment_id = Column(String, nullable=False, unique=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index(
            "uq_subscriptions_active_scope",
            "user_id",
            "scope",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        Index("ix_subscriptions_expiry_active", "expiry_date", "is_active"),
    )


__all__ = ["Subscription", "GLOBAL_SCOPE"]
