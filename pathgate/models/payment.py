from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String

from .base import Base


class Payment(Base):
    """Completed payment that has been reconciled into a subscription."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    purpose = Column(
        Enum("career_access", "learning_path_save", name="payment_purpose"),
        nullable=False,
    )
    learning_path_id = Column(String(64), nullable=True)
    external_payment_id = Column(String, nullable=False, unique=True)
    order_id = Column(String, nullable=True)
    status = Column(
        Enum("completed", "refunded", name="payment_status"),
        nullable=False,
        default="completed",
    )
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


__all__ = ["Payment"]
