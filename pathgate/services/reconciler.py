"""Turn completed payment events into subscription state.

Events are delivered at least once. The external payment id is unique on
both ``subscriptions`` and ``payments``, so a replay either finds the record
it produced earlier or loses the insert race and re-reads the winner. A
different payment that loses the race for a scope raises ``ReconcileConflict``
so the processor delivers it again.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pathgate.config import Settings
from pathgate.errors import InvalidPaymentEvent, ReconcileConflict, UnknownPlanAmount
from pathgate.metrics import (
    payment_reconciled_total,
    payment_rejected_total,
    payment_replay_total,
    reconcile_conflict_total,
    subscription_repair_total,
)
from pathgate.models import GLOBAL_SCOPE, Event, Payment, Subscription
from pathgate.services.clock import ensure_utc, utcnow
from pathgate.services.plans import plan_for_amount

settings = Settings()
logger = logging.getLogger(__name__)


class PaymentEvent(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    amount_paid: int
    currency: str = Field(min_length=3, max_length=3)
    purpose: Literal["career_access", "learning_path_save"]
    learning_path_id: str | None = Field(default=None, max_length=64)
    external_payment_id: str = Field(min_length=1)
    order_id: str | None = None
    paid_at: datetime | None = None


def scope_for_event(event: PaymentEvent) -> str:
    if event.learning_path_id:
        if event.learning_path_id == GLOBAL_SCOPE:
            raise InvalidPaymentEvent(f"{GLOBAL_SCOPE!r} is not a learning path id")
        return event.learning_path_id
    if event.purpose == "learning_path_save":
        raise InvalidPaymentEvent("learning_path_save payment without learning_path_id")
    return GLOBAL_SCOPE


def _linked_subscription(db: Session, external_payment_id: str) -> Subscription | None:
    return (
        db.query(Subscription)
        .filter(Subscription.external_payment_id == external_payment_id)
        .first()
    )


def _active_for_scope(db: Session, user_id: str, scope: str) -> Subscription | None:
    return (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.scope == scope,
            Subscription.is_active.is_(True),
        )
        .first()
    )


def apply_completed_payment(
    db: Session,
    event: PaymentEvent,
    *,
    now: datetime | None = None,
    cfg: Settings | None = None,
) -> Subscription:
    """Create or replace the active subscription bought by ``event``.

    Tier and ceilings come from ``event.amount_paid`` only. An unknown amount
    or a foreign currency is rejected before anything is written. Applying the
    same event twice returns the subscription created the first time.
    """
    cfg = cfg or settings
    # a replay is answered from the stored record, even if prices changed since
    existing = _linked_subscription(db, event.external_payment_id)
    if existing is not None:
        if existing.user_id != event.user_id:
            raise InvalidPaymentEvent(
                f"payment {event.external_payment_id} belongs to another user"
            )
        payment_replay_total.inc()
        db.add(Event(user_id=event.user_id, event="payment_replayed"))
        db.commit()
        logger.info(
            "payment %s already applied to subscription %s",
            event.external_payment_id,
            existing.id,
        )
        return existing

    if event.currency.upper() != cfg.currency.upper():
        payment_rejected_total.labels("currency").inc()
        logger.warning(
            "audit: payment %s rejected, currency %s",
            event.external_payment_id,
            event.currency,
        )
        raise InvalidPaymentEvent(f"unsupported currency {event.currency}")
    try:
        plan = plan_for_amount(event.amount_paid, cfg)
    except UnknownPlanAmount:
        payment_rejected_total.labels("amount").inc()
        logger.warning(
            "audit: payment %s rejected, amount %s matches no plan",
            event.external_payment_id,
            event.amount_paid,
        )
        raise
    scope = scope_for_event(event)

    now = ensure_utc(now or utcnow())
    start = ensure_utc(event.paid_at or now)
    expiry = start + timedelta(days=cfg.subscription_days)

    try:
        replaced = db.execute(
            update(Subscription)
            .where(
                Subscription.user_id == event.user_id,
                Subscription.scope == scope,
                Subscription.is_active.is_(True),
            )
            .values(is_active=False, updated_at=now)
            .returning(Subscription.id)
            .execution_options(synchronize_session=False)
        ).all()

        subscription = Subscription(
            user_id=event.user_id,
            scope=scope,
            plan_type=plan.plan_type,
            plan_amount=plan.plan_amount,
            currency=cfg.currency.upper(),
            daily_chat_limit=plan.daily_chat_limit,
            monthly_mcq_limit=plan.monthly_mcq_limit,
            max_learning_paths_per_payment=plan.max_learning_paths_per_payment,
            learning_paths_saved=0,
            start_date=start,
            expiry_date=expiry,
            is_active=True,
            external_payment_id=event.external_payment_id,
        )
        db.add(subscription)
        db.flush()
        db.add(
            Payment(
                user_id=event.user_id,
                amount=event.amount_paid,
                currency=event.currency.upper(),
                purpose=event.purpose,
                learning_path_id=event.learning_path_id,
                external_payment_id=event.external_payment_id,
                order_id=event.order_id,
                status="completed",
                subscription_id=subscription.id,
                paid_at=start,
            )
        )
        if replaced:
            db.add(Event(user_id=event.user_id, event="subscription_replaced"))
        db.add(Event(user_id=event.user_id, event="subscription_activated"))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        reconcile_conflict_total.inc()
        db.add(Event(user_id=event.user_id, event="reconcile_conflict"))
        db.commit()
        winner = _linked_subscription(db, event.external_payment_id)
        if winner is None:
            # another payment holds the scope; the processor redelivers this one
            other = _active_for_scope(db, event.user_id, scope)
            logger.warning(
                "audit: payment %s lost a reconcile race for user %s scope %s to subscription %s",
                event.external_payment_id,
                event.user_id,
                scope,
                other.id if other is not None else None,
            )
            raise ReconcileConflict(
                f"payment {event.external_payment_id} lost a reconcile race "
                f"for user {event.user_id} scope {scope}"
            ) from exc
        logger.warning(
            "audit: concurrent reconcile for user %s scope %s, kept subscription %s",
            event.user_id,
            scope,
            winner.id,
        )
        return winner

    payment_reconciled_total.labels(plan.plan_type).inc()
    logger.info(
        "audit: subscription %s activated for user %s scope %s plan %s",
        subscription.id,
        event.user_id,
        scope,
        plan.plan_type,
    )
    return subscription


def repair_mismatch(
    subscription: Subscription, cfg: Settings | None = None
) -> Subscription:
    """Overwrite tier and ceilings with the plan implied by ``plan_amount``.

    Raises ``UnknownPlanAmount`` when the stored amount prices no plan.
    The caller owns the session and commits if the record changed.
    """
    plan = plan_for_amount(subscription.plan_amount, cfg)
    stored = (
        subscription.plan_type,
        subscription.daily_chat_limit,
        subscription.monthly_mcq_limit,
        subscription.max_learning_paths_per_payment,
    )
    expected = (
        plan.plan_type,
        plan.daily_chat_limit,
        plan.monthly_mcq_limit,
        plan.max_learning_paths_per_payment,
    )
    if stored == expected:
        return subscription

    logger.warning(
        "audit: subscription %s stored %s but amount %s buys %s, correcting",
        subscription.id,
        stored,
        subscription.plan_amount,
        expected,
    )
    subscription.plan_type = plan.plan_type
    subscription.daily_chat_limit = plan.daily_chat_limit
    subscription.monthly_mcq_limit = plan.monthly_mcq_limit
    subscription.max_learning_paths_per_payment = plan.max_learning_paths_per_payment
    subscription_repair_total.inc()
    return subscription


__all__ = [
    "PaymentEvent",
    "scope_for_event",
    "apply_completed_payment",
    "repair_mismatch",
]
