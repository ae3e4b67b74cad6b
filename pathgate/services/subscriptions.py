from __future__ import annotations

import logging
from datetime import datetime
from typing import NamedTuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from pathgate.errors import UnknownPlanAmount
from pathgate.metrics import subscription_expired_total
from pathgate.models import GLOBAL_SCOPE, Event, Subscription
from pathgate.services.clock import ensure_utc, utcnow
from pathgate.services.reconciler import repair_mismatch
from pathgate.services.usage_ledger import QuotaResult

logger = logging.getLogger(__name__)


class EffectiveLimits(NamedTuple):
    """Ceilings of the subscription that governs a request."""

    subscription_id: int
    scope: str
    plan_type: str
    daily_chat_limit: int
    monthly_mcq_limit: int
    expiry_date: datetime


def find_active(
    db: Session,
    *,
    user_id: str,
    scope: str,
    now: datetime | None = None,
) -> Subscription | None:
    """Return the active, unexpired subscription for ``scope`` if any."""
    now = ensure_utc(now or utcnow())
    return (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.scope == scope,
            Subscription.is_active.is_(True),
            Subscription.expiry_date > now,
        )
        .first()
    )


def _scopes(path_id: str | None) -> list[str]:
    if path_id and path_id != GLOBAL_SCOPE:
        return [path_id, GLOBAL_SCOPE]
    return [GLOBAL_SCOPE]


def effective_subscription(
    db: Session,
    *,
    user_id: str,
    path_id: str | None,
    now: datetime | None = None,
) -> Subscription | None:
    """Path-scoped subscription first, then the global one.

    Tier labels that disagree with the paid amount are corrected in place.
    A record whose amount prices no plan is skipped.
    """
    for scope in _scopes(path_id):
        subscription = find_active(db, user_id=user_id, scope=scope, now=now)
        if subscription is None:
            continue
        try:
            repair_mismatch(subscription)
        except UnknownPlanAmount:
            logger.error(
                "subscription %s has amount %s outside the price table, ignoring",
                subscription.id,
                subscription.plan_amount,
            )
            continue
        if db.is_modified(subscription):
            db.add(Event(user_id=user_id, event="subscription_repaired"))
            db.commit()
        return subscription
    return None


def resolve_effective_limits(
    db: Session,
    *,
    user_id: str,
    path_id: str | None,
    now: datetime | None = None,
) -> EffectiveLimits | None:
    subscription = effective_subscription(db, user_id=user_id, path_id=path_id, now=now)
    if subscription is None:
        return None
    return EffectiveLimits(
        subscription_id=subscription.id,
        scope=subscription.scope,
        plan_type=subscription.plan_type,
        daily_chat_limit=subscription.daily_chat_limit,
        monthly_mcq_limit=subscription.monthly_mcq_limit,
        expiry_date=ensure_utc(subscription.expiry_date),
    )


def deactivate_expired(db: Session, *, now: datetime | None = None) -> int:
    """Deactivate every active subscription that expired before ``now``."""
    now = ensure_utc(now or utcnow())
    rows = db.execute(
        update(Subscription)
        .where(Subscription.is_active.is_(True), Subscription.expiry_date < now)
        .values(is_active=False, updated_at=now)
        .returning(Subscription.id, Subscription.user_id)
        .execution_options(synchronize_session=False)
    ).all()
    for _sub_id, user_id in rows:
        db.add(Event(user_id=user_id, event="subscription_expired"))
    db.commit()
    if rows:
        subscription_expired_total.inc(len(rows))
        logger.info("deactivated %d expired subscriptions", len(rows))
    return len(rows)


def consume_learning_path_save(
    db: Session,
    *,
    user_id: str,
    path_id: str | None,
    now: datetime | None = None,
) -> QuotaResult:
    """Take one learning-path save slot from the effective subscription."""
    limits = resolve_effective_limits(db, user_id=user_id, path_id=path_id, now=now)
    if limits is None:
        return QuotaResult(allowed=False, remaining=0)
    row = db.execute(
        update(Subscription)
        .where(
            Subscription.id == limits.subscription_id,
            Subscription.is_active.is_(True),
            Subscription.learning_paths_saved
            < Subscription.max_learning_paths_per_payment,
        )
        .values(learning_paths_saved=Subscription.learning_paths_saved + 1)
        .returning(
            Subscription.learning_paths_saved,
            Subscription.max_learning_paths_per_payment,
        )
        .execution_options(synchronize_session=False)
    ).first()
    db.commit()
    if row is None:
        return QuotaResult(allowed=False, remaining=0)
    saved, ceiling = row
    return QuotaResult(allowed=True, remaining=max(0, ceiling - saved))


__all__ = [
    "EffectiveLimits",
    "find_active",
    "effective_subscription",
    "resolve_effective_limits",
    "deactivate_expired",
    "consume_learning_path_save",
]
