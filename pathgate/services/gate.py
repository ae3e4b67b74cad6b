"""Entitlement gate: the single decision point for content consumption.

Checks run in a fixed order and stop at the first failure: subscription,
then chapter unlock, then quota. Only the last step writes, so a denied
request never consumes quota. Expected outcomes are returned as ``Decision``
values; database errors propagate and mean the request could not be decided.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from sqlalchemy.orm import Session

from pathgate.metrics import (
    authorize_latency_seconds,
    entitlement_decisions_total,
    quota_reject_total,
)
from pathgate.services.clock import utcnow
from pathgate.services.content import load_learning_path, load_progress
from pathgate.services.subscriptions import (
    consume_learning_path_save,
    resolve_effective_limits,
)
from pathgate.services.unlock import (
    REASON_CHAPTER_NOT_FOUND,
    REASON_NO_SUBSCRIPTION,
    REASON_PATH_NOT_FOUND,
    CompletionRule,
    locate_chapter,
    resolve_chapter_access,
)
from pathgate.services.usage_ledger import (
    check_and_consume_daily_chat,
    check_and_consume_monthly_mcq,
    peek_usage,
)

logger = logging.getLogger(__name__)

REASON_QUOTA_EXHAUSTED = "quota exhausted"
REASON_SAVE_LIMIT = "learning path save limit reached"


class ActionKind(str, Enum):
    CHAT = "chat"
    MCQ = "mcq"


class Decision(NamedTuple):
    allowed: bool
    remaining: int
    reason: str | None = None


class UsageCounter(NamedTuple):
    used: int
    limit: int
    remaining: int


class ChapterUsageStatus(NamedTuple):
    chat: UsageCounter
    mcq: UsageCounter
    has_subscription: bool
    plan_type: str | None = None


def _outcome(decision: Decision) -> str:
    if decision.allowed:
        return "allowed"
    return (decision.reason or "denied").replace(" ", "_")


def _deny(reason: str) -> Decision:
    return Decision(allowed=False, remaining=0, reason=reason)


def _authorize(
    db: Session,
    user_id: str,
    path_id: str,
    chapter_id: str,
    action: ActionKind,
    now: datetime,
    rule: CompletionRule | None,
) -> Decision:
    limits = resolve_effective_limits(db, user_id=user_id, path_id=path_id, now=now)
    if limits is None:
        return _deny(REASON_NO_SUBSCRIPTION)

    path = load_learning_path(db, path_id)
    if path is None:
        return _deny(REASON_PATH_NOT_FOUND)
    position = locate_chapter(path, chapter_id)
    if position is None:
        return _deny(REASON_CHAPTER_NOT_FOUND)
    progress = load_progress(db, user_id=user_id, path_id=path_id)
    access = resolve_chapter_access(path, progress, *position, rule=rule)
    if not access.has_access:
        return _deny(access.reason)

    if action is ActionKind.CHAT:
        result = check_and_consume_daily_chat(
            db,
            user_id=user_id,
            chapter_id=chapter_id,
            limit=limits.daily_chat_limit,
            now=now,
        )
    else:
        result = check_and_consume_monthly_mcq(
            db,
            user_id=user_id,
            chapter_id=chapter_id,
            limit=limits.monthly_mcq_limit,
            now=now,
        )
    if not result.allowed:
        quota_reject_total.labels(action.value).inc()
        return _deny(REASON_QUOTA_EXHAUSTED)
    return Decision(allowed=True, remaining=result.remaining)


def authorize(
    db: Session,
    *,
    user_id: str,
    path_id: str,
    chapter_id: str,
    action: ActionKind | str,
    now: datetime | None = None,
    rule: CompletionRule | None = None,
) -> Decision:
    """Decide whether ``user_id`` may take ``action`` on ``chapter_id`` now."""
    action = ActionKind(action)
    start = time.perf_counter()
    try:
        decision = _authorize(db, user_id, path_id, chapter_id, action, now or utcnow(), rule)
    finally:
        authorize_latency_seconds.observe(time.perf_counter() - start)
    entitlement_decisions_total.labels(action.value, _outcome(decision)).inc()
    logger.debug(
        "authorize %s: %s",
        action.value,
        _outcome(decision),
        extra={"user_id": user_id, "path_id": path_id, "chapter_id": chapter_id},
    )
    return decision


def authorize_path_save(
    db: Session,
    *,
    user_id: str,
    path_id: str,
    now: datetime | None = None,
) -> Decision:
    """Take a learning-path save slot from the governing subscription."""
    now = now or utcnow()
    if resolve_effective_limits(db, user_id=user_id, path_id=path_id, now=now) is None:
        decision = _deny(REASON_NO_SUBSCRIPTION)
    else:
        result = consume_learning_path_save(db, user_id=user_id, path_id=path_id, now=now)
        if result.allowed:
            decision = Decision(allowed=True, remaining=result.remaining)
        else:
            decision = _deny(REASON_SAVE_LIMIT)
    entitlement_decisions_total.labels("path_save", _outcome(decision)).inc()
    return decision


def chapter_usage_status(
    db: Session,
    *,
    user_id: str,
    path_id: str | None,
    chapter_id: str,
    now: datetime | None = None,
) -> ChapterUsageStatus:
    """Current usage against ceilings for one chapter; never writes counters."""
    now = now or utcnow()
    limits = resolve_effective_limits(db, user_id=user_id, path_id=path_id, now=now)
    if limits is None:
        empty = UsageCounter(used=0, limit=0, remaining=0)
        return ChapterUsageStatus(chat=empty, mcq=empty, has_subscription=False)
    usage = peek_usage(db, user_id=user_id, chapter_id=chapter_id, now=now)
    return ChapterUsageStatus(
        chat=UsageCounter(
            used=usage.daily_chat_used,
            limit=limits.daily_chat_limit,
            remaining=max(0, limits.daily_chat_limit - usage.daily_chat_used),
        ),
        mcq=UsageCounter(
            used=usage.monthly_mcq_used,
            limit=limits.monthly_mcq_limit,
            remaining=max(0, limits.monthly_mcq_limit - usage.monthly_mcq_used),
        ),
        has_subscription=True,
        plan_type=limits.plan_type,
    )


__all__ = [
    "ActionKind",
    "Decision",
    "UsageCounter",
    "ChapterUsageStatus",
    "authorize",
    "authorize_path_save",
    "chapter_usage_status",
]
