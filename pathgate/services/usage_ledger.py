"""Daily chat and monthly MCQ counters per user and chapter.

Check-and-increment is a single conditional upsert: the row is only updated
while its period is stale or ``used < limit``, so two concurrent requests can
never both take the last slot. A stale period resets the counter to 1 instead
of accumulating.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import NamedTuple

from sqlalchemy import text
from sqlalchemy.orm import Session

from pathgate.models import ChatUsage, McqUsage
from pathgate.services.clock import day_key, month_key, utcnow

logger = logging.getLogger(__name__)


class QuotaResult(NamedTuple):
    allowed: bool
    remaining: int


class UsageSnapshot(NamedTuple):
    daily_chat_used: int
    monthly_mcq_used: int


_CHAT_CONSUME = text(
    "INSERT INTO chat_usage (user_id, chapter_id, period_key, used, updated_at) "
    "VALUES (:uid, :cid, :period, 1, CURRENT_TIMESTAMP) "
    "ON CONFLICT (user_id, chapter_id) DO UPDATE "
    "SET used = CASE WHEN chat_usage.period_key = excluded.period_key "
    "THEN chat_usage.used + 1 ELSE 1 END, "
    "period_key = excluded.period_key, "
    "updated_at = CURRENT_TIMESTAMP "
    "WHERE chat_usage.period_key <> excluded.period_key "
    "OR chat_usage.used < :limit "
    "RETURNING used"
)

_MCQ_CONSUME = text(
    "INSERT INTO mcq_usage (user_id, chapter_id, year, month, used, updated_at) "
    "VALUES (:uid, :cid, :year, :month, 1, CURRENT_TIMESTAMP) "
    "ON CONFLICT (user_id, chapter_id) DO UPDATE "
    "SET used = CASE WHEN mcq_usage.year = excluded.year "
    "AND mcq_usage.month = excluded.month "
    "THEN mcq_usage.used + 1 ELSE 1 END, "
    "year = excluded.year, "
    "month = excluded.month, "
    "updated_at = CURRENT_TIMESTAMP "
    "WHERE mcq_usage.year <> excluded.year "
    "OR mcq_usage.month <> excluded.month "
    "OR mcq_usage.used < :limit "
    "RETURNING used"
)


def _consume(db: Session, stmt, params: dict, limit: int) -> QuotaResult:
    if limit <= 0:
        return QuotaResult(allowed=False, remaining=0)
    row = db.execute(stmt, {**params, "limit": limit}).first()
    db.commit()
    if row is None:
        return QuotaResult(allowed=False, remaining=0)
    return QuotaResult(allowed=True, remaining=max(0, limit - int(row[0])))


def check_and_consume_daily_chat(
    db: Session,
    *,
    user_id: str,
    chapter_id: str,
    limit: int,
    now: datetime | None = None,
) -> QuotaResult:
    """Take one chat turn for today if ``limit`` allows it."""
    period = day_key(now or utcnow())
    result = _consume(
        db,
        _CHAT_CONSUME,
        {"uid": user_id, "cid": chapter_id, "period": period},
        limit,
    )
    if not result.allowed:
        logger.info(
            "daily chat quota exhausted",
            extra={"user_id": user_id, "chapter_id": chapter_id, "period": period},
        )
    return result


def check_and_consume_monthly_mcq(
    db: Session,
    *,
    user_id: str,
    chapter_id: str,
    limit: int,
    now: datetime | None = None,
) -> QuotaResult:
    """Take one MCQ generation for this month if ``limit`` allows it."""
    year, month = month_key(now or utcnow())
    result = _consume(
        db,
        _MCQ_CONSUME,
        {"uid": user_id, "cid": chapter_id, "year": year, "month": month},
        limit,
    )
    if not result.allowed:
        logger.info(
            "monthly mcq quota exhausted",
            extra={"user_id": user_id, "chapter_id": chapter_id, "period": f"{year}-{month:02d}"},
        )
    return result


def peek_usage(
    db: Session,
    *,
    user_id: str,
    chapter_id: str,
    now: datetime | None = None,
) -> UsageSnapshot:
    """Return current-period usage without touching the counters."""
    now = now or utcnow()
    key = {"user_id": user_id, "chapter_id": chapter_id}

    chat = db.get(ChatUsage, key, populate_existing=True)
    chat_used = chat.used if chat and chat.period_key == day_key(now) else 0

    mcq = db.get(McqUsage, key, populate_existing=True)
    mcq_used = (
        mcq.used if mcq and (mcq.year, mcq.month) == month_key(now) else 0
    )
    return UsageSnapshot(daily_chat_used=chat_used or 0, monthly_mcq_used=mcq_used or 0)


__all__ = [
    "QuotaResult",
    "UsageSnapshot",
    "check_and_consume_daily_chat",
    "check_and_consume_monthly_mcq",
    "peek_usage",
]
