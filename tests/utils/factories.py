from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from pathgate.models import (
    GLOBAL_SCOPE,
    ChapterProgress,
    LearningPathRecord,
    Subscription,
)
from pathgate.services.plans import plan_for_amount

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def new_id(prefix: str = "u") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def add_subscription(
    db,
    user_id: str,
    *,
    amount: int = 99,
    scope: str = GLOBAL_SCOPE,
    start: datetime | None = None,
    days: int = 30,
    is_active: bool = True,
    plan_type: str | None = None,
    **overrides,
) -> Subscription:
    """Insert a subscription directly, bypassing the reconciler."""
    plan = plan_for_amount(amount)
    start = start or NOW - timedelta(days=1)
    values = dict(
        user_id=user_id,
        scope=scope,
        plan_type=plan_type or plan.plan_type,
        plan_amount=amount,
        currency="INR",
        daily_chat_limit=plan.daily_chat_limit,
        monthly_mcq_limit=plan.monthly_mcq_limit,
        max_learning_paths_per_payment=plan.max_learning_paths_per_payment,
        learning_paths_saved=0,
        start_date=start,
        expiry_date=start + timedelta(days=days),
        is_active=is_active,
        external_payment_id=new_id("pay"),
    )
    values.update(overrides)
    sub = Subscription(**values)
    db.add(sub)
    db.commit()
    return sub


def add_path(db, modules: list[list[str]], path_id: str | None = None) -> str:
    """Store a learning path whose modules hold the given chapter ids."""
    path_id = path_id or new_id("lp")
    structure = {
        "modules": [
            {"id": f"m{i}", "title": f"Module {i}", "chapters": [{"id": c} for c in chapters]}
            for i, chapters in enumerate(modules)
        ]
    }
    db.add(LearningPathRecord(id=path_id, title="Path", structure=structure))
    db.commit()
    return path_id


def complete(db, user_id: str, path_id: str, *chapter_ids: str, score: float | None = None):
    for chapter_id in chapter_ids:
        db.merge(
            ChapterProgress(
                user_id=user_id,
                learning_path_id=path_id,
                chapter_id=chapter_id,
                completed_at=NOW - timedelta(hours=1),
                score=score,
            )
        )
    db.commit()
