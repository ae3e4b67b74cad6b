from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from pathgate.dependencies import Caller, ErrorResponse, api_error, rate_limit, run_db
from pathgate.models import ErrorCode
from pathgate.services.clock import ensure_utc
from pathgate.services.subscriptions import effective_subscription

router = APIRouter(prefix="/subscriptions")


class SubscriptionResponse(BaseModel):
    id: int
    scope: str
    plan_type: str
    plan_amount: int
    currency: str
    daily_chat_limit: int
    monthly_mcq_limit: int
    max_learning_paths_per_payment: int
    learning_paths_saved: int
    start_date: datetime
    expiry_date: datetime


@router.get(
    "/active",
    response_model=SubscriptionResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def get_active_subscription(
    path_id: str | None = Query(None, max_length=64),
    caller: Caller = Depends(rate_limit),
):
    """Subscription that governs ``path_id`` (or the global one)."""

    def _load(db) -> SubscriptionResponse | None:
        sub = effective_subscription(db, user_id=caller.user_id, path_id=path_id)
        if sub is None:
            return None
        return SubscriptionResponse(
            id=sub.id,
            scope=sub.scope,
            plan_type=sub.plan_type,
            plan_amount=sub.plan_amount,
            currency=sub.currency,
            daily_chat_limit=sub.daily_chat_limit,
            monthly_mcq_limit=sub.monthly_mcq_limit,
            max_learning_paths_per_payment=sub.max_learning_paths_per_payment,
            learning_paths_saved=sub.learning_paths_saved,
            start_date=ensure_utc(sub.start_date),
            expiry_date=ensure_utc(sub.expiry_date),
        )

    result = await run_db(_load)
    if result is None:
        raise api_error(404, ErrorCode.NOT_FOUND, "No active subscription")
    return result
