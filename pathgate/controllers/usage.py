from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from pathgate.dependencies import Caller, ErrorResponse, rate_limit, run_db
from pathgate.services.gate import chapter_usage_status

router = APIRouter(prefix="/usage")


class CounterResponse(BaseModel):
    used: int
    limit: int
    remaining: int


class ChapterUsageResponse(BaseModel):
    chat: CounterResponse
    mcq: CounterResponse
    has_subscription: bool
    plan_type: str | None = None


@router.get(
    "/chapter-status",
    response_model=ChapterUsageResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def get_chapter_status(
    chapter_id: str = Query(..., min_length=1, max_length=64),
    path_id: str | None = Query(None, max_length=64),
    caller: Caller = Depends(rate_limit),
):
    status = await run_db(
        lambda db: chapter_usage_status(
            db, user_id=caller.user_id, path_id=path_id, chapter_id=chapter_id
        )
    )
    return ChapterUsageResponse(
        chat=CounterResponse(**status.chat._asdict()),
        mcq=CounterResponse(**status.mcq._asdict()),
        has_subscription=status.has_subscription,
        plan_type=status.plan_type,
    )
