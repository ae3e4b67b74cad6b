from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from pathgate.dependencies import Caller, ErrorResponse, rate_limit, run_db
from pathgate.services.gate import ActionKind, authorize, authorize_path_save

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entitlements")


class AuthorizeRequest(BaseModel):
    path_id: str = Field(min_length=1, max_length=64)
    chapter_id: str = Field(min_length=1, max_length=64)
    action: ActionKind


class PathSaveRequest(BaseModel):
    path_id: str = Field(min_length=1, max_length=64)


class DecisionResponse(BaseModel):
    allowed: bool
    remaining: int
    reason: str | None = None


_ERRORS = {
    401: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("/authorize", response_model=DecisionResponse, responses=_ERRORS)
async def authorize_action(body: AuthorizeRequest, caller: Caller = Depends(rate_limit)):
    decision = await run_db(
        lambda db: authorize(
            db,
            user_id=caller.user_id,
            path_id=body.path_id,
            chapter_id=body.chapter_id,
            action=body.action,
        )
    )
    return DecisionResponse(**decision._asdict())


@router.post("/path-save", response_model=DecisionResponse, responses=_ERRORS)
async def save_learning_path(body: PathSaveRequest, caller: Caller = Depends(rate_limit)):
    decision = await run_db(
        lambda db: authorize_path_save(db, user_id=caller.user_id, path_id=body.path_id)
    )
    if decision.allowed:
        logger.info(
            "learning path save granted",
            extra={"user_id": caller.user_id, "path_id": body.path_id},
        )
    return DecisionResponse(**decision._asdict())
