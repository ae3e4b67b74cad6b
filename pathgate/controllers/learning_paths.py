from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pathgate.dependencies import Caller, ErrorResponse, rate_limit, run_db
from pathgate.services.unlock import chapter_access, module_access

router = APIRouter(prefix="/learning-paths")


class AccessResponse(BaseModel):
    has_access: bool
    is_locked: bool
    unlocked_count: int
    reason: str | None = None


_ERRORS = {
    401: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.get(
    "/{path_id}/modules/{module_index}/access",
    response_model=AccessResponse,
    responses=_ERRORS,
)
async def get_module_access(
    path_id: str, module_index: int, caller: Caller = Depends(rate_limit)
):
    access = await run_db(
        lambda db: module_access(
            db, user_id=caller.user_id, path_id=path_id, module_index=module_index
        )
    )
    return AccessResponse(**access._asdict())


@router.get(
    "/{path_id}/modules/{module_index}/chapters/{chapter_index}/access",
    response_model=AccessResponse,
    responses=_ERRORS,
)
async def get_chapter_access(
    path_id: str,
    module_index: int,
    chapter_index: int,
    caller: Caller = Depends(rate_limit),
):
    access = await run_db(
        lambda db: chapter_access(
            db,
            user_id=caller.user_id,
            path_id=path_id,
            module_index=module_index,
            chapter_index=chapter_index,
        )
    )
    return AccessResponse(**access._asdict())
