from __future__ import annotations

import asyncio
import logging
from typing import Callable, NamedTuple, TypeVar

import redis.asyncio as redis
from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pathgate import db as db_module
from pathgate.config import Settings
from pathgate.errors import (
    InvalidPaymentEvent,
    LearningPathStructureError,
    ReconcileConflict,
    UnknownPlanAmount,
)
from pathgate.models import ErrorCode

settings = Settings()
redis_client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorResponse(BaseModel):
    code: str
    message: str


class Caller(NamedTuple):
    """Identity asserted by the upstream identity service."""

    user_id: str
    role: str | None = None


def api_error(status_code: int, code: ErrorCode, message: str) -> HTTPException:
    err = ErrorResponse(code=code, message=message)
    return HTTPException(status_code=status_code, detail=err.model_dump())


async def require_api_headers(
    x_api_key: str = Header(..., alias="X-API-Key"),
    x_api_ver: str | None = Header(None, alias="X-API-Ver"),
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_user_role: str | None = Header(None, alias="X-User-Role"),
) -> Caller:
    if x_api_ver is None:
        raise api_error(426, ErrorCode.UPGRADE_REQUIRED, "Missing API version")

    if x_api_ver != "v1":
        raise api_error(426, ErrorCode.UPGRADE_REQUIRED, "Invalid API version")

    if x_api_key != settings.api_key:
        raise api_error(401, ErrorCode.UNAUTHORIZED, "Invalid API key")

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise api_error(401, ErrorCode.UNAUTHORIZED, "Missing user ID")
    if len(user_id) > 64:
        raise api_error(400, ErrorCode.BAD_REQUEST, "User ID too long")

    return Caller(user_id=user_id, role=x_user_role)


def client_ip(request: Request) -> str:
    """Client address, honouring X-Forwarded-For only through trusted proxies."""
    client_host = request.client.host if request.client else ""
    ip = client_host
    xff = request.headers.get("X-Forwarded-For")
    if xff and client_host in settings.trusted_proxies:
        forwarded = [h.strip() for h in xff.split(",") if h.strip()]
        proxies = forwarded[1:] + [client_host]
        if forwarded and all(p in settings.trusted_proxies for p in proxies):
            ip = forwarded[0]
    return ip


async def _throttle(keys: list[str]) -> list[int]:
    try:
        pipe = redis_client.pipeline()
        for key in keys:
            pipe.incr(key)
            pipe.expire(key, 60)
        results = await pipe.execute()
    except RedisError as exc:
        logger.exception("Redis unavailable for rate limiting: %s", exc)
        err = ErrorResponse(
            code=ErrorCode.SERVICE_UNAVAILABLE, message="Rate limiter unavailable"
        )
        raise HTTPException(status_code=503, detail=err.model_dump()) from exc
    return results[::2]


async def rate_limit(
    request: Request, caller: Caller = Depends(require_api_headers)
) -> Caller:
    """Throttle requests by IP and user via Redis."""
    ip_count, user_count = await _throttle(
        [f"rate:ip:{client_ip(request)}", f"rate:user:{caller.user_id}"]
    )
    if ip_count > settings.rate_limit_ip or user_count > settings.rate_limit_user:
        raise api_error(429, ErrorCode.TOO_MANY_REQUESTS, "Rate limit exceeded")
    return caller


async def rate_limit_ip(request: Request) -> str:
    """Per-IP throttle for callers without a user identity (payment webhooks)."""
    ip = client_ip(request)
    (ip_count,) = await _throttle([f"rate:ip:{ip}"])
    if ip_count > settings.rate_limit_ip:
        raise api_error(429, ErrorCode.TOO_MANY_REQUESTS, "Rate limit exceeded")
    return ip


async def run_db(func: Callable[[Session], T]) -> T:
    """Run ``func`` with a fresh session in a worker thread.

    Domain errors become client errors. Storage faults become 503: the
    request could not be decided, which is not the same as a deny.
    """

    def _db_call() -> T:
        with db_module.SessionLocal() as db:
            return func(db)

    try:
        return await asyncio.to_thread(_db_call)
    except UnknownPlanAmount as exc:
        raise api_error(422, ErrorCode.UNKNOWN_PLAN_AMOUNT, str(exc)) from exc
    except InvalidPaymentEvent as exc:
        raise api_error(400, ErrorCode.INVALID_PAYMENT, str(exc)) from exc
    except ReconcileConflict as exc:
        raise api_error(409, ErrorCode.RECONCILE_CONFLICT, str(exc)) from exc
    except LearningPathStructureError as exc:
        logger.error("malformed learning path: %s", exc)
        raise api_error(422, ErrorCode.INVALID_LEARNING_PATH, str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("storage error, request left undecided")
        raise api_error(
            503, ErrorCode.SERVICE_UNAVAILABLE, "Storage unavailable, unable to decide"
        ) from exc
