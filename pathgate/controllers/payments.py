from __future__ import annotations

import hmac
import json
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel, ValidationError

from pathgate.config import Settings
from pathgate.dependencies import (
    ErrorResponse,
    api_error,
    rate_limit_ip,
    run_db,
)
from pathgate.metrics import webhook_forbidden_total
from pathgate.models import ErrorCode
from pathgate.services.clock import ensure_utc
from pathgate.services.hmac import compute_signature, verify_hmac
from pathgate.services.reconciler import PaymentEvent, apply_completed_payment

settings = Settings()
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments")


class PaymentWebhook(PaymentEvent):
    status: str = "completed"
    signature: str


class WebhookResponse(BaseModel):
    status: str
    subscription_id: int | None = None
    plan_type: str | None = None
    scope: str | None = None
    expiry_date: datetime | None = None


def _forbidden(message: str):
    webhook_forbidden_total.inc()
    return api_error(403, ErrorCode.FORBIDDEN, message)


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def payments_webhook(
    request: Request,
    client_ip: str = Depends(rate_limit_ip),
    x_sign: str | None = Header(None, alias="X-Sign"),
):
    """Apply a payment-completion event; safe to deliver more than once."""
    if client_ip not in settings.payment_ips:
        logger.warning("audit: forbidden ip %s", client_ip)
        raise _forbidden("IP address forbidden")

    raw_body = await request.body()
    if settings.secure_webhook and not verify_hmac(
        x_sign or "", raw_body, settings.hmac_secret
    ):
        logger.warning("audit: invalid webhook signature")
        raise _forbidden("Invalid webhook signature")

    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("audit: malformed webhook body")
        raise api_error(400, ErrorCode.BAD_REQUEST, "Malformed JSON body") from exc
    if not isinstance(data, dict):
        logger.warning("audit: non-object webhook payload")
        raise api_error(400, ErrorCode.BAD_REQUEST, "Payload must be a JSON object")

    provided_sign = data.pop("signature", "")
    if not isinstance(provided_sign, str):
        provided_sign = ""
    expected_sign = compute_signature(settings.hmac_secret, data)
    if not hmac.compare_digest(provided_sign, expected_sign):
        logger.warning("audit: invalid payload signature")
        raise _forbidden("Invalid payload signature")

    try:
        body = PaymentWebhook(**data, signature=provided_sign)
    except ValidationError as exc:
        raise api_error(400, ErrorCode.BAD_REQUEST, "Invalid webhook payload") from exc

    if body.status != "completed":
        logger.info(
            "audit: payment %s with status %s ignored",
            body.external_payment_id,
            body.status,
        )
        return WebhookResponse(status="ignored")

    event = PaymentEvent(**body.model_dump(exclude={"status", "signature"}))

    def _apply(db) -> WebhookResponse:
        sub = apply_completed_payment(db, event)
        return WebhookResponse(
            status="applied",
            subscription_id=sub.id,
            plan_type=sub.plan_type,
            scope=sub.scope,
            expiry_date=ensure_utc(sub.expiry_date),
        )

    return await run_db(_apply)
