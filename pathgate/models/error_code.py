from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in ``ErrorResponse``."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UPGRADE_REQUIRED = "UPGRADE_REQUIRED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN_PLAN_AMOUNT = "UNKNOWN_PLAN_AMOUNT"
    INVALID_PAYMENT = "INVALID_PAYMENT"
    RECONCILE_CONFLICT = "RECONCILE_CONFLICT"
    INVALID_LEARNING_PATH = "INVALID_LEARNING_PATH"


__all__ = ["ErrorCode"]
