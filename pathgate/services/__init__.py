from .gate import ActionKind, Decision, authorize, authorize_path_save, chapter_usage_status
from .reconciler import PaymentEvent, apply_completed_payment

__all__ = [
    "ActionKind",
    "Decision",
    "authorize",
    "authorize_path_save",
    "chapter_usage_status",
    "PaymentEvent",
    "apply_completed_payment",
]
