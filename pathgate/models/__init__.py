from .base import Base
from .error_code import ErrorCode
from .event import Event
from .learning_path import ChapterProgress, LearningPathRecord
from .payment import Payment
from .subscription import GLOBAL_SCOPE, Subscription
from .usage import ChatUsage, McqUsage

__all__ = [
    "Base",
    "ErrorCode",
    "Event",
    "ChapterProgress",
    "LearningPathRecord",
    "Payment",
    "GLOBAL_SCOPE",
    "Subscription",
    "ChatUsage",
    "McqUsage",
]
