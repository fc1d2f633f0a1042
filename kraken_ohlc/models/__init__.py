"""
Data models package
"""

from .candle import Candle
from .event import LifecycleEvent, LifecycleEventType
from .message import (
    AckFailure,
    AckSuccess,
    ClassifiedMessage,
    MessageKind,
    OhlcSnapshot,
    OhlcUpdate,
    Unrecognized,
)
from .session import OutcomeKind, SessionOutcome, SessionState
from .subscription import SubscriptionParams, SubscriptionRequest

__all__ = [
    "Candle",
    "AckSuccess",
    "AckFailure",
    "OhlcSnapshot",
    "OhlcUpdate",
    "Unrecognized",
    "ClassifiedMessage",
    "MessageKind",
    "SessionState",
    "SessionOutcome",
    "OutcomeKind",
    "SubscriptionRequest",
    "SubscriptionParams",
    "LifecycleEvent",
    "LifecycleEventType",
]
