"""
Lifecycle notification model
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .session import SessionOutcome


class LifecycleEventType(Enum):
    """Controller lifecycle notifications consumed by the UI layer."""

    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LifecycleEvent:
    """
    Notification emitted by SessionController.

    STARTED and STOPPING carry no payload; STOPPED carries the session outcome.
    Notifications are informational only and never drive protocol logic.

    Attributes:
        event_type: Type of notification
        outcome: Terminal outcome (STOPPED only)
        timestamp: Emission time (UTC)
        source: Component that emitted the notification
    """

    event_type: LifecycleEventType
    outcome: Optional[SessionOutcome] = None
    timestamp: datetime = field(default_factory=_utcnow)
    source: Optional[str] = None
