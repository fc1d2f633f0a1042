"""
Session state and terminal outcome models
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from kraken_ohlc.core.exceptions import SessionError, SubscribeFailedError


class SessionState(Enum):
    """Lifecycle states of one subscription session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    STOPPING = "stopping"
    STOPPED = "stopped"


class OutcomeKind(Enum):
    """Which path terminated the session."""

    CANCELLED = "cancelled"  # Stop requested by controller
    CONNECT_FAILED = "connect_failed"
    REJECTED = "rejected"  # AckFailure from exchange
    REMOTE_CLOSED = "remote_closed"  # Stream ended or link dropped
    ABORTED = "aborted"  # asyncio task cancelled from outside
    FAILED = "failed"  # Unexpected error inside the session


@dataclass(frozen=True)
class SessionOutcome:
    """
    Immutable terminal report of one session.

    Attributes:
        kind: Terminal path taken
        error: Fatal error that ended the session, None for clean stops
        subscribed: Whether an AckSuccess was ever received
        subscribe_error: Non-fatal failure to send the subscribe request
        candles_delivered: Prices handed to the sink
        parse_errors: Frames dropped because they could not be parsed
    """

    kind: OutcomeKind
    error: Optional[Exception] = None
    subscribed: bool = False
    subscribe_error: Optional[SubscribeFailedError] = None
    candles_delivered: int = 0
    parse_errors: int = 0

    @property
    def state(self) -> SessionState:
        """Every outcome is reported from the STOPPED state."""
        return SessionState.STOPPED

    @property
    def is_clean(self) -> bool:
        """True if the session ended because it was asked to."""
        return self.kind is OutcomeKind.CANCELLED

    @property
    def session_error(self) -> Optional[SessionError]:
        return self.error if isinstance(self.error, SessionError) else None
