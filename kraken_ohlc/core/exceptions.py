"""
Custom exceptions for the price feed
"""

from typing import Optional


class PriceFeedError(Exception):
    """Base exception for price feed errors"""


class ConfigurationError(PriceFeedError):
    """Configuration related errors"""


class ParseError(PriceFeedError):
    """A single inbound frame could not be classified"""


class MalformedFrameError(ParseError):
    """Frame is not a UTF-8 JSON object"""


class MissingFieldError(ParseError):
    """Required field absent or of the wrong type"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class TransportClosedError(PriceFeedError):
    """Inbound stream ended (peer closed the connection or the link dropped)"""

    def __init__(
        self,
        message: str = "transport closed",
        code: Optional[int] = None,
        reason: Optional[str] = None,
        clean: bool = True,
    ):
        super().__init__(message)
        self.code = code
        self.reason = reason
        self.clean = clean


class SessionError(PriceFeedError):
    """Subscription session errors"""


class ConnectFailedError(SessionError):
    """Transport refused the handshake"""


class SubscribeFailedError(SessionError):
    """Subscribe request could not be sent (non-fatal)"""


class SubscriptionRejectedError(SessionError):
    """Exchange answered the subscribe request with success=false"""

    def __init__(self, reason: str = ""):
        super().__init__(f"Subscription rejected: {reason or 'no reason given'}")
        self.reason = reason


class RemoteClosedError(SessionError):
    """Peer ended the stream before cancellation"""

    def __init__(
        self,
        message: str = "Remote closed the stream",
        code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.reason = reason


class CloseFailedError(SessionError):
    """Close handshake failed (logged only)"""


class AlreadyRunningError(PriceFeedError):
    """start() called while a session is active"""
