"""
Classified inbound messages

Each inbound envelope is reduced to exactly one of the variants below.
Variants compare by value and carry no identity beyond tag and payload.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Union

from .candle import Candle


class MessageKind(Enum):
    """Tag of a classified message."""

    ACK_SUCCESS = "ack_success"
    ACK_FAILURE = "ack_failure"
    OHLC_SNAPSHOT = "ohlc_snapshot"
    OHLC_UPDATE = "ohlc_update"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class AckSuccess:
    """Subscribe request accepted."""

    kind: MessageKind = field(default=MessageKind.ACK_SUCCESS, init=False)


@dataclass(frozen=True)
class AckFailure:
    """Subscribe request rejected; reason is the exchange's error text."""

    reason: str = ""
    kind: MessageKind = field(default=MessageKind.ACK_FAILURE, init=False)


@dataclass(frozen=True)
class OhlcSnapshot:
    """Initial batch of candles, in exchange order."""

    entries: Tuple[Candle, ...] = ()
    kind: MessageKind = field(default=MessageKind.OHLC_SNAPSHOT, init=False)

    def __post_init__(self) -> None:
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "entries", tuple(self.entries))


@dataclass(frozen=True)
class OhlcUpdate:
    """Single candle update."""

    entry: Candle
    kind: MessageKind = field(default=MessageKind.OHLC_UPDATE, init=False)


@dataclass(frozen=True)
class Unrecognized:
    """Anything else (heartbeats, status, other channels)."""

    kind: MessageKind = field(default=MessageKind.UNRECOGNIZED, init=False)


ClassifiedMessage = Union[AckSuccess, AckFailure, OhlcSnapshot, OhlcUpdate, Unrecognized]
