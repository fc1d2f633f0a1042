"""
Subscription request model
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

OHLC_CHANNEL = "ohlc"

# Interval lengths (minutes) accepted by the Kraken v2 ohlc channel
VALID_INTERVALS = (1, 5, 15, 30, 60, 240, 1440, 10080, 21600)


class SubscriptionParams(BaseModel):
    """Pydantic schema for ohlc subscription parameters."""

    symbol: str = Field("BTC/USD", pattern=r"^[A-Za-z0-9]+/[A-Za-z0-9]+$", description="BASE/QUOTE pair")
    interval: int = Field(1, description="Candle interval in minutes")

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        return value.upper()

    @field_validator("interval")
    @classmethod
    def _known_interval(cls, value: int) -> int:
        if value not in VALID_INTERVALS:
            raise ValueError(f"interval must be one of {list(VALID_INTERVALS)}, got {value}")
        return value


@dataclass(frozen=True)
class SubscriptionRequest:
    """
    One ohlc subscription, built once per session start.

    Attributes:
        symbol: Trading pair in BASE/QUOTE form (e.g., 'BTC/USD')
        interval: Candle interval in minutes
        channel: Always 'ohlc'
    """

    symbol: str = "BTC/USD"
    interval: int = 1
    channel: str = field(default=OHLC_CHANNEL, init=False)

    def __post_init__(self) -> None:
        if "/" not in self.symbol:
            raise ValueError(f"symbol must be BASE/QUOTE, got {self.symbol!r}")
        if self.interval < 1:
            raise ValueError(f"interval must be positive, got {self.interval}")

    @classmethod
    def from_validated_params(cls, params: SubscriptionParams) -> "SubscriptionRequest":
        """Create instance from Pydantic-validated params."""
        return cls(**params.model_dump())

    def to_payload(self) -> Dict[str, Any]:
        return {
            "method": "subscribe",
            "params": {
                "channel": self.channel,
                "symbol": [self.symbol],
                "interval": self.interval,
            },
        }

    def to_wire(self) -> str:
        """Render the subscribe request as a JSON text frame."""
        return json.dumps(self.to_payload(), separators=(",", ":"))
