"""
Candlestick data model
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Candle:
    """
    One OHLC data point from the Kraken ohlc channel.

    Only the closing price is consumed by the feed; the remaining fields are
    carried through when the exchange sends them.

    Attributes:
        close: Closing/current price
        symbol: Trading pair (e.g., 'BTC/USD')
        open: Opening price
        high: Highest price in period
        low: Lowest price in period
        volume: Trading volume in base asset
        interval_begin: RFC3339 timestamp of the interval start
    """

    close: Decimal
    symbol: Optional[str] = None
    open: Optional[Decimal] = None
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    volume: Optional[Decimal] = None
    interval_begin: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate close price type."""
        if not isinstance(self.close, Decimal):
            raise TypeError(f"close must be Decimal, got {type(self.close).__name__}")
