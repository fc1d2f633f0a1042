"""
Envelope parser for Kraken v2 websocket frames.

Turns one raw text frame into a ClassifiedMessage. Parse failures raise
ParseError subclasses that are scoped to the single frame; the caller decides
whether to drop the frame and keep streaming.
"""

import json
from decimal import Decimal
from typing import Any, Dict, Optional, Union

import simplejson

from kraken_ohlc.core.exceptions import MalformedFrameError, MissingFieldError
from kraken_ohlc.models.candle import Candle
from kraken_ohlc.models.message import (
    AckFailure,
    AckSuccess,
    ClassifiedMessage,
    OhlcSnapshot,
    OhlcUpdate,
    Unrecognized,
)
from kraken_ohlc.models.subscription import OHLC_CHANNEL

_OPTIONAL_PRICE_FIELDS = ("open", "high", "low", "volume")


def _decode(raw: Union[str, bytes]) -> Dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedFrameError(f"Frame is not valid UTF-8: {e}") from e

    try:
        # Decimal keeps exchange prices exact
        payload = json.loads(raw, parse_float=Decimal)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedFrameError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedFrameError(
            f"Frame must be a JSON object, got {type(payload).__name__}"
        )
    return payload


def _to_decimal(value: Any) -> Optional[Decimal]:
    # bool is an int subclass but never a price
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    return None


def _parse_candle(entry: Any) -> Candle:
    if not isinstance(entry, dict):
        raise MissingFieldError(
            f"Candle entry must be an object, got {type(entry).__name__}", field="data"
        )

    if "close" not in entry:
        raise MissingFieldError("Candle entry missing 'close'", field="close")

    close = _to_decimal(entry["close"])
    if close is None:
        raise MissingFieldError(
            f"Candle 'close' is not numeric: {entry['close']!r}", field="close"
        )

    # Extra fields are carried through only when well-typed
    extras: Dict[str, Any] = {
        name: _to_decimal(entry.get(name)) for name in _OPTIONAL_PRICE_FIELDS
    }
    symbol = entry.get("symbol")
    interval_begin = entry.get("interval_begin")

    return Candle(
        close=close,
        symbol=symbol if isinstance(symbol, str) else None,
        interval_begin=interval_begin if isinstance(interval_begin, str) else None,
        **extras,
    )


def _data_array(payload: Dict[str, Any]) -> list:
    data = payload.get("data")
    if not isinstance(data, list):
        raise MissingFieldError("ohlc message missing 'data' array", field="data")
    return data


def classify(raw: Union[str, bytes]) -> ClassifiedMessage:
    """
    Classify one inbound frame.

    Rules, in priority order:
        1. success is true  -> AckSuccess
        2. success is false -> AckFailure(reason=error)
        3. ohlc snapshot    -> OhlcSnapshot (one Candle per data element)
        4. ohlc update      -> OhlcUpdate (first data element)
        5. otherwise        -> Unrecognized

    Args:
        raw: Text frame (bytes are decoded as UTF-8)

    Returns:
        The classified message

    Raises:
        MalformedFrameError: Frame is not a UTF-8 JSON object
        MissingFieldError: ohlc frame without usable data/close fields
    """
    payload = _decode(raw)

    success = payload.get("success")
    if success is True:
        return AckSuccess()
    if success is False:
        error = payload.get("error")
        return AckFailure(reason=error if isinstance(error, str) else "")

    if payload.get("channel") != OHLC_CHANNEL:
        return Unrecognized()

    message_type = payload.get("type")
    if message_type == "snapshot":
        return OhlcSnapshot(entries=tuple(_parse_candle(e) for e in _data_array(payload)))

    if message_type == "update":
        data = _data_array(payload)
        if not data:
            raise MissingFieldError("ohlc update has empty 'data' array", field="data")
        return OhlcUpdate(entry=_parse_candle(data[0]))

    return Unrecognized()


def _candle_to_dict(candle: Candle) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"close": candle.close}
    if candle.symbol is not None:
        entry["symbol"] = candle.symbol
    for name in _OPTIONAL_PRICE_FIELDS:
        value = getattr(candle, name)
        if value is not None:
            entry[name] = value
    if candle.interval_begin is not None:
        entry["interval_begin"] = candle.interval_begin
    return entry


def serialize(message: ClassifiedMessage) -> str:
    """
    Render a classified message in the inbound wire shape.

    Used by tests and replay tooling; classify(serialize(m)) == m holds for
    every variant.
    """
    if isinstance(message, AckSuccess):
        payload: Dict[str, Any] = {"method": "subscribe", "success": True}
    elif isinstance(message, AckFailure):
        payload = {"method": "subscribe", "success": False, "error": message.reason}
    elif isinstance(message, OhlcSnapshot):
        payload = {
            "channel": OHLC_CHANNEL,
            "type": "snapshot",
            "data": [_candle_to_dict(c) for c in message.entries],
        }
    elif isinstance(message, OhlcUpdate):
        payload = {
            "channel": OHLC_CHANNEL,
            "type": "update",
            "data": [_candle_to_dict(message.entry)],
        }
    elif isinstance(message, Unrecognized):
        payload = {"channel": "heartbeat"}
    else:
        raise TypeError(f"Cannot serialize {type(message).__name__}")

    # simplejson writes Decimal as a bare JSON number without going through float
    return simplejson.dumps(payload, use_decimal=True)
