"""
Tests for data models.
"""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from kraken_ohlc.core.exceptions import (
    RemoteClosedError,
    SubscribeFailedError,
    SubscriptionRejectedError,
)
from kraken_ohlc.models import (
    Candle,
    LifecycleEvent,
    LifecycleEventType,
    OhlcSnapshot,
    OutcomeKind,
    SessionOutcome,
    SessionState,
    SubscriptionParams,
    SubscriptionRequest,
)


class TestSubscriptionRequest:
    """Test SubscriptionRequest model"""

    def test_defaults(self):
        """Test default request is BTC/USD one-minute ohlc."""
        request = SubscriptionRequest()

        assert request.symbol == "BTC/USD"
        assert request.interval == 1
        assert request.channel == "ohlc"

    def test_wire_format(self):
        """Test the subscribe frame matches Kraken's compact JSON shape."""
        request = SubscriptionRequest("BTC/USD", 1)

        assert request.to_wire() == (
            '{"method":"subscribe","params":{"channel":"ohlc","symbol":["BTC/USD"],"interval":1}}'
        )

    def test_payload_wraps_symbol_in_list(self):
        """Test the symbol is sent as a one-element list."""
        payload = SubscriptionRequest("ETH/EUR", 15).to_payload()

        assert payload["params"]["symbol"] == ["ETH/EUR"]
        assert json.loads(SubscriptionRequest("ETH/EUR", 15).to_wire()) == payload

    def test_symbol_requires_slash(self):
        """Test symbols must be in BASE/QUOTE form."""
        with pytest.raises(ValueError, match="BASE/QUOTE"):
            SubscriptionRequest("BTCUSD", 1)

    def test_interval_must_be_positive(self):
        """Test zero or negative intervals are rejected."""
        with pytest.raises(ValueError, match="positive"):
            SubscriptionRequest("BTC/USD", 0)

    def test_immutable(self):
        """Test the request cannot be modified after construction."""
        request = SubscriptionRequest()

        with pytest.raises(AttributeError):
            request.symbol = "ETH/USD"

    def test_from_validated_params(self):
        """Test building a request from validated params normalizes the symbol."""
        params = SubscriptionParams(symbol="eth/usd", interval=60)

        request = SubscriptionRequest.from_validated_params(params)

        assert request == SubscriptionRequest("ETH/USD", 60)


class TestSubscriptionParams:
    """Test Pydantic validation of subscription parameters"""

    @pytest.mark.parametrize("interval", [1, 5, 15, 30, 60, 240, 1440, 10080, 21600])
    def test_valid_intervals(self, interval):
        """Test every Kraken interval is accepted."""
        assert SubscriptionParams(interval=interval).interval == interval

    @pytest.mark.parametrize("interval", [0, 2, 3, 120, -1])
    def test_invalid_interval(self, interval):
        """Test intervals Kraken does not offer are rejected."""
        with pytest.raises(ValidationError):
            SubscriptionParams(interval=interval)

    @pytest.mark.parametrize("symbol", ["BTCUSD", "BTC/", "/USD", "BTC-USD", "BTC/USD/EUR"])
    def test_invalid_symbol(self, symbol):
        """Test malformed pairs are rejected."""
        with pytest.raises(ValidationError):
            SubscriptionParams(symbol=symbol)


class TestCandle:
    """Test Candle model"""

    def test_close_only(self):
        """Test a Candle needs only a close price."""
        candle = Candle(close=Decimal("67000.1"))

        assert candle.close == Decimal("67000.1")
        assert candle.open is None
        assert candle.symbol is None

    def test_close_must_be_decimal(self):
        """Test float closes are refused."""
        with pytest.raises(TypeError, match="Decimal"):
            Candle(close=67000.1)

    def test_snapshot_entries_become_tuple(self):
        """Test snapshot entries are stored immutably."""
        snapshot = OhlcSnapshot(entries=[Candle(close=Decimal(1))])

        assert isinstance(snapshot.entries, tuple)


class TestSessionOutcome:
    """Test SessionOutcome model"""

    def test_cancelled_is_clean(self):
        """Test a cancelled outcome is clean and has no session error."""
        outcome = SessionOutcome(kind=OutcomeKind.CANCELLED, subscribed=True, candles_delivered=3)

        assert outcome.is_clean is True
        assert outcome.state is SessionState.STOPPED
        assert outcome.session_error is None

    def test_rejected_carries_reason(self):
        """Test a rejection exposes the exchange's reason."""
        error = SubscriptionRejectedError("Currency pair not supported")
        outcome = SessionOutcome(kind=OutcomeKind.REJECTED, error=error)

        assert outcome.is_clean is False
        assert outcome.session_error is error
        assert "Currency pair not supported" in str(outcome.session_error)

    def test_remote_closed(self):
        """Test a remote close keeps the close code."""
        outcome = SessionOutcome(
            kind=OutcomeKind.REMOTE_CLOSED,
            error=RemoteClosedError("peer went away", code=1006),
        )

        assert outcome.session_error.code == 1006

    def test_non_session_error_is_not_session_error(self):
        """Test unexpected errors are not reported as session errors."""
        outcome = SessionOutcome(kind=OutcomeKind.FAILED, error=RuntimeError("boom"))

        assert outcome.session_error is None

    def test_subscribe_error_does_not_make_outcome_unclean(self):
        """Test a failed subscribe send does not affect a clean stop."""
        outcome = SessionOutcome(
            kind=OutcomeKind.CANCELLED,
            subscribe_error=SubscribeFailedError("send failed"),
        )

        assert outcome.is_clean is True


class TestLifecycleEvent:
    """Test LifecycleEvent model"""

    def test_stopped_event_carries_outcome(self):
        """Test STOPPED events carry the outcome and a UTC timestamp."""
        outcome = SessionOutcome(kind=OutcomeKind.CANCELLED)
        event = LifecycleEvent(event_type=LifecycleEventType.STOPPED, outcome=outcome)

        assert event.outcome is outcome
        assert event.timestamp.tzinfo is not None
        assert event.source is None
