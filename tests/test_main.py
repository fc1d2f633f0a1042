"""
Unit tests for PriceFeedApp and the main() entry point.
"""

import asyncio
import signal
from decimal import Decimal
from unittest.mock import patch

import pytest

from kraken_ohlc.core.exceptions import ConfigurationError
from kraken_ohlc.core.session_controller import SessionController
from kraken_ohlc.main import PriceFeedApp, main
from kraken_ohlc.models.session import OutcomeKind, SessionOutcome
from kraken_ohlc.models.subscription import SubscriptionRequest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("KRAKEN_WS_URL", "KRAKEN_SYMBOL", "KRAKEN_INTERVAL", "LOG_LEVEL", "LOG_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "feed_config.ini").write_text(
        "[kraken]\nsymbol = ETH/USD\ninterval = 5\n"
        f"[logging]\nlog_level = INFO\nlog_dir = {tmp_path / 'logs'}\n"
    )
    return tmp_path


@pytest.fixture
def app(config_dir):
    with patch("kraken_ohlc.main.FeedLogger") as mock_logger:
        app = PriceFeedApp(str(config_dir))
        app.initialize()
        app.mock_feed_logger = mock_logger
        yield app


def remove_signal_handlers():
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.remove_signal_handler(sig)


class TestPriceFeedAppConstructor:
    """Tests for PriceFeedApp.__init__() method."""

    def test_constructor_is_lightweight(self):
        """Test __init__ performs no I/O and leaves components unset."""
        app = PriceFeedApp()

        assert app.config_manager is None
        assert app.controller is None
        assert app.latest_price is None


class TestPriceFeedAppInitialization:
    """Tests for PriceFeedApp.initialize() method."""

    def test_initialize_builds_controller_from_config(self, app, config_dir):
        """Test initialize() wires logging and the controller from config."""
        assert isinstance(app.controller, SessionController)
        assert app.controller.default_request == SubscriptionRequest("ETH/USD", 5)
        app.mock_feed_logger.assert_called_once_with(
            {"log_level": "INFO", "log_dir": str(config_dir / "logs")}
        )

    def test_initialize_propagates_configuration_error(self, tmp_path):
        """Test invalid config aborts initialize()."""
        (tmp_path / "feed_config.ini").write_text("[kraken]\nws_url = http://nope\n")
        app = PriceFeedApp(str(tmp_path))

        with patch("kraken_ohlc.main.FeedLogger"):
            with pytest.raises(ConfigurationError):
                app.initialize()

    def test_price_callback(self, app):
        """Test each price is stored and written to the price log."""
        app._on_price(Decimal("3012.55"))

        assert app.latest_price == Decimal("3012.55")
        app.mock_feed_logger.log_price.assert_called_once_with(Decimal("3012.55"), "ETH/USD")


class TestPriceFeedAppRun:
    """Tests for PriceFeedApp.run()."""

    @pytest.mark.asyncio
    async def test_run_until_stopped(self, app, make_transport, frames):
        """Test run() streams prices until stop() and returns CANCELLED."""
        transport = make_transport().feed(frames.ack(), frames.update(3000.5))
        app.controller.transport_factory = lambda: transport

        asyncio.get_running_loop().call_later(0.05, app.controller.stop)
        try:
            outcome = await asyncio.wait_for(app.run(), timeout=2.0)
        finally:
            remove_signal_handlers()

        assert outcome.kind is OutcomeKind.CANCELLED
        assert app.latest_price == Decimal("3000.5")
        assert transport.close_calls == 1

    @pytest.mark.asyncio
    async def test_run_returns_remote_close(self, app, make_transport, frames):
        """Test run() returns when the peer ends the stream."""
        transport = make_transport().feed(frames.ack()).end()
        app.controller.transport_factory = lambda: transport

        try:
            outcome = await asyncio.wait_for(app.run(), timeout=2.0)
        finally:
            remove_signal_handlers()

        assert outcome.kind is OutcomeKind.REMOTE_CLOSED
        assert app.latest_price is None


class TestMain:
    """Tests for the main() exit code."""

    @patch("kraken_ohlc.main.asyncio.run")
    @patch("kraken_ohlc.main.PriceFeedApp")
    def test_clean_stop_exits_zero(self, mock_app_cls, mock_run):
        """Test a cancelled session exits with status 0."""
        mock_run.return_value = SessionOutcome(kind=OutcomeKind.CANCELLED)

        assert main() == 0
        mock_app_cls.return_value.initialize.assert_called_once()

    @patch("kraken_ohlc.main.asyncio.run")
    @patch("kraken_ohlc.main.PriceFeedApp")
    def test_fatal_outcome_exits_one(self, mock_app_cls, mock_run):
        """Test a fatal session outcome exits with status 1."""
        mock_run.return_value = SessionOutcome(kind=OutcomeKind.CONNECT_FAILED)

        assert main() == 1

    @patch("kraken_ohlc.main.PriceFeedApp")
    def test_configuration_error_exits_one(self, mock_app_cls):
        """Test a configuration error exits with status 1 without running."""
        mock_app_cls.return_value.initialize.side_effect = ConfigurationError("bad config")

        assert main() == 1
        mock_app_cls.return_value.run.assert_not_called()

    @patch("kraken_ohlc.main.PriceFeedApp")
    def test_unexpected_error_exits_one(self, mock_app_cls):
        """Test any other startup error exits with status 1."""
        mock_app_cls.return_value.initialize.side_effect = OSError("disk full")

        assert main() == 1
