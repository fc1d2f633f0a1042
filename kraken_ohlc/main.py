"""
Main entry point for the Kraken OHLC price feed.

Streams candle close prices for one pair until interrupted (SIGINT/SIGTERM),
then stops the session cooperatively.
"""

import asyncio
import logging
import signal
import sys
from decimal import Decimal
from typing import Optional

from kraken_ohlc.core.exceptions import ConfigurationError
from kraken_ohlc.core.session_controller import SessionController
from kraken_ohlc.core.transport import WebsocketTransport
from kraken_ohlc.models.event import LifecycleEvent, LifecycleEventType
from kraken_ohlc.models.session import OutcomeKind, SessionOutcome
from kraken_ohlc.utils.config import ConfigManager
from kraken_ohlc.utils.logger import FeedLogger, log_execution_time


class PriceFeedApp:
    """
    Console front-end standing in for the UI collaborator.

    Lifecycle:
        1. __init__() - Minimal constructor setup
        2. initialize() - Config, logging, controller
        3. run() - Start one session and wait for its outcome
    """

    def __init__(self, config_dir: str = "configs") -> None:
        self.config_dir = config_dir
        self.config_manager: Optional[ConfigManager] = None
        self.controller: Optional[SessionController] = None
        self.latest_price: Optional[Decimal] = None
        self.logger = logging.getLogger(__name__)

    def initialize(self) -> None:
        """
        Initialize components in dependency order.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        self.config_manager = ConfigManager(self.config_dir)
        kraken_config = self.config_manager.kraken_config

        FeedLogger(self.config_manager.logging_config.__dict__)

        self.logger.info("=" * 50)
        self.logger.info("Kraken OHLC feed starting...")
        self.logger.info(f"Endpoint: {kraken_config.ws_url}")
        self.logger.info(f"Symbol: {kraken_config.symbol}")
        self.logger.info(f"Interval: {kraken_config.interval}m")
        self.logger.info("=" * 50)

        self.controller = SessionController(
            transport_factory=lambda: WebsocketTransport(kraken_config.ws_url),
            sink=self._on_price,
            request=self.config_manager.subscription_request,
        )
        self.controller.subscribe(self._on_lifecycle_event)

    def _on_price(self, price: Decimal) -> None:
        self.latest_price = price
        FeedLogger.log_price(price, self.config_manager.kraken_config.symbol)
        self.logger.info(f"{self.config_manager.kraken_config.symbol} close: {price}")

    def _on_lifecycle_event(self, event: LifecycleEvent) -> None:
        if event.event_type is LifecycleEventType.STOPPING:
            self.logger.info("Stopping socket...")
        elif event.event_type is LifecycleEventType.STOPPED:
            self.logger.info("Socket stopped")

    async def run(self) -> SessionOutcome:
        """Run one session until it stops on its own or a signal arrives."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.controller.stop)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.controller.stop))

        with log_execution_time("ohlc session"):
            handle = self.controller.start()
            outcome = await handle

        if outcome.subscribe_error is not None:
            self.logger.warning(f"Subscribe request was not sent: {outcome.subscribe_error}")
        if outcome.error is not None:
            self.logger.error(f"Session ended with error: {outcome.error}")
        return outcome


def main() -> int:
    """
    Application entry point.

    Returns:
        0 on a clean stop, 1 on a fatal session outcome or startup failure
    """
    app = PriceFeedApp()
    try:
        app.initialize()
        outcome = asyncio.run(app.run())
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logging.error(f"Fatal error: {e}", exc_info=True)
        return 1

    return 0 if outcome.kind is OutcomeKind.CANCELLED else 1


if __name__ == '__main__':
    sys.exit(main())
