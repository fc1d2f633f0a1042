"""
Logging configuration with multi-handler setup and structured price logging
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Generator, Optional

PRICE_LOGGER_NAME = "prices"


class PriceLogFilter(logging.Filter):
    """
    Filter to isolate price events from general logging

    Only allows log records with logger name 'prices' to pass through
    to the price-specific handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == PRICE_LOGGER_NAME


class FeedLogger:
    """
    Centralized logging system for the price feed

    Features:
    - Multi-handler logging (console, file, price-specific)
    - Automatic log rotation (size-based and time-based)
    - Structured JSON logging for received prices
    """

    def __init__(self, config: dict):
        """
        Initialize logging infrastructure

        Args:
            config: Configuration dictionary with keys:
                - log_level: str (DEBUG, INFO, WARNING, ERROR)
                - log_dir: str (directory path for log files)

        Raises:
            OSError: If log directory creation fails
        """
        self.log_level = config.get('log_level', 'INFO')
        self.log_dir = Path(config.get('log_dir', 'logs'))
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()

    def _setup_logging(self) -> None:
        """
        Configure root logger with all handlers

        Sets up:
        1. Console handler (INFO+, simple format)
        2. Rotating file handler (DEBUG+, detailed format)
        3. Price handler (INFO, JSON lines, daily rotation)
        """
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level.upper()))

        # Clear existing handlers to avoid duplicates
        root_logger.handlers.clear()

        log_format = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(log_format)
        root_logger.addHandler(console_handler)

        # 10MB max, 5 backups
        file_handler = RotatingFileHandler(
            self.log_dir / 'feed.log',
            maxBytes=10*1024*1024,
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(log_format)
        root_logger.addHandler(file_handler)

        # Prices only, daily rotation, 30-day retention
        price_handler = TimedRotatingFileHandler(
            self.log_dir / 'prices.log',
            when='midnight',
            backupCount=30
        )
        price_handler.setLevel(logging.INFO)
        price_handler.addFilter(PriceLogFilter())
        root_logger.addHandler(price_handler)

    @staticmethod
    def log_price(price: Decimal, symbol: Optional[str] = None) -> None:
        """
        Log one received price as a JSON line

        Args:
            price: Candle close price
            symbol: Trading pair, if known

        Example:
            FeedLogger.log_price(Decimal('67234.1'), 'BTC/USD')
        """
        logger = logging.getLogger(PRICE_LOGGER_NAME)
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'symbol': symbol,
            'close': str(price),
        }
        logger.info(json.dumps(log_entry))


@contextmanager
def log_execution_time(operation: str) -> Generator[None, None, None]:
    """
    Context manager for measuring and logging execution time

    Usage:
        with log_execution_time('session'):
            outcome = await handle

    Logs at DEBUG level: "{operation} completed in {elapsed:.3f}s"
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logging.debug(f"{operation} completed in {elapsed:.3f}s")
