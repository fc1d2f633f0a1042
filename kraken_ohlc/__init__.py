"""
Kraken OHLC cancellable price feed
Main package initialization
"""

__version__ = "0.1.0"

from kraken_ohlc.core.session_controller import SessionController
from kraken_ohlc.utils.config import ConfigManager
from kraken_ohlc.utils.logger import FeedLogger

__all__ = ["SessionController", "ConfigManager", "FeedLogger"]
