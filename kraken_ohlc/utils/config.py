"""
Configuration management with INI/YAML files and environment overrides

Priority: ENV > YAML > INI > defaults
"""

import logging
import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from kraken_ohlc.core.exceptions import ConfigurationError
from kraken_ohlc.models.subscription import SubscriptionParams, SubscriptionRequest


@dataclass
class KrakenConfig:
    """Kraken websocket endpoint and subscription configuration"""

    ws_url: str = "wss://ws.kraken.com/v2"
    symbol: str = "BTC/USD"
    interval: int = 1

    def __post_init__(self):
        if not self.ws_url.startswith(("ws://", "wss://")):
            raise ConfigurationError(
                f"ws_url must start with ws:// or wss://, got {self.ws_url}"
            )

        try:
            params = SubscriptionParams(symbol=self.symbol, interval=self.interval)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid subscription settings: {e}") from e

        self.symbol = params.symbol
        self.interval = params.interval

    def to_request(self) -> SubscriptionRequest:
        return SubscriptionRequest.from_validated_params(
            SubscriptionParams(symbol=self.symbol, interval=self.interval)
        )


@dataclass
class LoggingConfig:
    """Logging system configuration"""

    log_level: str = "INFO"
    log_dir: str = "logs"

    def __post_init__(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. "
                f"Must be one of {valid_levels}"
            )


class ConfigManager:
    """
    Manages feed configuration from INI/YAML files with environment overrides

    Files (all optional, looked up in config_dir):
        feed_config.ini   [kraken] ws_url, symbol, interval / [logging] log_level, log_dir
        feed_config.yaml  same keys under 'kraken' and 'logging'

    Environment:
        KRAKEN_WS_URL, KRAKEN_SYMBOL, KRAKEN_INTERVAL, LOG_LEVEL, LOG_DIR
    """

    INI_FILE = "feed_config.ini"
    YAML_FILE = "feed_config.yaml"

    def __init__(self, config_dir: str = "configs"):
        self.config_dir = Path(config_dir)
        self.logger = logging.getLogger(__name__)
        self._kraken_config = None
        self._logging_config = None

        self._load_configs()

    def _load_configs(self):
        """Load all configuration sources"""
        raw = self._load_ini()
        self._merge(raw, self._load_yaml())
        self._merge(raw, self._load_env())

        kraken = raw.get("kraken", {})
        logging_section = raw.get("logging", {})

        try:
            interval = int(kraken.get("interval", KrakenConfig.interval))
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"interval must be an integer, got {kraken.get('interval')!r}"
            )

        self._kraken_config = KrakenConfig(
            ws_url=kraken.get("ws_url", KrakenConfig.ws_url),
            symbol=kraken.get("symbol", KrakenConfig.symbol),
            interval=interval,
        )
        self._logging_config = LoggingConfig(
            log_level=logging_section.get("log_level", LoggingConfig.log_level),
            log_dir=logging_section.get("log_dir", LoggingConfig.log_dir),
        )

    @staticmethod
    def _merge(base: Dict[str, Dict[str, Any]], override: Dict[str, Dict[str, Any]]) -> None:
        for section, values in override.items():
            base.setdefault(section, {}).update(values)

    def _load_ini(self) -> Dict[str, Dict[str, Any]]:
        config_file = self.config_dir / self.INI_FILE
        if not config_file.exists():
            self.logger.debug(f"{config_file} not found, using defaults")
            return {}

        config = ConfigParser()
        config.read(config_file)
        return {
            section: dict(config[section])
            for section in ("kraken", "logging")
            if section in config
        }

    def _load_yaml(self) -> Dict[str, Dict[str, Any]]:
        config_file = self.config_dir / self.YAML_FILE
        if not config_file.exists():
            return {}

        try:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid {config_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid {config_file}: top level must be a mapping")

        sections = {}
        for section in ("kraken", "logging"):
            values = data.get(section) or {}
            if not isinstance(values, dict):
                raise ConfigurationError(
                    f"Invalid {config_file}: '{section}' must be a mapping"
                )
            sections[section] = values
        return sections

    @staticmethod
    def _load_env() -> Dict[str, Dict[str, Any]]:
        env_map = {
            "KRAKEN_WS_URL": ("kraken", "ws_url"),
            "KRAKEN_SYMBOL": ("kraken", "symbol"),
            "KRAKEN_INTERVAL": ("kraken", "interval"),
            "LOG_LEVEL": ("logging", "log_level"),
            "LOG_DIR": ("logging", "log_dir"),
        }
        overrides: Dict[str, Dict[str, Any]] = {}
        for env_name, (section, key) in env_map.items():
            value = os.getenv(env_name)
            if value:
                overrides.setdefault(section, {})[key] = value
        return overrides

    @property
    def kraken_config(self) -> KrakenConfig:
        return self._kraken_config

    @property
    def logging_config(self) -> LoggingConfig:
        return self._logging_config

    @property
    def subscription_request(self) -> SubscriptionRequest:
        return self._kraken_config.to_request()
