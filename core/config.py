"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Provides type-safe access to configuration values
- Converts the comma-separated subscription list into (topic, type) pairs
- Handles optional settings with sensible defaults

Usage:
    from core.config import settings

    print(settings.rtds_host)
    print(settings.subscriptions_list)  # [("activity", "trades")]
"""

from typing import List, Tuple
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


DEFAULT_RTDS_HOST = "wss://ws-live-data.polymarket.com"
DEFAULT_PING_INTERVAL_MS = 5000
DEFAULT_RECONNECT_DELAY = 1.0


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        rtds_host: Real-time data websocket endpoint
        rtds_ping_interval_ms: Interval between heartbeat probes (milliseconds)
        rtds_auto_reconnect: Re-dial after a session ends or a dial fails
        rtds_reconnect_delay: Seconds to wait between reconnection attempts
        rtds_subscriptions: Comma-separated "topic:type" pairs subscribed on connect
        environment: Current environment (development, production)
        log_level: Logging level
        activity_log_path: File that receives one JSON line per message payload
        enable_trading: Submit mirrored orders through the order executor
        target_wallet: Trader name whose BUY trades are mirrored
        multiplier: Scale applied to the mirrored notional
        min_order_usdc: Lower clamp for a mirrored order (USDC)
        max_order_usdc: Upper clamp for a mirrored order (USDC)
    """

    # ============================================
    # Real-Time Data Stream Configuration
    # ============================================

    rtds_host: str = Field(
        default=DEFAULT_RTDS_HOST,
        description="Real-time data websocket endpoint"
    )

    rtds_ping_interval_ms: int = Field(
        default=DEFAULT_PING_INTERVAL_MS,
        description="Heartbeat interval in milliseconds"
    )

    rtds_auto_reconnect: bool = Field(
        default=True,
        description="Reconnect automatically after a session ends"
    )

    rtds_reconnect_delay: float = Field(
        default=DEFAULT_RECONNECT_DELAY,
        description="Delay between reconnection attempts (seconds)"
    )

    rtds_subscriptions: str = Field(
        default="activity:trades",
        description="Comma-separated list of topic:type subscriptions"
    )

    # ============================================
    # Application Configuration
    # ============================================

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    activity_log_path: str = Field(
        default="log.txt",
        description="Append-only file receiving every message payload"
    )

    # ============================================
    # Copy Trading Configuration
    # ============================================

    enable_trading: bool = Field(
        default=False,
        description="Submit mirrored orders (False = log only)"
    )

    target_wallet: str = Field(
        default="",
        description="Trader name to mirror (empty = mirror nobody)"
    )

    multiplier: float = Field(
        default=1.0,
        description="Multiplier applied to price * size of the mirrored trade"
    )

    min_order_usdc: float = Field(
        default=1.0,
        description="Minimum mirrored order amount in USDC"
    )

    max_order_usdc: float = Field(
        default=4.0,
        description="Maximum mirrored order amount in USDC"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Custom Properties
    # ============================================

    @property
    def subscriptions_list(self) -> List[Tuple[str, str]]:
        """
        Convert the comma-separated subscription string to (topic, type) pairs.

        Entries without a ":" are subscribed with type "*".

        Example:
            >>> settings.subscriptions_list
            [('activity', 'trades')]
        """
        pairs = []
        for entry in self.rtds_subscriptions.split(","):
            entry = entry.strip()
            if not entry:
                continue
            topic, _, kind = entry.partition(":")
            pairs.append((topic.strip(), kind.strip() or "*"))
        return pairs

    @property
    def ping_interval_seconds(self) -> float:
        """Heartbeat interval converted to seconds."""
        return self.rtds_ping_interval_ms / 1000.0


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Settings = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        config: Settings to validate (defaults to the global instance)

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Import logger here to avoid circular import
    # (logging.py imports config.py, so we can't import at module level)
    from core.logging import logger

    config = config or settings

    if not config.rtds_host.startswith(("ws://", "wss://")):
        raise ValueError(
            f"Invalid RTDS_HOST: '{config.rtds_host}'. "
            f"Must start with ws:// or wss://"
        )

    if config.rtds_ping_interval_ms <= 0:
        raise ValueError(
            f"Invalid RTDS_PING_INTERVAL_MS: {config.rtds_ping_interval_ms}. Must be positive"
        )

    if config.rtds_reconnect_delay < 0:
        raise ValueError(
            f"Invalid RTDS_RECONNECT_DELAY: {config.rtds_reconnect_delay}. Must not be negative"
        )

    for topic, _ in config.subscriptions_list:
        if not topic:
            raise ValueError(f"RTDS_SUBSCRIPTIONS contains an entry without a topic: '{config.rtds_subscriptions}'")

    if config.min_order_usdc > config.max_order_usdc:
        raise ValueError(
            f"MIN_ORDER_USDC ({config.min_order_usdc}) must not exceed "
            f"MAX_ORDER_USDC ({config.max_order_usdc})"
        )

    if config.multiplier <= 0:
        raise ValueError(f"Invalid MULTIPLIER: {config.multiplier}. Must be positive")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"RTDS host: {config.rtds_host}")
    logger.info(f"Ping interval: {config.rtds_ping_interval_ms}ms")
    logger.info(f"Auto reconnect: {config.rtds_auto_reconnect}")
    logger.info(f"Subscriptions: {', '.join(f'{t}:{k}' for t, k in config.subscriptions_list)}")
    logger.info(f"Trading: {'enabled' if config.enable_trading else 'disabled'}")
    logger.info(f"Log level: {config.log_level.upper()}")
