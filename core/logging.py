"""
Unified Logging Configuration

This module sets up a centralized logging system for the entire application.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import logger, get_logger

    logger.info("Runner started")

    log = get_logger(__name__)
    log.debug("Dropped undecodable frame")

Log Levels (from most to least verbose):
    DEBUG    - Frame-level diagnostics (e.g., "Ignoring non-envelope frame")
    INFO     - Lifecycle events (e.g., "Connected to wss://...")
    WARNING  - Recoverable problems (e.g., "Reconnecting in 1.0s")
    ERROR    - Failures that don't stop the process (e.g., "Failed to send subscribe")
    CRITICAL - Severe errors that stop the process

Configuration:
    Log level is controlled by the LOG_LEVEL setting in the .env file.
    If not set, defaults to INFO.
"""

import logging
import sys
from typing import Optional


LOGGER_NAMESPACE = "polystream"


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include module name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Application started")
        2024-01-01 12:00:00 [INFO] polystream: Application started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

# Try to load log level from settings, fallback to INFO
try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    # Settings not importable yet (partial import during bootstrap)
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance for the specified name

    Example:
        # In realtime/ws_client.py:
        from core.logging import get_logger
        logger = get_logger(__name__)  # "polystream.realtime.ws_client"
    """
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def set_log_level(level: str) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


# ============================================
# Log Helper Functions
# ============================================

def log_websocket_event(host: str, event: str, details: Optional[str] = None) -> None:
    """
    Log a WebSocket lifecycle event with consistent formatting.

    Args:
        host: WebSocket endpoint
        event: Event type (e.g., "connected", "disconnected", "error")
        details: Additional details (optional)

    Example:
        >>> log_websocket_event("wss://ws-live-data.polymarket.com", "connected")
        [INFO] WebSocket: wss://ws-live-data.polymarket.com connected

        >>> log_websocket_event("wss://...", "error", details="Connection refused")
        [ERROR] WebSocket: wss://... error | Connection refused
    """
    details_str = f" | {details}" if details else ""

    level = logging.ERROR if event == "error" else logging.INFO
    logger.log(level, f"WebSocket: {host} {event}{details_str}")


logger.debug("Logging system initialized")
