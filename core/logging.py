"""
Unified Logging Configuration

This module sets up a centralized logging system for the entire application.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Primed NSE session")
    logger.warning("Received 401, re-priming cookies")

Log Levels (from most to least verbose):
    DEBUG    - Detailed diagnostic information (e.g., "API Request: /quote-equity | Params: {...}")
    INFO     - General informational messages (e.g., "Session primed")
    WARNING  - Warnings about potential issues (e.g., "Cookie file unreadable")
    ERROR    - Errors that don't crash the app (e.g., "HTTP 503 on /option-chain-v3")
    CRITICAL - Severe errors that may crash

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Optional


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
        2024-01-01 12:00:00 [INFO] nsedata Application started
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
        force=True
    )

    logger = logging.getLogger("nsedata")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

from core.config import settings

logger = setup_logging(log_level=settings.log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Child of the "nsedata" logger

    Example:
        # In exchanges/nse/session.py:
        logger = get_logger(__name__)  # "nsedata.exchanges.nse.session"
    """
    return logging.getLogger(f"nsedata.{name}")


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

def log_api_request(endpoint: str, params: dict = None) -> None:
    """
    Log an outbound API request with consistent formatting.

    Example:
        >>> log_api_request("https://www.nseindia.com/api/quote-equity", {"symbol": "INFY"})
        [DEBUG] API Request: https://www.nseindia.com/api/quote-equity | Params: {'symbol': 'INFY'}
    """
    if params:
        logger.debug(f"API Request: {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {endpoint}")


def log_api_response(endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("https://www.nseindia.com/api/marketStatus", 200, 0.342)
        [DEBUG] API Response: https://www.nseindia.com/api/marketStatus | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {endpoint} | Status: {status}{time_str}")


logger.debug("Logging system initialized")
