"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates all required settings
- Provides type-safe access to configuration values
- Derives per-class throttle intervals from requests-per-second ceilings
- Handles optional settings with sensible defaults

Usage:
    from core.config import settings

    # Access configuration values
    print(settings.nse_base_url)
    print(settings.throttle_intervals_ms)  # {"lookup": 67, "default": 125}
"""

import math
from pathlib import Path
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; rv:109.0) Gecko/20100101 Firefox/118.0"


class Settings(BaseSettings):
    """
    Application Settings

    This class defines all configuration parameters for the application.
    Values are automatically loaded from environment variables or .env file.

    Attributes:
        nse_base_url: Base URL for the NSE JSON API
        nse_archive_url: Host serving static CSV/ZIP/GZIP archives
        nse_home_url: Site home page (used as the default Referer)
        nse_prime_url: Page requested to acquire anti-bot cookies
        user_agent: Browser-like User-Agent sent with every request
        download_dir: Directory for downloads and the persisted cookie jar
        cookie_file_name: File name of the persisted cookie jar
        request_timeout: Total timeout for one HTTP request in seconds
        lookup_rps: Request ceiling for search/autocomplete calls
        default_rps: Request ceiling for every other call
        log_level: Logging level
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
        environment: Current environment (development, production)
        debug: Enable debug mode with verbose logging
        cors_origins: Comma-separated list of allowed CORS origins
    """

    # ============================================
    # NSE Endpoints
    # ============================================

    nse_base_url: str = Field(
        default="https://www.nseindia.com/api",
        description="NSE JSON API base URL"
    )

    nse_archive_url: str = Field(
        default="https://nsearchives.nseindia.com",
        description="NSE archive host for bhavcopies and reports"
    )

    nse_home_url: str = Field(
        default="https://www.nseindia.com",
        description="NSE home page"
    )

    nse_prime_url: str = Field(
        default="https://www.nseindia.com/option-chain",
        description="Page fetched to obtain session cookies before API calls"
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with every request"
    )

    # ============================================
    # Session & Storage
    # ============================================

    download_dir: str = Field(
        default="./downloads",
        description="Directory for downloaded files and the cookie jar"
    )

    cookie_file_name: str = Field(
        default="nse_cookies.pkl",
        description="Cookie jar file name inside download_dir"
    )

    request_timeout: float = Field(
        default=15.0,
        description="HTTP request timeout in seconds"
    )

    # ============================================
    # Rate Limiting
    # ============================================

    lookup_rps: int = Field(
        default=15,
        description="Maximum search/autocomplete requests per second"
    )

    default_rps: int = Field(
        default=8,
        description="Maximum requests per second for all other endpoints"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
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
    # Derived Properties
    # ============================================

    @property
    def throttle_intervals_ms(self) -> Dict[str, int]:
        """
        Minimum spacing between calls of each throttle class.

        Returns:
            Mapping of class name to interval in milliseconds

        Example:
            >>> settings.throttle_intervals_ms
            {'lookup': 67, 'default': 125}
        """
        return {
            "lookup": math.ceil(1000 / self.lookup_rps),
            "default": math.ceil(1000 / self.default_rps),
        }

    @property
    def cookie_path(self) -> Path:
        """Location of the persisted cookie jar."""
        return Path(self.download_dir).expanduser().resolve() / self.cookie_file_name

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# ============================================
# Global Settings Instance
# ============================================

# Loaded once and reused throughout the application
settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration() -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # logging.py imports config.py, so the logger is imported lazily
    from core.logging import logger, set_log_level

    for name in ("nse_base_url", "nse_archive_url", "nse_home_url", "nse_prime_url"):
        value = getattr(settings, name)
        if not value.startswith("http"):
            raise ValueError(f"{name.upper()} must be an http(s) URL, got '{value}'")

    if settings.lookup_rps <= 0 or settings.default_rps <= 0:
        raise ValueError(
            f"LOOKUP_RPS and DEFAULT_RPS must be positive "
            f"(got {settings.lookup_rps}, {settings.default_rps})"
        )

    if settings.request_timeout <= 0:
        raise ValueError(f"Invalid REQUEST_TIMEOUT: {settings.request_timeout}")

    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    set_log_level(settings.log_level)

    logger.info("Configuration validated successfully")
    logger.info(f"NSE API: {settings.nse_base_url}")
    logger.info(f"Throttle intervals (ms): {settings.throttle_intervals_ms}")
    logger.info(f"Download dir: {settings.download_dir}")
    logger.info(f"Server: {settings.app_host}:{settings.app_port}")
    logger.info(f"Log level: {settings.log_level.upper()}")
