"""
Configuration Management Module

This module handles loading, validating, and providing access to application
configuration from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Configuration here is the *process* configuration (endpoints, timeouts,
defaults). The user's own choices (selected pairs, update interval, exchange)
live in the preference store and are managed by TickerConfig.

Usage:
    from core.config import settings

    print(settings.bitstamp_api_url)
    print(settings.default_update_interval)
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        log_level: Logging level name
        request_timeout: Total timeout for one HTTP request in seconds
        request_max_attempts: Attempts per REST request before giving up
        bitstamp_api_url: Bitstamp REST base URL
        bitstamp_ws_url: Bitstamp (Pusher) streaming URL
        binance_api_url: Binance spot REST base URL
        binance_ws_url: Binance spot stream base URL
        preferences_path: JSON file holding persisted user preferences
        default_exchange_site: Exchange used when nothing is persisted
        default_update_interval: Update interval used when nothing is persisted (0 = real-time)
        local_currency_code: Preferred quote currency for the default pair
    """

    # ============================================
    # Application Configuration
    # ============================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # Network
    # ============================================

    request_timeout: int = Field(
        default=10,
        description="HTTP request timeout in seconds"
    )

    request_max_attempts: int = Field(
        default=3,
        description="Maximum attempts per REST request (retries on 429/418/503 and transport errors)"
    )

    # ============================================
    # Exchange Endpoints
    # ============================================

    bitstamp_api_url: str = Field(
        default="https://www.bitstamp.net",
        description="Bitstamp REST API base URL"
    )

    bitstamp_ws_url: str = Field(
        default="wss://ws.pusherapp.com/app/de504dc5763aeef9ff52?protocol=7",
        description="Bitstamp live trades stream (Pusher protocol)"
    )

    binance_api_url: str = Field(
        default="https://api.binance.com",
        description="Binance spot REST API base URL"
    )

    binance_ws_url: str = Field(
        default="wss://stream.binance.com:9443/ws",
        description="Binance spot WebSocket base URL"
    )

    # ============================================
    # Ticker Defaults
    # ============================================

    preferences_path: Path = Field(
        default=Path.home() / ".config" / "cointicker" / "preferences.json",
        description="Where user preferences are persisted"
    )

    default_exchange_site: str = Field(
        default="bitstamp",
        description="Exchange used on first launch"
    )

    default_update_interval: int = Field(
        default=0,
        description="Update interval in seconds used on first launch (0 = real-time streaming)"
    )

    local_currency_code: str = Field(
        default="USD",
        description="Preferred quote currency when picking a default pair"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )


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
        ValueError: If configuration is invalid
    """
    # logging.py imports config.py, so import here
    from core.logging import logger
    from core.currency import get_currency
    from core.schemas import ExchangeSite, UpdateInterval

    config = config or settings

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    sites = [site.value for site in ExchangeSite]
    if config.default_exchange_site.lower() not in sites:
        raise ValueError(
            f"Invalid DEFAULT_EXCHANGE_SITE: '{config.default_exchange_site}'. "
            f"Must be one of: {', '.join(sites)}"
        )

    intervals = [int(interval) for interval in UpdateInterval]
    if config.default_update_interval not in intervals:
        raise ValueError(
            f"Invalid DEFAULT_UPDATE_INTERVAL: {config.default_update_interval}. "
            f"Must be one of: {', '.join(str(i) for i in intervals)}"
        )

    if config.request_timeout <= 0:
        raise ValueError(f"REQUEST_TIMEOUT must be positive, got {config.request_timeout}")

    if config.request_max_attempts <= 0:
        raise ValueError(f"REQUEST_MAX_ATTEMPTS must be positive, got {config.request_max_attempts}")

    if get_currency(config.local_currency_code) is None:
        raise ValueError(f"Unknown LOCAL_CURRENCY_CODE: '{config.local_currency_code}'")

    logger.info("Configuration validated successfully")
    logger.info(f"Default exchange: {config.default_exchange_site.lower()}")
    logger.info(f"Default update interval: {config.default_update_interval}s (0 = real-time)")
    logger.info(f"Preferences: {config.preferences_path}")
    logger.info(f"Log level: {config.log_level.upper()}")
