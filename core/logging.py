"""
Logging Setup

Every module logs through the "cointicker" logger tree:

    from core.logging import get_logger
    logger = get_logger(__name__)   # "cointicker.<module>"

The level comes from LOG_LEVEL and can be changed at runtime with
set_log_level() (the runner's --log-level does this).

WebSocket lifecycle lines go through log_websocket_event() so that streams of
both exchanges read alike; a dropped or failed stream is a WARNING.
"""

import logging
import sys

from core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """Send log records to stdout and return the application logger."""
    logging.basicConfig(
        level=_level(log_level),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    app_logger = logging.getLogger("cointicker")
    app_logger.setLevel(_level(log_level))
    return app_logger


logger = setup_logging(settings.log_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"cointicker.{name}")


def set_log_level(level: str) -> None:
    logger.setLevel(_level(level))
    logging.getLogger().setLevel(_level(level))


# ============================================
# Exchange Traffic
# ============================================

def log_api_request(exchange: str, endpoint: str, params: dict = None) -> None:
    suffix = f" | Params: {params}" if params else ""
    logger.debug(f"API Request: {exchange} {endpoint}{suffix}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: float = None) -> None:
    suffix = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{suffix}")


def log_websocket_event(exchange: str, event: str, pair: str = None, details: str = None) -> None:
    """
    Log one stream lifecycle event, e.g.

        WebSocket: bitstamp subscribed | Pair: ETH/EUR | live_trades_etheur
    """
    line = f"WebSocket: {exchange} {event}"
    if pair:
        line += f" | Pair: {pair}"
    if details:
        line += f" | {details}"

    level = logging.WARNING if event in ("error", "dropped") else logging.INFO
    logger.log(level, line)
