"""
CoinTicker - Command-Line Runner

Runs the ticker headless and logs the status line whenever prices or the
selection change.

Usage:
    python start.py
    python start.py --exchange binance --interval 10 --pair BTC/USDT --pair ETH/USDT
    cointicker --preferences ./prefs.json --log-level DEBUG

Stops cleanly on SIGINT/SIGTERM.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from core.config import settings, validate_configuration
from core.logging import logger, set_log_level
from core.schemas import CurrencyPair, ExchangeSite, UpdateInterval
from core.ticker_config import TickerConfig
from services.event_bus import PRICES_UPDATED, SELECTION_UPDATED, EventBus
from services.ticker_controller import TickerController
from storage.preferences import JsonFilePreferenceStore


def parse_pair(value: str) -> CurrencyPair:
    """argparse type for BASE/QUOTE arguments."""
    base, sep, quote = value.partition("/")
    currency_pair = CurrencyPair.build(base, quote) if sep else None
    if currency_pair is None:
        raise argparse.ArgumentTypeError(
            f"invalid pair {value!r}: expected BASE/QUOTE with a known crypto base (e.g., BTC/USD)"
        )
    return currency_pair


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cointicker", description="Live cryptocurrency price ticker")
    parser.add_argument(
        "--exchange",
        choices=[site.value for site in ExchangeSite],
        help="Exchange to use (default: last used, then DEFAULT_EXCHANGE_SITE)",
    )
    parser.add_argument(
        "--interval",
        type=int,
        choices=[int(interval) for interval in UpdateInterval],
        help="Update interval in seconds, 0 for real-time streaming",
    )
    parser.add_argument(
        "--pair",
        dest="pairs",
        action="append",
        type=parse_pair,
        default=[],
        metavar="BASE/QUOTE",
        help="Currency pair to watch (repeatable; replaces the stored selection)",
    )
    parser.add_argument(
        "--preferences",
        type=Path,
        default=settings.preferences_path,
        help=f"Preferences file (default: {settings.preferences_path})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (default: LOG_LEVEL setting)",
    )
    return parser


def apply_arguments(config: TickerConfig, args: argparse.Namespace) -> None:
    """Write command-line choices into the ticker configuration."""
    if args.exchange:
        config.default_exchange_site = args.exchange

    if args.interval is not None:
        config.select_update_interval(args.interval)

    if args.pairs:
        requested: List[CurrencyPair] = list(args.pairs)
        for currency_pair in config.selected_currency_pairs:
            if currency_pair not in requested:
                config.deselect_currency_pair(currency_pair)
        for currency_pair in requested:
            config.select_currency_pair(currency_pair)


async def run(args: argparse.Namespace) -> None:
    bus = EventBus()
    config = TickerConfig.from_store(JsonFilePreferenceStore(args.preferences), bus)
    apply_arguments(config, args)

    controller = TickerController(config)

    def log_status(event) -> None:
        logger.info(f"[{config.default_exchange_site.display_name}] {controller.status_title()}")

    bus.add_listener(PRICES_UPDATED, log_status)
    bus.add_listener(SELECTION_UPDATED, log_status)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: KeyboardInterrupt still ends asyncio.run()
            pass

    try:
        await controller.start()
        logger.info(f"Status: {controller.status_title()}")
        await stop_event.wait()
    finally:
        logger.info("=== Shutting Down ===")
        bus.remove_listener(PRICES_UPDATED, log_status)
        bus.remove_listener(SELECTION_UPDATED, log_status)
        await controller.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    logger.info("=== CoinTicker Starting ===")
    try:
        validate_configuration()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted. Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
