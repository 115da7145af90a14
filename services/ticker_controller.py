"""
Ticker Controller

Headless counterpart of the status-bar application: owns the active
exchange, reacts to configuration events and renders the status line.

Responsibilities:
    - build the exchange for the persisted site and load it
    - pick a default pair once pairs are discovered and nothing is selected
    - restart acquisition when the selection or update interval changes
    - follow reachability and sleep/wake signals
    - switch exchange sites

Usage:
    controller = TickerController(ticker_config)
    await controller.start()
    print(controller.status_title())
    ...
    await controller.close()
"""

import asyncio
from typing import Optional, Set, Union

from core.config import settings
from core.exchange_interface import ExchangeInterface, ExchangeState
from core.exchange_manager import ExchangeManager
from core.logging import get_logger
from core.schemas import ExchangeSite
from core.ticker_config import TickerConfig, parse_exchange_site
from core.utils.formatting import LOADING_LABEL, NO_PAIRS_LABEL, OFFLINE_LABEL, format_price
from services.event_bus import INTERVAL_UPDATED, PAIRS_UPDATED, SELECTION_UPDATED, Event

logger = get_logger(__name__)

STATUS_SEPARATOR = " • "


class TickerController:
    """
    Drives one exchange at a time from a TickerConfig.

    Attributes:
        config: Shared ticker configuration
        manager: Factory used to build exchanges
        exchange: Active exchange, None before start()
        reachable: Last reachability signal received
    """

    def __init__(
        self,
        config: TickerConfig,
        manager: Optional[ExchangeManager] = None,
        local_currency_code: Optional[str] = None,
    ):
        self.config = config
        self.manager = manager or ExchangeManager()
        self.local_currency_code = local_currency_code or settings.local_currency_code
        self.exchange: Optional[ExchangeInterface] = None
        self.reachable = True

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[asyncio.Task] = set()
        self._listening = False

    # ============================================
    # Lifecycle
    # ============================================

    async def start(self) -> None:
        """Bind to the running loop, build the persisted exchange and load it."""
        self._loop = asyncio.get_running_loop()
        self.config.bus.bind_loop(self._loop)

        if not self._listening:
            self.config.bus.add_listener(PAIRS_UPDATED, self._on_pairs_updated)
            self.config.bus.add_listener(SELECTION_UPDATED, self._on_configuration_updated)
            self.config.bus.add_listener(INTERVAL_UPDATED, self._on_configuration_updated)
            self._listening = True

        if self.exchange is None:
            self.exchange = self.manager.build(self.config.default_exchange_site, self.config)

        logger.info(f"Ticker started on {self.exchange.site.display_name}")
        if self.reachable:
            await self.exchange.load()

    async def close(self) -> None:
        """Stop listening, cancel pending restarts and shut the exchange down."""
        if self._listening:
            self.config.bus.remove_listener(PAIRS_UPDATED, self._on_pairs_updated)
            self.config.bus.remove_listener(SELECTION_UPDATED, self._on_configuration_updated)
            self.config.bus.remove_listener(INTERVAL_UPDATED, self._on_configuration_updated)
            self._listening = False

        pending = list(self._pending)
        self._pending.clear()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self.exchange is not None:
            await self.exchange.shutdown()
        logger.info("Ticker stopped")

    # ============================================
    # External Signals
    # ============================================

    async def set_reachable(self, reachable: bool) -> None:
        """
        Apply a network reachability change.

        Reachable: resume fetching if pairs are loaded, otherwise (re)load.
        A failed exchange is replaced by a fresh instance before loading.
        Unreachable: stop acquisition and show the offline label.
        """
        self.reachable = reachable

        if not reachable:
            logger.info("Network unreachable, stopping price updates")
            if self.exchange is not None:
                await self.exchange.stop()
            return

        logger.info("Network reachable")
        if self.exchange is None or self.exchange.state in (ExchangeState.LOAD_FAILED, ExchangeState.STOPPED):
            await self._replace_exchange(self.config.default_exchange_site)

        if self.exchange.is_loaded:
            await self.exchange.fetch()
        elif self.exchange.state is ExchangeState.IDLE:
            await self.exchange.load()

    async def sleep(self) -> None:
        logger.info("System going to sleep, stopping price updates")
        if self.exchange is not None:
            await self.exchange.stop()

    async def wake(self) -> None:
        logger.info("System woke up, resuming price updates")
        if self.exchange is not None:
            await self.exchange.fetch()

    # ============================================
    # Exchange Switching
    # ============================================

    async def select_exchange_site(self, site: Union[ExchangeSite, str]) -> None:
        """
        Switch to another exchange site.

        The old exchange is shut down, cached prices are cleared, the site is
        persisted and the new exchange is loaded (when reachable).

        Raises:
            ValueError: If the site is unknown
        """
        parsed = parse_exchange_site(site)
        if parsed is None or not self.manager.has_site(parsed):
            raise ValueError(f"Unknown exchange site: {site!r}")

        if (
            self.exchange is not None
            and self.exchange.site is parsed
            and self.exchange.state is not ExchangeState.STOPPED
        ):
            logger.debug(f"Already on {parsed.display_name}")
            return

        logger.info(f"Switching exchange to {parsed.display_name}")
        await self._replace_exchange(parsed)
        if self.reachable:
            await self.exchange.load()

    async def _replace_exchange(self, site: ExchangeSite) -> None:
        if self.exchange is not None:
            await self.exchange.shutdown()
        self.config.clear_prices()
        self.config.default_exchange_site = site
        self.exchange = self.manager.build(site, self.config)

    # ============================================
    # Event Handlers
    # ============================================

    def _on_pairs_updated(self, event: Event) -> None:
        available = event.get("data") or ()
        currency_pair = self.config.select_default_currency_pair(available, self.local_currency_code)
        if currency_pair is not None:
            logger.info(f"Selected default currency pair {currency_pair}")

    def _on_configuration_updated(self, event: Event) -> None:
        exchange = self.exchange
        if exchange is None or exchange.state not in (ExchangeState.ACTIVE, ExchangeState.SUSPENDED):
            return
        self._schedule(exchange.reset(), event["topic"])

    def _schedule(self, coro, reason: str) -> None:
        if self._loop is None or self._loop.is_closed():
            coro.close()
            logger.debug(f"No running loop, skipping restart after {reason}")
            return

        task = self._loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ============================================
    # Status Line
    # ============================================

    def status_title(self) -> str:
        """
        Render the status line.

        One selected pair shows its price alone; several pairs show
        "CODE: price" joined by a bullet. Prices not loaded yet show the
        loading label.
        """
        if not self.reachable:
            return OFFLINE_LABEL

        exchange = self.exchange
        if exchange is None:
            return LOADING_LABEL
        if exchange.state is ExchangeState.LOAD_FAILED:
            return NO_PAIRS_LABEL
        if not exchange.available_currency_pairs:
            if exchange.state in (ExchangeState.IDLE, ExchangeState.LOADING):
                return LOADING_LABEL
            return NO_PAIRS_LABEL

        pairs = self.config.selected_currency_pairs
        if not pairs:
            return NO_PAIRS_LABEL

        if len(pairs) == 1:
            pair = pairs[0]
            return format_price(self.config.price(pair), pair.quote_currency)

        return STATUS_SEPARATOR.join(
            f"{pair.base_currency.code}: {format_price(self.config.price(pair), pair.quote_currency)}"
            for pair in pairs
        )

    def __repr__(self) -> str:
        return f"<TickerController(exchange={self.exchange!r}, reachable={self.reachable})>"
