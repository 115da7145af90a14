"""
Exchange Interface - Abstract Contract for All Exchanges

This module defines the abstract base class that every exchange backend must
implement, and the lifecycle every backend shares:

    IDLE --load()--> LOADING --discovery ok--> ACTIVE <--fetch()-- SUSPENDED
                        |                        |  ^                 ^
                        |                        |  +--reset()        |
                        +--discovery failed--> LOAD_FAILED            |
                                                 +------stop()--------+

    shutdown() from anywhere --> STOPPED (terminal)

A backend only supplies the exchange-specific parts (hooks below): discovering
the tradable pairs, fetching one price over REST, and streaming trade prices
for one pair. Scheduling, cancellation and writing into TickerConfig are done
here so every exchange behaves the same:

- Polling (interval > 0): a timer task fires every `interval` seconds and
  spawns one request per selected pair without waiting for earlier ones.
  A failing request is logged and only affects its own pair.
- Streaming (real-time): one long-lived task per selected pair. A dropped
  connection is logged and not reconnected; callers re-trigger with
  reset()/fetch().

Every acquisition carries a generation number. Tearing down bumps it, so a
response that arrives after stop() or reset() is dropped instead of being
written to the cache.

Example:
    class BitstampExchange(ExchangeInterface):
        site = ExchangeSite.BITSTAMP

        async def _fetch_currency_pairs(self):
            ...

        async def _fetch_price(self, currency_pair):
            ...

        async def _stream_prices(self, currency_pair):
            ...
            yield price
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import AsyncIterator, Dict, Iterable, List, Optional, Set, Tuple, Union

from core.currency import Currency
from core.logging import get_logger
from core.schemas import CurrencyPair, ExchangeSite
from core.ticker_config import TickerConfig
from services.event_bus import PAIRS_UPDATED


# ============================================
# Errors
# ============================================

class ExchangeError(Exception):
    """Base class for exchange failures."""


class ExchangeAPIError(ExchangeError):
    """A REST request failed (HTTP error status, transport error, retries exhausted)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ExchangeDecodeError(ExchangeError):
    """A response or stream message could not be decoded."""


# ============================================
# Lifecycle States
# ============================================

class ExchangeState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOAD_FAILED = "load_failed"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    STOPPED = "stopped"


def _code(currency: Union[Currency, str, None]) -> Optional[str]:
    if isinstance(currency, Currency):
        return currency.code
    if isinstance(currency, str):
        return currency.strip().upper()
    return None


def sort_currency_pairs(currency_pairs: Iterable[CurrencyPair]) -> Tuple[CurrencyPair, ...]:
    """Deduplicate (first occurrence wins) and sort ascending by pair identity."""
    unique: Dict[CurrencyPair, CurrencyPair] = {}
    for pair in currency_pairs:
        unique.setdefault(pair, pair)
    return tuple(sorted(unique.values()))


class ExchangeInterface(ABC):
    """
    Abstract Base Class for Exchange Backends

    Class Attributes:
        site: ExchangeSite this backend implements

    Attributes:
        config: Shared TickerConfig (selection, interval, price cache)
        available_currency_pairs: Sorted pairs found by load()
        state: Current ExchangeState

    Abstract Methods (MUST be implemented by all exchanges):
        - _fetch_currency_pairs: one discovery request, returns the pairs
        - _fetch_price: one REST request, returns the last price of a pair
        - _stream_prices: async iterator of trade prices for a pair

    Optional Methods (can be overridden):
        - _open: create HTTP sessions before discovery
        - _close: release HTTP sessions on shutdown
    """

    site: ExchangeSite

    def __init__(self, config: TickerConfig):
        self.config = config
        self.available_currency_pairs: Tuple[CurrencyPair, ...] = ()
        self.state = ExchangeState.IDLE
        self.logger = get_logger(f"exchanges.{self.site.value}")

        self._lifecycle_lock = asyncio.Lock()
        self._generation = 0
        self._load_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._stream_tasks: Dict[CurrencyPair, asyncio.Task] = {}
        self._request_tasks: Set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        return self.site.value

    @property
    def is_loaded(self) -> bool:
        return self.state in (ExchangeState.ACTIVE, ExchangeState.SUSPENDED)

    # ============================================
    # Backend Hooks
    # ============================================

    @abstractmethod
    async def _fetch_currency_pairs(self) -> List[CurrencyPair]:
        """
        Request the exchange's tradable pairs.

        Returns:
            Pairs built with CurrencyPair.build(); unknown currencies and
            non-crypto bases already filtered out. Order and duplicates do
            not matter, load() normalizes them.

        Raises:
            ExchangeError: If the request fails or the payload is malformed
        """
        ...

    @abstractmethod
    async def _fetch_price(self, currency_pair: CurrencyPair) -> float:
        """
        Request the last traded price of one pair.

        Raises:
            ExchangeError: If the request fails or the payload is malformed
        """
        ...

    @abstractmethod
    def _stream_prices(self, currency_pair: CurrencyPair) -> AsyncIterator[float]:
        """
        Open a streaming connection for one pair and yield trade prices in
        the order they are received.

        Malformed messages should be logged and skipped. The iterator ends
        when the connection closes.
        """
        ...

    async def _open(self) -> None:
        """Create network resources. Called once, before discovery."""
        pass

    async def _close(self) -> None:
        """Release network resources. Called by shutdown()."""
        pass

    # ============================================
    # Lifecycle
    # ============================================

    async def load(self) -> None:
        """
        Discover the exchange's pairs and start fetching prices.

        On success the pairs are published on PAIRS_UPDATED, stale selections
        are pruned, and fetch() is started. On failure the exchange stays in
        LOAD_FAILED; build a new instance to retry.
        """
        async with self._lifecycle_lock:
            if self.state is not ExchangeState.IDLE:
                self.logger.debug(f"load() ignored in state {self.state.value}")
                return
            self.state = ExchangeState.LOADING
            generation = self._generation

        self.logger.info(f"Loading currency pairs from {self.site.display_name}...")

        try:
            await self._open()
            self._load_task = asyncio.ensure_future(self._fetch_currency_pairs())
            raw_pairs = await self._load_task
        except asyncio.CancelledError:
            if generation != self._generation:
                self.logger.info("Pair discovery cancelled")
                return
            raise
        except Exception as e:
            self.logger.error(f"Error retrieving currency pairs from {self.site.display_name}: {e}")
            async with self._lifecycle_lock:
                if generation == self._generation and self.state is ExchangeState.LOADING:
                    self.state = ExchangeState.LOAD_FAILED
            return
        finally:
            self._load_task = None

        async with self._lifecycle_lock:
            if generation != self._generation or self.state is not ExchangeState.LOADING:
                self.logger.debug("Dropping pair discovery result from a stopped load")
                return

            self.available_currency_pairs = sort_currency_pairs(raw_pairs)
            self.logger.info(
                f"Loaded {len(self.available_currency_pairs)} currency pairs from {self.site.display_name}"
            )

            self.config.prune_currency_pairs(self.available_currency_pairs)
            self.config.bus.publish(PAIRS_UPDATED, self.available_currency_pairs)

            await self._start_acquisition()

    async def fetch(self) -> None:
        """
        (Re)start price acquisition for the selected pairs.

        Only valid once pairs are loaded (ACTIVE or SUSPENDED); otherwise a
        no-op.
        """
        async with self._lifecycle_lock:
            if not self.is_loaded:
                self.logger.debug(f"fetch() ignored in state {self.state.value}")
                return
            await self._start_acquisition()

    async def stop(self) -> None:
        """
        Cancel all price acquisition. Safe to call repeatedly and in any state.

        Available pairs and cached prices are kept.
        """
        async with self._lifecycle_lock:
            if self.state is ExchangeState.LOADING:
                self._generation += 1
                if self._load_task is not None and not self._load_task.done():
                    self._load_task.cancel()
                self.state = ExchangeState.IDLE

            await self._teardown()

            if self.state is ExchangeState.ACTIVE:
                self.state = ExchangeState.SUSPENDED
                self.logger.info(f"{self.site.display_name} price updates stopped")

    async def reset(self) -> None:
        """
        Rebuild acquisition after the selection or update interval changed.

        Pairs are not rediscovered. A suspended exchange stays suspended; the
        next fetch() picks up the new configuration.
        """
        async with self._lifecycle_lock:
            if self.state is ExchangeState.ACTIVE:
                await self._start_acquisition()
            elif self.state is ExchangeState.SUSPENDED:
                self.logger.debug("reset() while suspended; changes apply on next fetch()")

    async def shutdown(self) -> None:
        """Stop everything and release network resources. Terminal."""
        async with self._lifecycle_lock:
            if self.state is ExchangeState.STOPPED:
                return

            self._generation += 1
            if self._load_task is not None and not self._load_task.done():
                self._load_task.cancel()
            await self._teardown()
            await self._close()
            self.state = ExchangeState.STOPPED
            self.logger.info(f"{self.site.display_name} exchange shut down")

    # ============================================
    # Lookup
    # ============================================

    def available_currency_pair(
        self,
        base_currency: Union[Currency, str, None],
        quote_currency: Union[Currency, str, None],
    ) -> Optional[CurrencyPair]:
        """Find an available pair by base and quote (Currency objects or codes)."""
        base_code = _code(base_currency)
        quote_code = _code(quote_currency)
        if base_code is None or quote_code is None:
            return None

        for pair in self.available_currency_pairs:
            if pair.identity == (base_code, quote_code):
                return pair
        return None

    # ============================================
    # Acquisition (callers hold the lifecycle lock)
    # ============================================

    async def _start_acquisition(self) -> None:
        await self._teardown()

        generation = self._generation
        pairs = self.config.selected_currency_pairs
        interval = self.config.selected_update_interval
        self.state = ExchangeState.ACTIVE

        if not pairs:
            self.logger.info("No currency pairs selected, nothing to fetch")
            return

        if interval.is_real_time:
            self.logger.info(f"Streaming prices for {', '.join(str(p) for p in pairs)}")
            for pair in pairs:
                self._stream_tasks[pair] = asyncio.create_task(
                    self._stream_loop(pair, generation),
                    name=f"{self.name}-stream-{pair}",
                )
        else:
            self.logger.info(f"Polling prices every {int(interval)}s for {', '.join(str(p) for p in pairs)}")
            self._poll_task = asyncio.create_task(
                self._poll_loop(pairs, int(interval), generation),
                name=f"{self.name}-poll",
            )

    async def _teardown(self) -> None:
        """Cancel every acquisition task and wait until all are finished."""
        self._generation += 1

        tasks = list(self._stream_tasks.values()) + list(self._request_tasks)
        if self._poll_task is not None:
            tasks.append(self._poll_task)

        self._poll_task = None
        self._stream_tasks = {}
        self._request_tasks = set()

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.debug(f"Released {len(tasks)} acquisition task(s)")

    async def _poll_loop(self, pairs: Tuple[CurrencyPair, ...], interval: int, generation: int) -> None:
        while True:
            for pair in pairs:
                task = asyncio.create_task(self._request_price(pair, generation))
                self._request_tasks.add(task)
                task.add_done_callback(self._request_tasks.discard)
            await asyncio.sleep(interval)

    async def _request_price(self, currency_pair: CurrencyPair, generation: int) -> None:
        try:
            price = await self._fetch_price(currency_pair)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.warning(f"Error retrieving price for {currency_pair}: {e}")
            return
        self._apply_price(price, currency_pair, generation)

    async def _stream_loop(self, currency_pair: CurrencyPair, generation: int) -> None:
        try:
            async for price in self._stream_prices(currency_pair):
                self._apply_price(price, currency_pair, generation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.warning(f"Price stream for {currency_pair} failed: {e}")
            return

        if generation == self._generation:
            self.logger.warning(f"Price stream for {currency_pair} closed; not reconnecting")

    def _apply_price(self, price: float, currency_pair: CurrencyPair, generation: int) -> None:
        if generation != self._generation:
            self.logger.debug(f"Dropping late price for {currency_pair}")
            return
        # a deselection lands before the reset that stops this pair's task
        if currency_pair not in self.config.selected_currency_pairs:
            self.logger.debug(f"Dropping price for deselected {currency_pair}")
            return
        try:
            self.config.set_price(price, currency_pair)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Discarding price for {currency_pair}: {e}")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(site='{self.name}', state='{self.state.value}')>"
