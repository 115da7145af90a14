"""
Ticker Configuration and Price Cache

TickerConfig holds the state shared between the active exchange and the
display layer:

- the selected update interval (polling period or the real-time sentinel)
- the exchange site to use on the next launch
- the ordered set of selected currency pairs
- the last known price of each selected pair

Every mutation goes through one re-entrant lock, is written to the preference
store first, and is then announced on the event bus:

    selection changed  -> SELECTION_UPDATED
    interval changed   -> INTERVAL_UPDATED
    price written      -> PRICES_UPDATED   (never a selection/pair-list event)

One instance per process, created with TickerConfig.from_store() and passed
to whichever components need it.
"""

import math
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from core.config import Settings, settings
from core.currency import Currency, get_currency
from core.logging import get_logger
from core.schemas import CurrencyPair, ExchangeSite, UpdateInterval
from services.event_bus import (
    INTERVAL_UPDATED,
    PRICES_UPDATED,
    SELECTION_UPDATED,
    EventBus,
)
from storage.preferences import PreferenceStore

logger = get_logger(__name__)

# Preference keys
PREF_EXCHANGE_SITE = "exchange_site"
PREF_UPDATE_INTERVAL = "update_interval"
PREF_CURRENCY_PAIRS = "currency_pairs"

# Price of a pair that has not been loaded yet
LOADING_PRICE = 0.0


def parse_exchange_site(value: Any) -> Optional[ExchangeSite]:
    """Return the ExchangeSite for a persisted value, or None if unknown."""
    try:
        return ExchangeSite(str(value).lower())
    except ValueError:
        return None


def parse_update_interval(value: Any) -> Optional[UpdateInterval]:
    """Return the UpdateInterval for a persisted value, or None if unknown."""
    try:
        return UpdateInterval(int(value))
    except (TypeError, ValueError):
        return None


def _currency_code(currency: Union[Currency, str, None]) -> Optional[str]:
    if currency is None:
        return None
    if isinstance(currency, Currency):
        return currency.code
    return currency.strip().upper()


class TickerConfig:
    """
    Selected pairs, update interval, exchange site and price cache.

    Attributes:
        bus: EventBus the notifications are published on

    Example:
        >>> config = TickerConfig.from_store(InMemoryPreferenceStore())
        >>> pair = CurrencyPair.build("BTC", "USD")
        >>> config.select_currency_pair(pair)
        >>> config.set_price(47123.45, pair)
        >>> config.price(pair)
        47123.45
    """

    def __init__(
        self,
        store: PreferenceStore,
        bus: Optional[EventBus] = None,
        *,
        default_exchange_site: ExchangeSite = ExchangeSite.BITSTAMP,
        default_update_interval: UpdateInterval = UpdateInterval.REAL_TIME,
    ):
        self._store = store
        self.bus = bus or EventBus()
        self._lock = threading.RLock()

        self._default_exchange_site = default_exchange_site
        self._default_update_interval = default_update_interval

        self._exchange_site = default_exchange_site
        self._update_interval = default_update_interval
        self._selected: List[CurrencyPair] = []
        self._prices: Dict[CurrencyPair, float] = {}

    @classmethod
    def from_store(
        cls,
        store: PreferenceStore,
        bus: Optional[EventBus] = None,
        config: Optional[Settings] = None,
    ) -> "TickerConfig":
        """
        Build a TickerConfig initialized from persisted preferences.

        Defaults for anything missing come from the application settings.
        """
        config = config or settings

        default_site = parse_exchange_site(config.default_exchange_site)
        if default_site is None:
            default_site = ExchangeSite.BITSTAMP

        default_interval = parse_update_interval(config.default_update_interval)
        if default_interval is None:
            default_interval = UpdateInterval.REAL_TIME

        ticker_config = cls(
            store,
            bus,
            default_exchange_site=default_site,
            default_update_interval=default_interval,
        )
        ticker_config.reload()
        return ticker_config

    def reload(self) -> None:
        """Re-read every preference from the store. Invalid values fall back to defaults."""
        with self._lock:
            stored_site = self._store.get(PREF_EXCHANGE_SITE)
            site = parse_exchange_site(stored_site) if stored_site is not None else None
            if stored_site is not None and site is None:
                logger.warning(f"Ignoring unknown stored exchange site: {stored_site!r}")
            self._exchange_site = site or self._default_exchange_site

            stored_interval = self._store.get(PREF_UPDATE_INTERVAL)
            interval = parse_update_interval(stored_interval) if stored_interval is not None else None
            if stored_interval is not None and interval is None:
                logger.warning(f"Ignoring unknown stored update interval: {stored_interval!r}")
            self._update_interval = interval if interval is not None else self._default_update_interval

            self._selected = self._read_stored_pairs()
            self._prices = {}

        logger.debug(
            f"Loaded preferences: site={self._exchange_site.value}, "
            f"interval={int(self._update_interval)}, pairs={[str(p) for p in self._selected]}"
        )

    def _read_stored_pairs(self) -> List[CurrencyPair]:
        stored = self._store.get(PREF_CURRENCY_PAIRS, [])
        if not isinstance(stored, list):
            logger.warning(f"Ignoring stored currency pairs: expected a list, got {type(stored).__name__}")
            return []

        pairs: List[CurrencyPair] = []
        for item in stored:
            pair = None
            if isinstance(item, dict):
                pair = CurrencyPair.build(item.get("base"), item.get("quote"))
            if pair is None:
                logger.warning(f"Ignoring stored currency pair: {item!r}")
                continue
            if pair not in pairs:
                pairs.append(pair)
        return pairs

    # ============================================
    # Persistence Helpers
    # ============================================

    def _persist_selection(self) -> None:
        self._store.set(
            PREF_CURRENCY_PAIRS,
            [{"base": p.base_currency.code, "quote": p.quote_currency.code} for p in self._selected],
        )

    # ============================================
    # Update Interval
    # ============================================

    @property
    def selected_update_interval(self) -> UpdateInterval:
        return self._update_interval

    @property
    def is_real_time_update_interval_selected(self) -> bool:
        return self._update_interval.is_real_time

    def select_update_interval(self, interval: Union[UpdateInterval, int]) -> None:
        """
        Change the update interval.

        Raises:
            ValueError: If the interval is not one of UpdateInterval
        """
        parsed = parse_update_interval(interval)
        if parsed is None:
            raise ValueError(
                f"Invalid update interval: {interval!r}. "
                f"Must be one of: {', '.join(str(int(i)) for i in UpdateInterval)}"
            )

        with self._lock:
            if parsed == self._update_interval:
                return
            self._update_interval = parsed
            self._store.set(PREF_UPDATE_INTERVAL, int(parsed))

        logger.info(f"Update interval set to {int(parsed)}s{' (real-time)' if parsed.is_real_time else ''}")
        self.bus.publish(INTERVAL_UPDATED, int(parsed))

    # ============================================
    # Exchange Site
    # ============================================

    @property
    def default_exchange_site(self) -> ExchangeSite:
        return self._exchange_site

    @default_exchange_site.setter
    def default_exchange_site(self, site: Union[ExchangeSite, str]) -> None:
        parsed = parse_exchange_site(site)
        if parsed is None:
            raise ValueError(f"Unknown exchange site: {site!r}")

        with self._lock:
            self._exchange_site = parsed
            self._store.set(PREF_EXCHANGE_SITE, parsed.value)

    # ============================================
    # Currency Pair Selection
    # ============================================

    @property
    def selected_currency_pairs(self) -> Tuple[CurrencyPair, ...]:
        with self._lock:
            return tuple(self._selected)

    def select_currency_pair(self, currency_pair: CurrencyPair) -> None:
        with self._lock:
            if currency_pair in self._selected:
                return
            self._selected.append(currency_pair)
            self._persist_selection()

        logger.info(f"Selected {currency_pair}")
        self.bus.publish(SELECTION_UPDATED)

    def deselect_currency_pair(self, currency_pair: CurrencyPair) -> None:
        with self._lock:
            if currency_pair not in self._selected:
                return
            self._selected.remove(currency_pair)
            self._prices.pop(currency_pair, None)
            self._persist_selection()

        logger.info(f"Deselected {currency_pair}")
        self.bus.publish(SELECTION_UPDATED)

    def toggle_currency_pair(self, currency_pair: CurrencyPair) -> None:
        """
        Select the pair if it is not watched, deselect it otherwise.

        The last remaining selection cannot be toggled off.
        """
        with self._lock:
            watching = currency_pair in self._selected
            last_one = len(self._selected) <= 1

        if not watching:
            self.select_currency_pair(currency_pair)
        elif not last_one:
            self.deselect_currency_pair(currency_pair)
        else:
            logger.debug(f"Not deselecting {currency_pair}: it is the only selected pair")

    def is_watching(
        self,
        base_currency: Union[Currency, str],
        quote_currency: Union[Currency, str, None] = None,
    ) -> bool:
        base_code = _currency_code(base_currency)
        quote_code = _currency_code(quote_currency)
        with self._lock:
            for pair in self._selected:
                if pair.base_currency.code != base_code:
                    continue
                if quote_code is None or pair.quote_currency.code == quote_code:
                    return True
        return False

    def prune_currency_pairs(self, available_currency_pairs: Iterable[CurrencyPair]) -> List[CurrencyPair]:
        """
        Drop selected pairs the exchange does not offer.

        Surviving selections are replaced by the exchange's own pair objects
        so that their custom_code is the one the backend expects.

        Returns:
            The pairs that were removed
        """
        available = {pair: pair for pair in available_currency_pairs}
        with self._lock:
            removed = [pair for pair in self._selected if pair not in available]
            self._selected = [available[pair] for pair in self._selected if pair in available]
            for pair in removed:
                self._prices.pop(pair, None)
            if removed:
                self._persist_selection()

        if removed:
            logger.info(f"Removed unavailable pairs from selection: {', '.join(str(p) for p in removed)}")
            self.bus.publish(SELECTION_UPDATED)
        return removed

    def select_default_currency_pair(
        self,
        available_currency_pairs: Iterable[CurrencyPair],
        local_currency_code: Optional[str] = None,
    ) -> Optional[CurrencyPair]:
        """
        Select a starting pair when nothing is selected.

        Preference order: first pair quoted in the local currency, then the
        first pair quoted in USD, then the first available pair.

        Returns:
            The selected pair, or None if a selection already exists or no
            pair is available
        """
        available = list(available_currency_pairs)
        if self.selected_currency_pairs or not available:
            return None

        currency_pair = None
        local_currency = get_currency(local_currency_code)
        if local_currency is not None:
            currency_pair = next((p for p in available if p.quote_currency == local_currency), None)

        if currency_pair is None:
            currency_pair = next((p for p in available if p.quote_currency.code == "USD"), available[0])

        self.select_currency_pair(currency_pair)
        return currency_pair

    # ============================================
    # Price Cache
    # ============================================

    def price(self, currency_pair: CurrencyPair) -> float:
        """Last known price, or LOADING_PRICE if none has arrived yet."""
        with self._lock:
            return self._prices.get(currency_pair, LOADING_PRICE)

    def set_price(self, price: float, currency_pair: CurrencyPair) -> None:
        """
        Record the latest price of a pair.

        Only PRICES_UPDATED is published; pair lists and selections are not
        touched.

        Raises:
            ValueError: If the price is negative, NaN or infinite
        """
        price = float(price)
        if not math.isfinite(price) or price < 0:
            raise ValueError(f"Invalid price for {currency_pair}: {price}")

        with self._lock:
            self._prices[currency_pair] = price

        self.bus.publish(PRICES_UPDATED)

    def prices(self) -> Dict[CurrencyPair, float]:
        """Snapshot of the price cache."""
        with self._lock:
            return dict(self._prices)

    def clear_prices(self) -> None:
        with self._lock:
            self._prices.clear()
        self.bus.publish(PRICES_UPDATED)

    # ============================================
    # Factory Reset
    # ============================================

    def factory_reset(self) -> None:
        """Forget every preference and cached price."""
        with self._lock:
            for key in (PREF_EXCHANGE_SITE, PREF_UPDATE_INTERVAL, PREF_CURRENCY_PAIRS):
                self._store.remove(key)
            self._exchange_site = self._default_exchange_site
            self._update_interval = self._default_update_interval
            self._selected = []
            self._prices = {}

        logger.info("Ticker configuration reset to defaults")
        self.bus.publish(SELECTION_UPDATED)
        self.bus.publish(INTERVAL_UPDATED, int(self._update_interval))
        self.bus.publish(PRICES_UPDATED)
