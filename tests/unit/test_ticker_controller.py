"""
Unit Tests for the Ticker Controller

The controller is wired to fake backends registered in the ExchangeManager,
so these tests cover event handling, reachability, sleep/wake, exchange
switching and the status line without any network access.

Run with:
    pytest tests/unit/test_ticker_controller.py -v
"""

import asyncio
from typing import Dict, List

import pytest
import pytest_asyncio

from core.config import Settings
from core.exchange_interface import ExchangeAPIError, ExchangeInterface, ExchangeState
from core.exchange_manager import ExchangeManager
from core.schemas import CurrencyPair, ExchangeSite, UpdateInterval
from core.ticker_config import TickerConfig
from core.utils.formatting import LOADING_LABEL, NO_PAIRS_LABEL, OFFLINE_LABEL
from services.event_bus import EventBus
from services.ticker_controller import TickerController
from storage.preferences import InMemoryPreferenceStore


BTC_USD = CurrencyPair.build("BTC", "USD")
ETH_USD = CurrencyPair.build("ETH", "USD")
BTC_EUR = CurrencyPair.build("BTC", "EUR")
BTC_USDT = CurrencyPair.build("BTC", "USDT")


# ============================================
# Fake Backends
# ============================================

class FakeBackend(ExchangeInterface):
    pairs: List[CurrencyPair] = []
    discovery_failures = 0

    def __init__(self, config: TickerConfig):
        super().__init__(config)
        self.prices: Dict[str, float] = {}
        self.stream_queues: Dict[str, asyncio.Queue] = {}
        self.closed = False

    async def _close(self) -> None:
        self.closed = True

    async def _fetch_currency_pairs(self) -> List[CurrencyPair]:
        if type(self).discovery_failures > 0:
            type(self).discovery_failures -= 1
            raise ExchangeAPIError("HTTP 503", status=503)
        return list(self.pairs)

    async def _fetch_price(self, currency_pair: CurrencyPair) -> float:
        return self.prices.get(str(currency_pair), 1.0)

    async def _stream_prices(self, currency_pair: CurrencyPair):
        queue: asyncio.Queue = asyncio.Queue()
        self.stream_queues[str(currency_pair)] = queue
        while True:
            yield await queue.get()


class FakeBitstamp(FakeBackend):
    site = ExchangeSite.BITSTAMP
    pairs = [ETH_USD, BTC_EUR, BTC_USD]


class FakeBinance(FakeBackend):
    site = ExchangeSite.BINANCE
    pairs = [BTC_USDT, ETH_USD]


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def config():
    return TickerConfig.from_store(InMemoryPreferenceStore(), EventBus(), config=Settings(_env_file=None))


@pytest.fixture
def manager(monkeypatch):
    monkeypatch.setattr(FakeBitstamp, "discovery_failures", 0)
    manager = ExchangeManager()
    manager.exchanges = {
        ExchangeSite.BITSTAMP: FakeBitstamp,
        ExchangeSite.BINANCE: FakeBinance,
    }
    return manager


@pytest_asyncio.fixture
async def controller(config, manager):
    controller = TickerController(config, manager, local_currency_code="USD")
    yield controller
    await controller.close()


# ============================================
# Startup and Default Pair
# ============================================

class TestStart:

    @pytest.mark.asyncio
    async def test_status_before_start_is_loading(self, controller):
        assert controller.status_title() == LOADING_LABEL

    @pytest.mark.asyncio
    async def test_start_loads_persisted_site_and_selects_default(self, controller, config):
        await controller.start()
        await settle()

        assert isinstance(controller.exchange, FakeBitstamp)
        assert controller.exchange.state is ExchangeState.ACTIVE
        assert config.selected_currency_pairs == (BTC_USD,)
        assert list(controller.exchange._stream_tasks) == [BTC_USD]

    @pytest.mark.asyncio
    async def test_start_keeps_existing_selection(self, controller, config):
        config.select_currency_pair(ETH_USD)

        await controller.start()

        assert config.selected_currency_pairs == (ETH_USD,)

    @pytest.mark.asyncio
    async def test_default_prefers_local_currency(self, config, manager):
        controller = TickerController(config, manager, local_currency_code="EUR")
        await controller.start()

        assert config.selected_currency_pairs == (BTC_EUR,)
        await controller.close()


# ============================================
# Status Line
# ============================================

class TestStatusTitle:

    @pytest.mark.asyncio
    async def test_single_pair_shows_price_only(self, controller, config):
        await controller.start()
        await settle()
        assert controller.status_title() == LOADING_LABEL

        await controller.exchange.stream_queues["BTC/USD"].put(47123.45)
        await settle()

        assert controller.status_title() == "$47,123.45"

    @pytest.mark.asyncio
    async def test_multiple_pairs_are_joined(self, controller, config):
        config.select_currency_pair(BTC_USD)
        config.select_currency_pair(ETH_USD)
        await controller.start()
        await settle()

        await controller.exchange.stream_queues["BTC/USD"].put(47123.45)
        await settle()

        assert controller.status_title() == f"BTC: $47,123.45 • ETH: {LOADING_LABEL}"

    @pytest.mark.asyncio
    async def test_load_failure_shows_no_pairs(self, controller, monkeypatch):
        monkeypatch.setattr(FakeBitstamp, "discovery_failures", 1)

        await controller.start()

        assert controller.exchange.state is ExchangeState.LOAD_FAILED
        assert controller.status_title() == NO_PAIRS_LABEL

    @pytest.mark.asyncio
    async def test_offline_label(self, controller):
        await controller.start()
        await controller.set_reachable(False)

        assert controller.status_title() == OFFLINE_LABEL


# ============================================
# Configuration Events
# ============================================

class TestConfigurationEvents:

    @pytest.mark.asyncio
    async def test_selection_change_restarts_acquisition(self, controller, config):
        await controller.start()
        await settle()

        config.select_currency_pair(ETH_USD)
        await settle()

        assert sorted(controller.exchange._stream_tasks) == [BTC_USD, ETH_USD]

    @pytest.mark.asyncio
    async def test_interval_change_switches_to_polling(self, controller, config):
        await controller.start()
        await settle()

        config.select_update_interval(UpdateInterval.THIRTY_SECONDS)
        await settle()

        assert controller.exchange._stream_tasks == {}
        assert controller.exchange._poll_task is not None
        assert config.price(BTC_USD) == 1.0

    @pytest.mark.asyncio
    async def test_changes_while_suspended_apply_on_wake(self, controller, config):
        await controller.start()
        await controller.sleep()
        assert controller.exchange.state is ExchangeState.SUSPENDED

        config.select_update_interval(UpdateInterval.ONE_MINUTE)
        await settle()
        assert controller.exchange._poll_task is None

        await controller.wake()
        await settle()

        assert controller.exchange.state is ExchangeState.ACTIVE
        assert controller.exchange._poll_task is not None


# ============================================
# Reachability
# ============================================

class TestReachability:

    @pytest.mark.asyncio
    async def test_unreachable_stops_and_reachable_resumes(self, controller):
        await controller.start()

        await controller.set_reachable(False)
        assert controller.exchange.state is ExchangeState.SUSPENDED

        await controller.set_reachable(True)
        assert controller.exchange.state is ExchangeState.ACTIVE

    @pytest.mark.asyncio
    async def test_reachable_replaces_failed_exchange(self, controller, config, monkeypatch):
        monkeypatch.setattr(FakeBitstamp, "discovery_failures", 1)
        await controller.start()
        failed = controller.exchange

        await controller.set_reachable(True)

        assert controller.exchange is not failed
        assert failed.state is ExchangeState.STOPPED
        assert controller.exchange.state is ExchangeState.ACTIVE
        assert config.selected_currency_pairs == (BTC_USD,)

    @pytest.mark.asyncio
    async def test_start_while_unreachable_waits(self, controller):
        controller.reachable = False
        await controller.start()
        assert controller.exchange.state is ExchangeState.IDLE

        await controller.set_reachable(True)
        assert controller.exchange.state is ExchangeState.ACTIVE


# ============================================
# Exchange Switching
# ============================================

class TestSelectExchangeSite:

    @pytest.mark.asyncio
    async def test_switch_site(self, controller, config):
        await controller.start()
        await settle()
        await controller.exchange.stream_queues["BTC/USD"].put(47123.45)
        await settle()
        old = controller.exchange

        await controller.select_exchange_site("binance")

        assert old.state is ExchangeState.STOPPED
        assert old.closed
        assert isinstance(controller.exchange, FakeBinance)
        assert config.default_exchange_site is ExchangeSite.BINANCE
        assert config.price(BTC_USD) == 0.0
        # BTC/USD is not listed on the new exchange, the USD default is picked again
        assert config.selected_currency_pairs == (ETH_USD,)

    @pytest.mark.asyncio
    async def test_same_site_is_a_noop(self, controller):
        await controller.start()
        exchange = controller.exchange

        await controller.select_exchange_site(ExchangeSite.BITSTAMP)

        assert controller.exchange is exchange
        assert exchange.state is ExchangeState.ACTIVE

    @pytest.mark.asyncio
    async def test_unknown_site_raises(self, controller):
        await controller.start()
        with pytest.raises(ValueError):
            await controller.select_exchange_site("mtgox")


# ============================================
# Shutdown
# ============================================

class TestClose:

    @pytest.mark.asyncio
    async def test_close_shuts_exchange_down(self, config, manager):
        controller = TickerController(config, manager)
        await controller.start()

        await controller.close()

        assert controller.exchange.state is ExchangeState.STOPPED
        config.select_currency_pair(ETH_USD)
        await settle()
        assert controller.exchange._stream_tasks == {}
