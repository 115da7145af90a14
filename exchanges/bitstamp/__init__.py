"""
Bitstamp Exchange Backend

Implements ExchangeInterface for Bitstamp spot markets.

API Documentation:
    https://www.bitstamp.net/api/

Endpoints Used:
    REST:
        - GET /api/v2/trading-pairs-info/ - Pair discovery
        - GET /api/v2/ticker/{url_symbol}/ - Last price (polling)

    WebSocket (Pusher protocol):
        - live_trades / live_trades_{url_symbol} channels (real-time)

Structure:
    exchanges/bitstamp/
    ├── __init__.py          # This file (BitstampExchange class)
    ├── api_client.py        # REST client
    └── ws_client.py         # Pusher live trades client
"""

from typing import AsyncGenerator, List, Optional

from core.exchange_interface import ExchangeInterface
from core.schemas import CurrencyPair, ExchangeSite
from core.ticker_config import TickerConfig
from .api_client import BitstampAPIClient
from .ws_client import BitstampWSClient


class BitstampExchange(ExchangeInterface):
    """
    Bitstamp backend.

    Discovery uses the trading-pairs-info catalog (url_symbol becomes the
    pair's custom_code). Polling reads the ticker's "last" field; streaming
    opens one Pusher connection per selected pair.

    Example:
        >>> exchange = BitstampExchange(ticker_config)
        >>> await exchange.load()      # discovers pairs, starts fetching
        >>> await exchange.stop()
        >>> await exchange.shutdown()
    """

    site = ExchangeSite.BITSTAMP

    def __init__(self, config: TickerConfig, client: Optional[BitstampAPIClient] = None):
        super().__init__(config)
        self.client = client or BitstampAPIClient()

    async def _open(self) -> None:
        await self.client.__aenter__()

    async def _close(self) -> None:
        await self.client.close()

    async def _fetch_currency_pairs(self) -> List[CurrencyPair]:
        return await self.client.get_currency_pairs()

    async def _fetch_price(self, currency_pair: CurrencyPair) -> float:
        return await self.client.get_last_price(currency_pair)

    async def _stream_prices(self, currency_pair: CurrencyPair) -> AsyncGenerator[float, None]:
        async for price in BitstampWSClient(currency_pair).listen():
            yield price
