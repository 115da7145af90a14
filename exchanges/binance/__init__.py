"""
Binance Exchange Backend

Implements ExchangeInterface for Binance spot markets.

API Documentation:
    https://developers.binance.com/docs/binance-spot-api-docs

Endpoints Used:
    REST:
        - GET /api/v3/exchangeInfo - Pair discovery
        - GET /api/v3/ticker/price - Last price (polling)

    WebSocket:
        - wss://stream.binance.com:9443/ws/<symbol>@trade - Live trades (real-time)

Structure:
    exchanges/binance/
    ├── __init__.py          # This file (BinanceExchange class)
    ├── api_client.py        # REST client
    └── ws_client.py         # Trade stream client
"""

from typing import AsyncGenerator, List, Optional

from core.exchange_interface import ExchangeInterface
from core.schemas import CurrencyPair, ExchangeSite
from core.ticker_config import TickerConfig
from .api_client import BinanceAPIClient, symbol_for
from .ws_client import create_trade_stream, parse_trade_message


class BinanceExchange(ExchangeInterface):
    """
    Binance spot backend.

    Discovery keeps symbols with status TRADING whose assets are in the
    currency catalog (the symbol becomes the pair's custom_code). Polling
    reads ticker/price; streaming opens one trade stream per selected pair.
    """

    site = ExchangeSite.BINANCE

    def __init__(self, config: TickerConfig, client: Optional[BinanceAPIClient] = None):
        super().__init__(config)
        self.client = client or BinanceAPIClient()

    async def _open(self) -> None:
        await self.client.__aenter__()

    async def _close(self) -> None:
        await self.client.close()

    async def _fetch_currency_pairs(self) -> List[CurrencyPair]:
        return await self.client.get_currency_pairs()

    async def _fetch_price(self, currency_pair: CurrencyPair) -> float:
        return await self.client.get_last_price(currency_pair)

    async def _stream_prices(self, currency_pair: CurrencyPair) -> AsyncGenerator[float, None]:
        async with create_trade_stream(symbol_for(currency_pair)) as ws_client:
            async for message in ws_client.listen():
                price = parse_trade_message(message)
                if price is not None:
                    yield price
