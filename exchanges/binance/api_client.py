"""
Binance REST API Client

Async client for the public Binance spot endpoints the ticker needs.

API Documentation:
    https://developers.binance.com/docs/binance-spot-api-docs/rest-api

Endpoints Used:
    - GET /api/v3/exchangeInfo - Symbol catalog (discovery)
    - GET /api/v3/ticker/price?symbol={symbol} - Last price of one symbol (polling)

Usage:
    async with BinanceAPIClient() as client:
        pairs = await client.get_currency_pairs()
        price = await client.get_last_price(pairs[0])
"""

import math
from typing import Any, List, Optional

from core.config import settings
from core.exchange_interface import ExchangeDecodeError
from core.rest_client import RESTClient
from core.schemas import CurrencyPair


def symbol_for(currency_pair: CurrencyPair) -> str:
    """Binance symbol for a pair ("BTCUSDT")."""
    if currency_pair.custom_code:
        return currency_pair.custom_code
    return f"{currency_pair.base_currency.code}{currency_pair.quote_currency.code}"


def parse_price(value: Any, context: str) -> float:
    """
    Convert a Binance price string to a non-negative float.

    Raises:
        ExchangeDecodeError: If the value is missing, not numeric, negative or not finite
    """
    try:
        price = float(value)
    except (TypeError, ValueError) as e:
        raise ExchangeDecodeError(f"binance: invalid price {value!r} in {context}") from e

    if not math.isfinite(price) or price < 0:
        raise ExchangeDecodeError(f"binance: invalid price {value!r} in {context}")
    return price


class BinanceAPIClient(RESTClient):
    """
    Async HTTP client for the Binance spot REST API.

    No API key is needed; every endpoint used here is public.
    """

    exchange_name = "binance"

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url or settings.binance_api_url, **kwargs)

    async def get_currency_pairs(self) -> List[CurrencyPair]:
        """
        Fetch the symbol catalog and keep the tradable, known pairs.

        Response Format:
            {
              "timezone": "UTC",
              "symbols": [
                {
                  "symbol": "BTCUSDT",
                  "status": "TRADING",
                  "baseAsset": "BTC",
                  "quoteAsset": "USDT",
                  ...
                }
              ]
            }
        """
        data = await self._get("/api/v3/exchangeInfo")
        symbols = data.get("symbols") if isinstance(data, dict) else None
        if not isinstance(symbols, list):
            raise ExchangeDecodeError("binance: exchangeInfo response has no symbols list")

        currency_pairs: List[CurrencyPair] = []
        for item in symbols:
            if not isinstance(item, dict) or item.get("status") != "TRADING":
                continue

            currency_pair = CurrencyPair.build(
                item.get("baseAsset"),
                item.get("quoteAsset"),
                custom_code=item.get("symbol") or None,
            )
            if currency_pair is not None:
                currency_pairs.append(currency_pair)

        self.logger.info(f"Fetched {len(currency_pairs)} currency pairs out of {len(symbols)} symbols")
        return currency_pairs

    async def get_last_price(self, currency_pair: CurrencyPair) -> float:
        """
        Fetch the last traded price of a pair.

        Response Format:
            {"symbol": "BTCUSDT", "price": "47123.45000000"}
        """
        symbol = symbol_for(currency_pair)
        data = await self._get("/api/v3/ticker/price", {"symbol": symbol})
        if not isinstance(data, dict):
            raise ExchangeDecodeError(f"binance: expected an object for {symbol}, got {type(data).__name__}")
        return parse_price(data.get("price"), f"ticker/price {symbol}")
