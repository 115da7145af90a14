"""
Bitstamp REST API Client

Async client for the two public Bitstamp endpoints the ticker needs.

API Documentation:
    https://www.bitstamp.net/api/

Endpoints Used:
    - GET /api/v2/trading-pairs-info/ - Tradable pair catalog (discovery)
    - GET /api/v2/ticker/{url_symbol}/ - Last price of one pair (polling)

Usage:
    async with BitstampAPIClient() as client:
        pairs = await client.get_currency_pairs()
        price = await client.get_last_price(pairs[0])
"""

import math
from typing import Any, List, Optional

from core.config import settings
from core.exchange_interface import ExchangeDecodeError
from core.rest_client import RESTClient
from core.schemas import CurrencyPair


def product_id(currency_pair: CurrencyPair) -> str:
    """Bitstamp's url_symbol for a pair ("btcusd")."""
    if currency_pair.custom_code:
        return currency_pair.custom_code
    return f"{currency_pair.base_currency.code}{currency_pair.quote_currency.code}".lower()


def parse_price(value: Any, context: str) -> float:
    """
    Convert a price field (string or number) to a non-negative float.

    Raises:
        ExchangeDecodeError: If the value is missing, not numeric, negative or not finite
    """
    try:
        price = float(value)
    except (TypeError, ValueError) as e:
        raise ExchangeDecodeError(f"bitstamp: invalid price {value!r} in {context}") from e

    if not math.isfinite(price) or price < 0:
        raise ExchangeDecodeError(f"bitstamp: invalid price {value!r} in {context}")
    return price


class BitstampAPIClient(RESTClient):
    """
    Async HTTP client for the Bitstamp REST API.

    Example:
        >>> async with BitstampAPIClient() as client:
        ...     pairs = await client.get_currency_pairs()
        ...     print(f"{len(pairs)} pairs")
    """

    exchange_name = "bitstamp"

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        super().__init__(base_url or settings.bitstamp_api_url, **kwargs)

    async def get_currency_pairs(self) -> List[CurrencyPair]:
        """
        Fetch the tradable pair catalog.

        Returns:
            Pairs whose currencies are known and whose base is a crypto
            asset. Disabled markets are skipped.

        Raises:
            ExchangeAPIError: If the request fails
            ExchangeDecodeError: If the response is not a list

        Response Format:
            [
              {
                "name": "BTC/USD",
                "url_symbol": "btcusd",
                "base_decimals": 8,
                "counter_decimals": 0,
                "trading": "Enabled",
                "description": "Bitcoin / U.S. dollar"
              }
            ]
        """
        data = await self._get("/api/v2/trading-pairs-info/")
        if not isinstance(data, list):
            raise ExchangeDecodeError(f"bitstamp: expected a list of pairs, got {type(data).__name__}")

        currency_pairs: List[CurrencyPair] = []
        skipped = 0
        for item in data:
            if not isinstance(item, dict):
                skipped += 1
                continue

            currency_codes = str(item.get("name", "")).split("/")
            if len(currency_codes) != 2 or item.get("trading") == "Disabled":
                skipped += 1
                continue

            currency_pair = CurrencyPair.build(
                currency_codes[0],
                currency_codes[1],
                custom_code=item.get("url_symbol") or None,
            )
            if currency_pair is None:
                skipped += 1
                continue

            currency_pairs.append(currency_pair)

        self.logger.info(f"Fetched {len(currency_pairs)} currency pairs ({skipped} skipped)")
        return currency_pairs

    async def get_last_price(self, currency_pair: CurrencyPair) -> float:
        """
        Fetch the last traded price of a pair.

        Response Format:
            {
              "last": "47123.45",
              "high": "48000.00",
              "low": "46000.00",
              "volume": "1234.5678",
              ...
            }
        """
        path = f"/api/v2/ticker/{product_id(currency_pair)}/"
        data = await self._get(path)
        if not isinstance(data, dict):
            raise ExchangeDecodeError(f"bitstamp: expected an object from {path}, got {type(data).__name__}")
        return parse_price(data.get("last"), path)
