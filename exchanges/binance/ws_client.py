"""
Binance WebSocket Client

Async WebSocket streaming of Binance spot trades. The stream is selected by
the URL, no subscription message is sent:

    wss://stream.binance.com:9443/ws/<lowercase symbol>@trade

Message Format:
    {
      "e": "trade",
      "E": 1672515782136,
      "s": "BTCUSDT",
      "t": 12345,
      "p": "47123.45",   // Price
      "q": "0.0100",     // Quantity
      "T": 1672515782136,
      "m": true
    }

The client does not reconnect: when the server closes the connection or an
error frame arrives, listen() returns.

Usage:
    async with create_trade_stream("BTCUSDT") as client:
        async for message in client.listen():
            price = parse_trade_message(message)
"""

import json
from typing import Any, AsyncGenerator, Dict, Optional

import aiohttp

from core.config import settings
from core.exchange_interface import ExchangeDecodeError
from core.logging import get_logger, log_websocket_event
from exchanges.binance.api_client import parse_price

logger = get_logger(__name__)


def parse_trade_message(message: Dict[str, Any]) -> Optional[float]:
    """
    Extract the trade price from one stream message.

    Returns:
        The price, or None for non-trade or malformed messages (logged)
    """
    if message.get("e") != "trade":
        logger.debug(f"Ignoring Binance message type: {message.get('e')}")
        return None

    try:
        return parse_price(message.get("p"), "trade event")
    except ExchangeDecodeError as e:
        logger.warning(f"Dropping malformed Binance trade: {e}")
        return None


class BinanceWebSocketClient:
    """
    Async WebSocket client for one Binance stream.

    Attributes:
        BASE_URL: Default stream base URL
        symbol: Trading pair (lowercase, e.g., "btcusdt")
        stream: Stream type (e.g., "trade")
        session: aiohttp ClientSession for the WebSocket
        ws: Active WebSocket connection

    Example:
        >>> async with BinanceWebSocketClient("BTCUSDT", "trade") as client:
        ...     async for msg in client.listen():
        ...         print(msg["p"])
    """

    BASE_URL = "wss://stream.binance.com:9443/ws"

    def __init__(self, symbol: str, stream: str, base_url: Optional[str] = None):
        self.symbol = symbol.lower()  # Binance requires lowercase
        self.stream = stream
        self.base_url = (base_url or settings.binance_ws_url or self.BASE_URL).rstrip("/")

        self.session: Optional[aiohttp.ClientSession] = None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.symbol}@{self.stream}"

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        logger.debug(f"BinanceWebSocketClient session created for {self.symbol}@{self.stream}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        logger.debug(f"BinanceWebSocketClient session closed for {self.symbol}@{self.stream}")

    # ============================================
    # WebSocket Connection Management
    # ============================================

    async def connect(self) -> None:
        """
        Establish the WebSocket connection.

        Raises:
            RuntimeError: If session not initialized
            aiohttp.ClientError: If connection fails
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        log_websocket_event("binance", "connecting", self.symbol.upper(), self.url)
        self.ws = await self.session.ws_connect(self.url, heartbeat=30)
        log_websocket_event("binance", "connected", self.symbol.upper(), self.stream)

    async def close(self) -> None:
        """
        Close WebSocket connection and session. Safe to call multiple times.
        """
        if self.ws and not self.ws.closed:
            await self.ws.close()

        if self.session and not self.session.closed:
            await self.session.close()

    # ============================================
    # Message Streaming
    # ============================================

    async def listen(self) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Yield parsed JSON messages until the connection ends.

        Invalid JSON is logged and skipped. CLOSED and ERROR frames end the
        stream (no reconnection).
        """
        if not self.ws or self.ws.closed:
            await self.connect()

        async for msg in self.ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    data = json.loads(msg.data)
                except json.JSONDecodeError as e:
                    logger.warning(f"Failed to parse JSON: {msg.data[:100]}... Error: {e}")
                    continue

                if isinstance(data, dict):
                    yield data
                else:
                    logger.warning(f"Unexpected Binance message: {msg.data[:100]}")

            elif msg.type == aiohttp.WSMsgType.CLOSED:
                log_websocket_event("binance", "dropped", self.symbol.upper(), f"closed: {msg.data}")
                break

            elif msg.type == aiohttp.WSMsgType.ERROR:
                log_websocket_event("binance", "dropped", self.symbol.upper(), f"error: {msg.data}")
                break

            else:
                logger.debug(f"Received message type: {msg.type}")

        log_websocket_event("binance", "closed", self.symbol.upper(), self.stream)


def create_trade_stream(symbol: str) -> BinanceWebSocketClient:
    """
    Create a WebSocket client for the trade stream of one symbol.

    Example:
        >>> async with create_trade_stream("BTCUSDT") as client:
        ...     async for msg in client.listen():
        ...         print(f"Trade: {msg['q']} @ {msg['p']}")
    """
    return BinanceWebSocketClient(symbol, "trade")
