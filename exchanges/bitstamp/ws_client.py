"""
Bitstamp WebSocket Client

Live trade stream for one Bitstamp pair over the Pusher protocol.

Protocol:
    1. Connect to the Pusher app URL
    2. Send {"event": "pusher:subscribe", "data": {"channel": <channel>}}
         channel = "live_trades"              for BTC/USD
         channel = "live_trades_<url_symbol>" for every other pair
    3. Receive {"event": "trade", "channel": ..., "data": "<JSON string>"}
       where the decoded data holds the trade's "price"

Other events (pusher:connection_established,
pusher_internal:subscription_succeeded) are ignored; pusher:error is logged.

The client does not reconnect. When the connection ends, listen() returns.

Usage:
    client = BitstampWSClient(currency_pair)
    async for price in client.listen():
        print(price)
"""

import json
from typing import Any, AsyncGenerator, Dict, Optional

import websockets

from core.config import settings
from core.exchange_interface import ExchangeDecodeError
from core.logging import get_logger, log_websocket_event
from core.schemas import CurrencyPair
from exchanges.bitstamp.api_client import parse_price, product_id

logger = get_logger(__name__)


def channel_name(currency_pair: CurrencyPair) -> str:
    """Pusher channel carrying the live trades of a pair."""
    if currency_pair.identity == ("BTC", "USD"):
        return "live_trades"
    return f"live_trades_{product_id(currency_pair)}"


def parse_message(message: Any) -> Optional[float]:
    """
    Extract the trade price from one Pusher message.

    Returns:
        The price for trade events, None for every other (or malformed)
        message. Malformed messages are logged.
    """
    try:
        data = json.loads(message)
    except (TypeError, ValueError):
        logger.warning(f"Received invalid JSON from Bitstamp: {str(message)[:100]!r}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Unexpected Bitstamp message: {str(message)[:100]!r}")
        return None

    event = data.get("event")
    if event == "trade":
        payload = data.get("data")
        try:
            if isinstance(payload, str):
                payload = json.loads(payload)
            if not isinstance(payload, dict):
                raise ExchangeDecodeError(f"bitstamp: trade data is {type(payload).__name__}")
            return parse_price(payload.get("price"), "trade event")
        except (ValueError, ExchangeDecodeError) as e:
            logger.warning(f"Dropping malformed Bitstamp trade: {e}")
            return None

    if event == "pusher:error":
        logger.warning(f"Bitstamp stream error: {data.get('data')}")
    else:
        logger.debug(f"Ignoring Bitstamp event: {event}")
    return None


class BitstampWSClient:
    """
    Async WebSocket client for one Bitstamp live trades channel.

    Attributes:
        currency_pair: Pair whose trades are streamed
        url: Pusher WebSocket URL
        open_timeout: Seconds allowed for the connection handshake
    """

    def __init__(
        self,
        currency_pair: CurrencyPair,
        url: Optional[str] = None,
        open_timeout: Optional[float] = None
    ):
        self.currency_pair = currency_pair
        self.url = url or settings.bitstamp_ws_url
        self.open_timeout = open_timeout if open_timeout is not None else settings.request_timeout

    @property
    def channel(self) -> str:
        return channel_name(self.currency_pair)

    @property
    def subscription(self) -> Dict[str, Any]:
        return {
            "event": "pusher:subscribe",
            "data": {
                "channel": self.channel
            }
        }

    async def listen(self) -> AsyncGenerator[float, None]:
        """
        Connect, subscribe, and yield trade prices in receipt order.

        Returns when the server closes the connection. Connection failures
        propagate to the caller.
        """
        pair = str(self.currency_pair)
        log_websocket_event("bitstamp", "connecting", pair, self.url)

        async with websockets.connect(self.url, open_timeout=self.open_timeout) as ws:
            await ws.send(json.dumps(self.subscription))
            log_websocket_event("bitstamp", "subscribed", pair, self.channel)

            try:
                async for message in ws:
                    price = parse_message(message)
                    if price is not None:
                        yield price
            except websockets.ConnectionClosedError as e:
                log_websocket_event("bitstamp", "dropped", pair, str(e))
                return

        log_websocket_event("bitstamp", "closed", pair)
