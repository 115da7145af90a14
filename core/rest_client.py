"""
Shared REST Client

Async HTTP client every exchange API client builds on. It handles:
- aiohttp session lifecycle (async context manager)
- Retry with linear backoff on rate limits (429, 418, 503) and transport errors
- JSON decoding
- Request/response logging

Usage:
    class BitstampAPIClient(RESTClient):
        exchange_name = "bitstamp"

    async with BitstampAPIClient("https://www.bitstamp.net") as client:
        data = await client._get("/api/v2/ticker/btcusd/")
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional

import aiohttp

from core.config import settings
from core.exchange_interface import ExchangeAPIError, ExchangeDecodeError
from core.logging import get_logger, log_api_request, log_api_response

RETRYABLE_STATUSES = (429, 418, 503)


class RESTClient:
    """
    Base async HTTP client for exchange REST APIs.

    Attributes:
        exchange_name: Name used in log lines and errors
        base_url: API base URL without trailing slash
        timeout: Total timeout per request in seconds
        max_attempts: Attempts before a request is reported as failed
        session: aiohttp ClientSession, created on enter
    """

    exchange_name = "exchange"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.max_attempts = max_attempts if max_attempts is not None else settings.request_max_attempts
        self.session: Optional[aiohttp.ClientSession] = None
        self.logger = get_logger(f"exchanges.{self.exchange_name}.api_client")

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self.logger.debug(f"{self.__class__.__name__} session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session. Safe to call multiple times."""
        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.debug(f"{self.__class__.__name__} session closed")

    # ============================================
    # HTTP Request Handler with Retry Logic
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a GET request and return the decoded JSON body.

        Rate limit statuses and transport errors are retried with a delay of
        1.5s * attempt (rate limits) or 1s * attempt (transport errors).
        Any other non-200 status fails immediately.

        Raises:
            RuntimeError: If the session is not open
            ExchangeAPIError: If the request fails or all attempts are used up
            ExchangeDecodeError: If the body is not valid JSON
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        log_api_request(self.exchange_name, path, params)

        for attempt in range(self.max_attempts):
            last_attempt = attempt + 1 == self.max_attempts
            started = time.monotonic()
            try:
                async with self.session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as resp:
                    log_api_response(self.exchange_name, path, resp.status, time.monotonic() - started)

                    if resp.status == 200:
                        text = await resp.text()
                        try:
                            return json.loads(text)
                        except json.JSONDecodeError as e:
                            raise ExchangeDecodeError(
                                f"{self.exchange_name}: invalid JSON from {path}: {text[:100]!r}"
                            ) from e

                    if resp.status not in RETRYABLE_STATUSES:
                        text = await resp.text()
                        raise ExchangeAPIError(
                            f"{self.exchange_name}: HTTP {resp.status} on {path}: {text[:200]}",
                            status=resp.status,
                        )

                delay = 1.5 * (attempt + 1)
                action = "Giving up" if last_attempt else f"Retrying in {delay:.1f}s..."
                self.logger.warning(
                    f"Rate limited (HTTP {resp.status}) on {path}. {action} "
                    f"(attempt {attempt + 1}/{self.max_attempts})"
                )

            except asyncio.TimeoutError:
                self.logger.warning(f"Timeout on {path} (attempt {attempt + 1}/{self.max_attempts})")
                delay = 1.0 * (attempt + 1)

            except aiohttp.ClientError as e:
                self.logger.warning(f"Request failed on {path}: {e} (attempt {attempt + 1}/{self.max_attempts})")
                delay = 1.0 * (attempt + 1)

            # the response is released before backing off
            if not last_attempt:
                await asyncio.sleep(delay)

        raise ExchangeAPIError(f"{self.exchange_name}: failed to fetch {url} after {self.max_attempts} attempts")
