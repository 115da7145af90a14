"""
Unit Tests for the Shared REST Client

These tests verify that RESTClient:
- Decodes JSON bodies
- Retries rate limits and transport errors, then gives up
- Fails fast on other HTTP errors

Run with:
    pytest tests/unit/test_rest_client.py -v
"""

import asyncio
from unittest.mock import AsyncMock

import aiohttp
import pytest
import pytest_asyncio

from core.exchange_interface import ExchangeAPIError, ExchangeDecodeError
from core.rest_client import RESTClient


# ============================================
# Fixtures
# ============================================

class MockResponse:
    def __init__(self, status, body=""):
        self.status = status
        self._body = body
        self.released = False

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.released = True


def scripted_get(*outcomes):
    """Build a session.get replacement returning (or raising) outcomes in order."""
    calls = []
    remaining = list(outcomes)

    def mock_get(url, params=None, timeout=None):
        calls.append((url, params))
        outcome = remaining.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return mock_get, calls


@pytest_asyncio.fixture
async def rest_client():
    async with RESTClient("https://api.example.com/", timeout=5, max_attempts=3) as client:
        yield client


@pytest.fixture
def no_sleep(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("core.rest_client.asyncio.sleep", sleep)
    return sleep


# ============================================
# Tests
# ============================================

class TestGet:

    @pytest.mark.asyncio
    async def test_returns_decoded_json(self, rest_client):
        mock_get, calls = scripted_get(MockResponse(200, '{"last": "47123.45"}'))
        rest_client.session.get = mock_get

        result = await rest_client._get("/api/v2/ticker/btcusd/", {"a": 1})

        assert result == {"last": "47123.45"}
        assert calls == [("https://api.example.com/api/v2/ticker/btcusd/", {"a": 1})]

    @pytest.mark.asyncio
    async def test_invalid_json_raises_decode_error(self, rest_client):
        mock_get, _ = scripted_get(MockResponse(200, "<html>"))
        rest_client.session.get = mock_get

        with pytest.raises(ExchangeDecodeError):
            await rest_client._get("/test")

    @pytest.mark.asyncio
    async def test_retries_on_rate_limit(self, rest_client, no_sleep):
        mock_get, calls = scripted_get(
            MockResponse(429, "Too many requests"),
            MockResponse(503, "Unavailable"),
            MockResponse(200, "[1, 2]"),
        )
        rest_client.session.get = mock_get

        assert await rest_client._get("/test") == [1, 2]
        assert len(calls) == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [1.5, 3.0]

    @pytest.mark.asyncio
    async def test_retries_on_transport_errors(self, rest_client, no_sleep):
        mock_get, calls = scripted_get(
            aiohttp.ClientConnectionError("reset"),
            asyncio.TimeoutError(),
            MockResponse(200, "{}"),
        )
        rest_client.session.get = mock_get

        assert await rest_client._get("/test") == {}
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_fails_after_max_attempts(self, rest_client, no_sleep):
        mock_get, calls = scripted_get(*[MockResponse(429) for _ in range(3)])
        rest_client.session.get = mock_get

        with pytest.raises(ExchangeAPIError, match="after 3 attempts"):
            await rest_client._get("/test")
        assert len(calls) == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [1.5, 3.0]

    @pytest.mark.asyncio
    async def test_backoff_happens_after_response_is_released(self, rest_client, monkeypatch):
        first = MockResponse(429, "Too many requests")
        mock_get, _ = scripted_get(first, MockResponse(200, "{}"))
        rest_client.session.get = mock_get
        released_when_sleeping = []

        async def sleep(delay):
            released_when_sleeping.append(first.released)

        monkeypatch.setattr("core.rest_client.asyncio.sleep", sleep)

        assert await rest_client._get("/test") == {}
        assert released_when_sleeping == [True]

    @pytest.mark.asyncio
    async def test_no_backoff_after_final_transport_error(self, rest_client, no_sleep):
        mock_get, _ = scripted_get(*[asyncio.TimeoutError() for _ in range(3)])
        rest_client.session.get = mock_get

        with pytest.raises(ExchangeAPIError):
            await rest_client._get("/test")
        assert [c.args[0] for c in no_sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_other_status_fails_immediately(self, rest_client, no_sleep):
        mock_get, calls = scripted_get(MockResponse(404, "Not found"))
        rest_client.session.get = mock_get

        with pytest.raises(ExchangeAPIError) as exc_info:
            await rest_client._get("/missing")

        assert exc_info.value.status == 404
        assert len(calls) == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_open_session(self):
        client = RESTClient("https://api.example.com")
        with pytest.raises(RuntimeError):
            await client._get("/test")

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = RESTClient("https://api.example.com")
        await client.__aenter__()
        await client.close()
        await client.close()
        assert client.session.closed
