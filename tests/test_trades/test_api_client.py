"""Tests for TradeApiClient using a fake aiohttp session."""

import asyncio
import json
from decimal import Decimal

import aiohttp
import pytest

from tradesync.exceptions import TradeApiError
from tradesync.trades.api_client import TradeApiClient

TX = "0x" + "ab" * 32


class _FakeResponse:
    def __init__(self, status: int, body: str | bytes) -> None:
        self.status = status
        self._body = body.encode() if isinstance(body, str) else body

    async def text(self, errors: str = "strict") -> str:
        return self._body.decode("utf-8", errors=errors)

    async def json(self, loads=json.loads, content_type="application/json"):
        return loads(self._body.decode("utf-8"))

    async def __aenter__(self) -> "_FakeResponse":
        return self

    async def __aexit__(self, *args) -> None:
        return None


class _FakeSession:
    def __init__(self, status: int = 200, body: str | bytes = "[]", error: BaseException | None = None) -> None:
        self.status = status
        self.body = body
        self.error = error
        self.urls: list[str] = []
        self.closed = False

    def get(self, url: str) -> _FakeResponse:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.status, self.body)

    async def close(self) -> None:
        self.closed = True


class TestOrdersForTransaction:
    @pytest.mark.asyncio
    async def test_builds_url_and_returns_orders(self) -> None:
        session = _FakeSession(body=json.dumps([{"uid": "0x1"}, {"uid": "0x2"}]))
        client = TradeApiClient("https://api.test/mainnet/api/v1/", session=session)

        orders = await client.orders_for_transaction(TX)

        assert [o["uid"] for o in orders] == ["0x1", "0x2"]
        assert session.urls == [f"https://api.test/mainnet/api/v1/transactions/{TX}/orders"]

    @pytest.mark.asyncio
    async def test_numeric_amounts_parsed_as_decimal(self) -> None:
        session = _FakeSession(body='[{"sellAmount": 1.2345e+23}]')
        client = TradeApiClient("https://api.test", session=session)

        orders = await client.orders_for_transaction(TX)

        assert isinstance(orders[0]["sellAmount"], Decimal)
        assert orders[0]["sellAmount"] == Decimal("1.2345e+23")

    @pytest.mark.asyncio
    async def test_404_is_empty(self) -> None:
        client = TradeApiClient("https://api.test", session=_FakeSession(status=404, body="not found"))
        assert await client.orders_for_transaction(TX) == []

    @pytest.mark.asyncio
    async def test_server_error_raises_with_status(self) -> None:
        client = TradeApiClient("https://api.test", session=_FakeSession(status=503, body="unavailable"))

        with pytest.raises(TradeApiError) as exc_info:
            await client.orders_for_transaction(TX)

        assert exc_info.value.status_code == 503
        assert exc_info.value.url.endswith("/orders")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [aiohttp.ClientConnectionError("reset by peer"), asyncio.TimeoutError()],
    )
    async def test_transport_errors_raise(self, error: BaseException) -> None:
        client = TradeApiClient("https://api.test", session=_FakeSession(error=error))

        with pytest.raises(TradeApiError) as exc_info:
            await client.orders_for_transaction(TX)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_html_body_raises_api_error(self) -> None:
        client = TradeApiClient("https://api.test", session=_FakeSession(body="<html>"))

        with pytest.raises(TradeApiError) as exc_info:
            await client.orders_for_transaction(TX)

        assert exc_info.value.status_code == 200
        assert "non-JSON" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_undecodable_error_body_raises_api_error(self) -> None:
        session = _FakeSession(status=502, body=b"<html>\xff\xfe bad gateway</html>")
        client = TradeApiClient("https://api.test", session=session)

        with pytest.raises(TradeApiError) as exc_info:
            await client.orders_for_transaction(TX)

        assert exc_info.value.status_code == 502
        assert "bad gateway" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_list_body_raises(self) -> None:
        client = TradeApiClient("https://api.test", session=_FakeSession(body='{"errorType": "x"}'))

        with pytest.raises(TradeApiError):
            await client.orders_for_transaction(TX)


class TestSessionOwnership:
    @pytest.mark.asyncio
    async def test_shared_session_not_closed(self) -> None:
        session = _FakeSession()
        async with TradeApiClient("https://api.test", session=session) as client:
            await client.orders_for_transaction(TX)

        assert session.closed is False
