"""Async client for the protocol's order API.

Only one endpoint matters to the backfill: the orders settled by a given
transaction. A 404 means the API knows no orders for that hash and is
returned as an empty list. A non-2xx response, a body that is not a JSON
list, or a transport failure raises TradeApiError. There is no retry
here; a failed transaction is counted by the engine and picked up again on
the next run.
"""

import asyncio
import json
from decimal import Decimal
from functools import partial
from typing import Any, Self

import aiohttp

from tradesync.exceptions import TradeApiError
from tradesync.logging import get_logger

logger = get_logger(__name__)

# Amounts must never become floats, even if the API sends bare JSON numbers
_loads = partial(json.loads, parse_float=Decimal)


class TradeApiClient:
    """Order API client bound to one network's base URL.

    Accepts an optional shared aiohttp.ClientSession. If none is provided,
    one is created lazily and must be closed via close() or by using the
    client as an async context manager.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 15.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        """Close the session if this client owns it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def orders_for_transaction(self, tx_hash: str) -> list[dict]:
        """Return the orders settled in a transaction ([] when none are known)."""
        url = f"{self._base_url}/transactions/{tx_hash}/orders"
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                if response.status == 404:
                    logger.debug("no_orders_for_transaction", tx_hash=tx_hash)
                    return []
                if response.status >= 400:
                    body = await response.text(errors="replace")
                    raise TradeApiError(
                        f"Order API returned HTTP {response.status} for {tx_hash}: {body[:200]}",
                        url=url,
                        status_code=response.status,
                    )
                try:
                    data = await response.json(loads=_loads, content_type=None)
                except ValueError as e:
                    raise TradeApiError(
                        f"Order API returned a non-JSON body for {tx_hash}: {e}",
                        url=url,
                        status_code=response.status,
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TradeApiError(
                f"Order API request failed for {tx_hash}: {type(e).__name__}: {e}",
                url=url,
            ) from e

        if not isinstance(data, list):
            raise TradeApiError(
                f"Order API returned {type(data).__name__} instead of a list for {tx_hash}",
                url=url,
                status_code=200,
            )
        return data
