"""Custom exceptions for the settlement trade backfill.

All chain, API, persistence and setup exceptions live here
to avoid circular imports between modules.
"""

from typing import Any


class TradeSyncError(Exception):
    """Base exception for all tradesync errors."""


class ProviderError(TradeSyncError):
    """Raised when an RPC call to the chain provider fails.

    ``data`` and ``details`` carry whatever extra payload the provider
    attached to its error response. The capacity classifier inspects them
    alongside the message.
    """

    def __init__(
        self,
        message: str,
        *,
        data: Any = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.data = data
        self.details = details


class TradeApiError(TradeSyncError):
    """Raised when the order API fails for a reason other than 404."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class InvalidAmountError(TradeSyncError):
    """Raised when an order amount cannot be rendered as an integer string."""


class SetupError(TradeSyncError):
    """Raised when a network sync cannot start (config, head lookup, database)."""


class UnsupportedNetworkError(SetupError):
    """Raised when a chain id has no entry in the network registry."""
