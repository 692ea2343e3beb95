"""Abstract chain reader interface.

Defines the contract the backfill engine consumes from an RPC endpoint.
Engine, locator and caches depend only on this interface, keeping the
web3-specific details isolated in the concrete implementation.

Every method raises ProviderError on network or RPC failure. The error's
message, data and details are what the capacity classifier inspects.
"""

from abc import ABC, abstractmethod

from tradesync.models import RawEvent, TokenMetadata


class ChainReader(ABC):
    """Abstract base class for chain RPC readers."""

    @abstractmethod
    async def latest_block_number(self) -> int:
        """Return the current chain head."""
        ...

    @abstractmethod
    async def block_timestamp(self, block_number: int) -> int:
        """Return the unix timestamp (seconds) of a block."""
        ...

    @abstractmethod
    async def events_in_range(self, from_block: int, to_block: int) -> list[RawEvent]:
        """Return settlement Trade events in [from_block, to_block], inclusive.

        Pagination is NOT handled here -- callers choose the range and must
        shrink it when the provider rejects it as too large.
        """
        ...

    @abstractmethod
    async def token_metadata(self, address: str) -> TokenMetadata:
        """Read ERC-20 name, symbol and decimals for a token contract."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP session."""
        ...
