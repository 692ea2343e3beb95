"""TTL cache tables for RPC results.

Token metadata and block timestamps are immutable on chain but expensive to
fetch, so they are cached per (entity, network) in the network's SQLite file.
An entry is valid while now - cached_at < ttl; stale entries are reported as
misses and are superseded by the next insert-or-replace, never deleted.
"""

import time
from collections.abc import Callable

from tradesync.data.database import TradeDatabase
from tradesync.logging import get_logger
from tradesync.models import TokenMetadata

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60

Clock = Callable[[], float]


class _TtlTable:
    """Shared TTL bookkeeping for the cache tables."""

    def __init__(
        self,
        database: TradeDatabase,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = time.time,
    ) -> None:
        self._database = database
        self._ttl_ms = ttl_seconds * 1000
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _fresh_after_ms(self) -> int:
        """Entries cached strictly after this instant are still valid."""
        return self._now_ms() - self._ttl_ms


class BlockTimestampCache(_TtlTable):
    """block_timestamps table keyed by (block_number, network_id)."""

    async def get(self, block_number: int, network_id: int | str) -> int | None:
        cursor = await self._database.db.execute(
            "SELECT timestamp FROM block_timestamps "
            "WHERE block_number = ? AND network_id = ? AND cached_at > ?",
            (block_number, str(network_id), self._fresh_after_ms()),
        )
        row = await cursor.fetchone()
        return row[0] if row is not None else None

    async def put(self, block_number: int, network_id: int | str, timestamp: int) -> None:
        await self._database.db.execute(
            "INSERT OR REPLACE INTO block_timestamps "
            "(block_number, network_id, timestamp, cached_at) VALUES (?, ?, ?, ?)",
            (block_number, str(network_id), timestamp, self._now_ms()),
        )
        await self._database.db.commit()


class TokenMetadataCache(_TtlTable):
    """token_metadata table keyed by (lowercased address, network_id)."""

    async def get(self, address: str, network_id: int | str) -> TokenMetadata | None:
        cursor = await self._database.db.execute(
            "SELECT address, name, symbol, decimals FROM token_metadata "
            "WHERE address = ? AND network_id = ? AND cached_at > ?",
            (address.lower(), str(network_id), self._fresh_after_ms()),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return TokenMetadata(address=row[0], name=row[1], symbol=row[2], decimals=row[3])

    async def put(self, network_id: int | str, metadata: TokenMetadata) -> None:
        await self._database.db.execute(
            "INSERT OR REPLACE INTO token_metadata "
            "(address, network_id, name, symbol, decimals, cached_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                metadata.address.lower(),
                str(network_id),
                metadata.name,
                metadata.symbol,
                metadata.decimals,
                self._now_ms(),
            ),
        )
        await self._database.db.commit()
        logger.debug("cached_token_metadata", address=metadata.address, symbol=metadata.symbol)
