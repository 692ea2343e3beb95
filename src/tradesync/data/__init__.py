"""Trade persistence layer.

Per-network SQLite database management, the idempotent trade store, and
TTL cache tables for block timestamps and token metadata.
"""

from tradesync.data.cache import BlockTimestampCache, TokenMetadataCache
from tradesync.data.database import TradeDatabase, database_path
from tradesync.data.store import StoreStats, TradeFilter, TradeStore

__all__ = [
    "BlockTimestampCache",
    "StoreStats",
    "TokenMetadataCache",
    "TradeDatabase",
    "TradeFilter",
    "TradeStore",
    "database_path",
]
