"""Async SQLite database manager for per-network trade persistence.

Uses aiosqlite for non-blocking database operations. Every write commits
before returning and synchronous=FULL makes each commit durable, so a process
killed between batches never loses or corrupts committed rows.
"""

import os
from typing import Self

import aiosqlite

from tradesync.exceptions import SetupError
from tradesync.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS transactions (
    hash TEXT PRIMARY KEY,
    block_number INTEGER NOT NULL,
    creation_date TEXT NOT NULL,
    sell_token TEXT NOT NULL,
    buy_token TEXT NOT NULL,
    sell_amount TEXT NOT NULL,
    buy_amount TEXT NOT NULL,
    executed_sell_amount TEXT NOT NULL,
    executed_buy_amount TEXT NOT NULL,
    executed_sell_amount_before_fees TEXT NOT NULL,
    kind TEXT NOT NULL,
    receiver TEXT,
    order_uid TEXT,
    owner TEXT,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS token_metadata (
    address TEXT NOT NULL,
    network_id TEXT NOT NULL,
    name TEXT NOT NULL,
    symbol TEXT NOT NULL,
    decimals INTEGER NOT NULL,
    cached_at INTEGER NOT NULL,
    UNIQUE (address, network_id)
);

CREATE TABLE IF NOT EXISTS block_timestamps (
    block_number INTEGER NOT NULL,
    network_id TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    cached_at INTEGER NOT NULL,
    UNIQUE (block_number, network_id)
);
"""

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_transactions_block_number
    ON transactions(block_number DESC);

CREATE INDEX IF NOT EXISTS idx_transactions_creation_date
    ON transactions(creation_date DESC);

CREATE INDEX IF NOT EXISTS idx_transactions_sell_token
    ON transactions(sell_token);

CREATE INDEX IF NOT EXISTS idx_transactions_buy_token
    ON transactions(buy_token);

CREATE INDEX IF NOT EXISTS idx_token_metadata_cached_at
    ON token_metadata(cached_at);

CREATE INDEX IF NOT EXISTS idx_block_timestamps_timestamp
    ON block_timestamps(network_id, timestamp);

CREATE INDEX IF NOT EXISTS idx_block_timestamps_cached_at
    ON block_timestamps(cached_at);
"""


def database_path(data_dir: str, database_name: str) -> str:
    """Return the file path of a network's database inside data_dir."""
    return os.path.join(data_dir, f"{database_name}.db")


class TradeDatabase:
    """Async SQLite connection manager for one network's trade file.

    Manages database lifecycle including schema creation, pragma
    configuration, and clean resource cleanup.

    Usage:
        # Context manager (recommended)
        async with TradeDatabase("data/mainnet-visualiser.db") as db:
            await db.db.execute("SELECT ...")

        # Manual lifecycle
        db = TradeDatabase("data/mainnet-visualiser.db")
        await db.connect()
        try:
            await db.db.execute("SELECT ...")
        finally:
            await db.close()
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open database connection, configure pragmas, and create schema.

        Creates the parent directory if it does not exist.
        """
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=FULL")

        try:
            await self._create_tables()
            await self._check_schema_version()
        except Exception:
            await self.close()
            raise

        logger.info("trade_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("trade_db_closed", db_path=self._db_path)

    async def _create_tables(self) -> None:
        """Create all tables and indexes if they do not exist."""
        assert self._connection is not None
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.executescript(_CREATE_INDEXES_SQL)
        await self._connection.commit()

    async def _check_schema_version(self) -> None:
        """Stamp a fresh file with SCHEMA_VERSION; refuse files from a newer release."""
        assert self._connection is not None
        cursor = await self._connection.execute("SELECT MAX(version) FROM schema_version")
        (stored,) = await cursor.fetchone()
        if stored is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
            await self._connection.commit()
            logger.info("schema_version_set", db_path=self._db_path, version=SCHEMA_VERSION)
        elif stored > SCHEMA_VERSION:
            raise SetupError(
                f"{self._db_path} has schema version {stored}; "
                f"this release supports up to {SCHEMA_VERSION}"
            )

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        """Async context manager exit."""
        await self.close()
