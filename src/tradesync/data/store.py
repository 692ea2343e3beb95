"""Typed SQLite read/write abstraction for trade records.

Provides TradeStore with idempotent upsert-by-hash, existence checks used for
pre-resolution deduplication, paged queries for downstream consumers and the
block-range deletes used by retention cleanup. All SQL is isolated behind this
interface.

CRITICAL: All amounts stored as TEXT in SQLite and returned as str. They are
passed through sanitize_amount on the way in and are never converted to float.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone

from tradesync.amounts import AMOUNT_FIELDS, sanitize_amount
from tradesync.data.database import TradeDatabase
from tradesync.logging import get_logger
from tradesync.models import OrderKind, TradeRecord

logger = get_logger(__name__)

_COLUMNS = (
    "hash",
    "block_number",
    "creation_date",
    "sell_token",
    "buy_token",
    "sell_amount",
    "buy_amount",
    "executed_sell_amount",
    "executed_buy_amount",
    "executed_sell_amount_before_fees",
    "kind",
    "receiver",
    "order_uid",
    "owner",
)

_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM transactions"

SORTABLE_COLUMNS = frozenset({"block_number", "creation_date", "hash", "kind"})


@dataclass
class StoreStats:
    """Summary of a network's stored trades."""

    total: int
    earliest: datetime | None
    latest: datetime | None
    sell_tokens: int
    buy_tokens: int


@dataclass
class TradeFilter:
    """Optional WHERE criteria for trade queries. None means unconstrained."""

    sell_token: str | None = None
    buy_token: str | None = None
    receiver: str | None = None
    kind: OrderKind | None = None
    from_block: int | None = None
    to_block: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def to_sql(self) -> tuple[str, list]:
        """Render as a WHERE clause (without the keyword) and its parameters."""
        conditions: list[str] = []
        params: list = []

        # Addresses compare case-insensitively; checksum casing varies by source
        for column, value in (
            ("sell_token", self.sell_token),
            ("buy_token", self.buy_token),
            ("receiver", self.receiver),
        ):
            if value is not None:
                conditions.append(f"LOWER({column}) = LOWER(?)")
                params.append(value)

        if self.kind is not None:
            conditions.append("kind = ?")
            params.append(OrderKind(self.kind).value)
        if self.from_block is not None:
            conditions.append("block_number >= ?")
            params.append(self.from_block)
        if self.to_block is not None:
            conditions.append("block_number <= ?")
            params.append(self.to_block)
        if self.start_date is not None:
            conditions.append("creation_date >= ?")
            params.append(_to_db_date(self.start_date))
        if self.end_date is not None:
            conditions.append("creation_date <= ?")
            params.append(_to_db_date(self.end_date))

        where = " AND ".join(conditions) if conditions else "1=1"
        return where, params


def _to_db_date(value: datetime) -> str:
    """Normalize to a UTC ISO-8601 string so lexical order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _row_to_record(row: tuple) -> TradeRecord:
    return TradeRecord(
        hash=row[0],
        block_number=row[1],
        creation_date=datetime.fromisoformat(row[2]),
        sell_token=row[3],
        buy_token=row[4],
        sell_amount=row[5],
        buy_amount=row[6],
        executed_sell_amount=row[7],
        executed_buy_amount=row[8],
        executed_sell_amount_before_fees=row[9],
        kind=OrderKind(row[10]),
        receiver=row[11],
        order_uid=row[12],
        owner=row[13],
    )


class TradeStore:
    """Async SQLite store for settlement trade records.

    Wraps TradeDatabase with typed read/write methods. All SQL access
    goes through self._database.db (the aiosqlite Connection).

    Usage:
        async with TradeDatabase("data/mainnet-visualiser.db") as database:
            store = TradeStore(database)
            await store.upsert(record)
    """

    def __init__(self, database: TradeDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def upsert(self, record: TradeRecord) -> None:
        """Insert a trade or fully overwrite the row with the same hash.

        Keeps the original created_at and touches updated_at. Amount fields
        are sanitized to plain integer strings before storage. Commits
        immediately.
        """
        amounts = {
            field: sanitize_amount(getattr(record, field)) for field in AMOUNT_FIELDS
        }
        now_ms = int(time.time() * 1000)

        await self._database.db.execute(
            "INSERT INTO transactions "
            f"({', '.join(_COLUMNS)}, created_at, updated_at) "
            f"VALUES ({', '.join('?' * len(_COLUMNS))}, ?, ?) "
            "ON CONFLICT(hash) DO UPDATE SET "
            "block_number = excluded.block_number, "
            "creation_date = excluded.creation_date, "
            "sell_token = excluded.sell_token, "
            "buy_token = excluded.buy_token, "
            "sell_amount = excluded.sell_amount, "
            "buy_amount = excluded.buy_amount, "
            "executed_sell_amount = excluded.executed_sell_amount, "
            "executed_buy_amount = excluded.executed_buy_amount, "
            "executed_sell_amount_before_fees = excluded.executed_sell_amount_before_fees, "
            "kind = excluded.kind, "
            "receiver = excluded.receiver, "
            "order_uid = excluded.order_uid, "
            "owner = excluded.owner, "
            "updated_at = excluded.updated_at",
            (
                record.hash,
                record.block_number,
                _to_db_date(record.creation_date),
                record.sell_token,
                record.buy_token,
                amounts["sell_amount"],
                amounts["buy_amount"],
                amounts["executed_sell_amount"],
                amounts["executed_buy_amount"],
                amounts["executed_sell_amount_before_fees"],
                OrderKind(record.kind).value,
                record.receiver,
                record.order_uid,
                record.owner,
                now_ms,
                now_ms,
            ),
        )
        await self._database.db.commit()
        logger.debug("upserted_trade", hash=record.hash, block_number=record.block_number)

    async def delete_outside_block_range(self, low: int, high: int) -> int:
        """Delete trades with block_number < low or > high. Returns rows deleted."""
        cursor = await self._database.db.execute(
            "DELETE FROM transactions WHERE block_number < ? OR block_number > ?",
            (low, high),
        )
        await self._database.db.commit()
        deleted = cursor.rowcount
        logger.info("deleted_trades_outside_range", low=low, high=high, deleted=deleted)
        return deleted

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def exists_by_hash(self, tx_hash: str) -> bool:
        """Return True when a trade with this transaction hash is stored."""
        cursor = await self._database.db.execute(
            "SELECT 1 FROM transactions WHERE hash = ? LIMIT 1", (tx_hash,)
        )
        return await cursor.fetchone() is not None

    async def get_by_hash(self, tx_hash: str) -> TradeRecord | None:
        cursor = await self._database.db.execute(
            f"{_SELECT} WHERE hash = ?", (tx_hash,)
        )
        row = await cursor.fetchone()
        return _row_to_record(row) if row is not None else None

    async def get_latest(self, limit: int = 50) -> list[TradeRecord]:
        """Return the most recent trades by block number, newest first."""
        cursor = await self._database.db.execute(
            f"{_SELECT} ORDER BY block_number DESC, hash ASC LIMIT ?", (limit,)
        )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def get_page(
        self,
        trade_filter: TradeFilter | None = None,
        sort_by: str = "creation_date",
        descending: bool = True,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TradeRecord]:
        """Query a filtered, sorted page of trades.

        sort_by must be one of SORTABLE_COLUMNS; raises ValueError otherwise.
        """
        if sort_by not in SORTABLE_COLUMNS:
            raise ValueError(
                f"Cannot sort by {sort_by!r}; choose one of {sorted(SORTABLE_COLUMNS)}"
            )
        where, params = (trade_filter or TradeFilter()).to_sql()
        direction = "DESC" if descending else "ASC"
        cursor = await self._database.db.execute(
            f"{_SELECT} WHERE {where} ORDER BY {sort_by} {direction}, hash ASC "
            "LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def count(self, trade_filter: TradeFilter | None = None) -> int:
        where, params = (trade_filter or TradeFilter()).to_sql()
        cursor = await self._database.db.execute(
            f"SELECT COUNT(*) FROM transactions WHERE {where}", params
        )
        return (await cursor.fetchone())[0]

    async def count_outside_block_range(self, low: int, high: int) -> int:
        """Count trades that delete_outside_block_range would remove."""
        cursor = await self._database.db.execute(
            "SELECT COUNT(*) FROM transactions WHERE block_number < ? OR block_number > ?",
            (low, high),
        )
        return (await cursor.fetchone())[0]

    async def stats(self) -> StoreStats:
        """Count trades, their creation-date range and distinct sell/buy tokens."""
        cursor = await self._database.db.execute(
            "SELECT COUNT(*), MIN(creation_date), MAX(creation_date), "
            "COUNT(DISTINCT LOWER(sell_token)), COUNT(DISTINCT LOWER(buy_token)) "
            "FROM transactions"
        )
        total, earliest, latest, sell_tokens, buy_tokens = await cursor.fetchone()
        return StoreStats(
            total=total,
            earliest=datetime.fromisoformat(earliest) if earliest is not None else None,
            latest=datetime.fromisoformat(latest) if latest is not None else None,
            sell_tokens=sell_tokens,
            buy_tokens=buy_tokens,
        )

    async def block_bounds(self) -> tuple[int | None, int | None]:
        """Return (lowest, highest) stored block number, or (None, None) when empty."""
        cursor = await self._database.db.execute(
            "SELECT MIN(block_number), MAX(block_number) FROM transactions"
        )
        row = await cursor.fetchone()
        return row[0], row[1]
