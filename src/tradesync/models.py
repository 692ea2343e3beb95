"""Shared data models for the settlement trade backfill.

CRITICAL: Token amounts are uint256 values carried as decimal-integer strings.
Never use float for amounts. See tradesync.amounts.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class OrderKind(str, Enum):
    """Order direction as reported by the order API."""

    SELL = "sell"
    BUY = "buy"


class SyncPhase(str, Enum):
    """Lifecycle of one backfill run."""

    INITIALIZING = "initializing"
    WALKING = "walking"
    DONE = "done"


@dataclass(frozen=True)
class RawEvent:
    """A settlement-contract Trade log as returned by eth_getLogs."""

    transaction_hash: str
    block_number: int
    log_index: int = 0


@dataclass
class TradeRecord:
    """One executed order, stored keyed by its settlement transaction hash.

    A settlement can batch several orders; all of them share the hash and
    the last one upserted is the row that survives.
    """

    hash: str
    block_number: int
    creation_date: datetime
    sell_token: str
    buy_token: str
    sell_amount: str
    buy_amount: str
    executed_sell_amount: str
    executed_buy_amount: str
    executed_sell_amount_before_fees: str
    kind: OrderKind
    receiver: str | None = None
    order_uid: str | None = None
    owner: str | None = None


@dataclass(frozen=True)
class TokenMetadata:
    """ERC-20 descriptive fields, cached per (address, network)."""

    address: str
    name: str
    symbol: str
    decimals: int
