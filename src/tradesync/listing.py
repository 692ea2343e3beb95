"""Per-network database listing.

Prints, for each network database, the stored trade count, the creation-date
range, the number of distinct sell and buy tokens and the most recent trades.
Reads only the local SQLite files; no RPC endpoint is needed.

Usage:
    tradesync-list                          # every known network, latest 20
    tradesync-list --network 1 --limit 50
    tradesync-list --network 1 --hash 0xabc...def
"""

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass

import aiosqlite
import structlog

from tradesync.config import AppSettings
from tradesync.data.database import TradeDatabase, database_path
from tradesync.data.store import StoreStats, TradeStore
from tradesync.exceptions import SetupError
from tradesync.logging import get_logger, setup_logging
from tradesync.models import TradeRecord
from tradesync.networks import NetworkConfig, get_network, supported_chain_ids

logger = get_logger(__name__)

RULE = "=" * 80


@dataclass
class NetworkListing:
    network: NetworkConfig
    stats: StoreStats
    latest: list[TradeRecord]


async def list_network(store: TradeStore, network: NetworkConfig, limit: int) -> NetworkListing:
    stats = await store.stats()
    latest = await store.get_latest(limit) if stats.total else []
    return NetworkListing(network=network, stats=stats, latest=latest)


def _short(address: str | None) -> str:
    if not address:
        return "N/A"
    return f"{address[:6]}...{address[-4:]}"


def format_record(record: TradeRecord) -> list[str]:
    return [
        f"   Date: {record.creation_date.isoformat()}",
        f"   Block: {record.block_number}",
        f"   Type: {record.kind.value}",
        f"   Sell Token: {_short(record.sell_token)}",
        f"   Buy Token: {_short(record.buy_token)}",
        f"   Sell Amount: {record.sell_amount or 'N/A'}",
        f"   Buy Amount: {record.buy_amount or 'N/A'}",
        f"   Executed Sell: {record.executed_sell_amount or 'N/A'}",
        f"   Executed Buy: {record.executed_buy_amount or 'N/A'}",
    ]


def format_listing(listing: NetworkListing) -> str:
    """Render a NetworkListing as the text block printed by the CLI."""
    network, stats = listing.network, listing.stats
    lines = [
        f"Network: {network.name} (chain {network.chain_id})",
        "-" * 80,
        f"Total trades: {stats.total}",
    ]
    if not stats.total:
        lines.append("No trades stored")
        return "\n".join(lines)

    earliest = stats.earliest.isoformat() if stats.earliest else "N/A"
    latest = stats.latest.isoformat() if stats.latest else "N/A"
    lines += [
        f"Date range: {earliest} -> {latest}",
        f"Distinct sell tokens: {stats.sell_tokens}",
        f"Distinct buy tokens: {stats.buy_tokens}",
        "",
        f"Latest {len(listing.latest)} trades:",
    ]
    for index, record in enumerate(listing.latest, start=1):
        lines.append(f"{index}. {record.hash}")
        lines += format_record(record)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradesync-list",
        description="Show what each network's trade database contains.",
    )
    parser.add_argument(
        "--network",
        type=int,
        action="append",
        dest="networks",
        metavar="CHAIN_ID",
        help="chain id to list (repeatable; default: every known network)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="number of latest trades to show (default: 20)",
    )
    parser.add_argument(
        "--hash",
        dest="tx_hash",
        metavar="TX_HASH",
        help="show a single stored trade instead of the listing",
    )
    return parser


async def show_network(
    settings: AppSettings, chain_id: int, limit: int, tx_hash: str | None
) -> str:
    """Build the printed text for one network. Raises SetupError on bad input."""
    network = get_network(chain_id)
    path = database_path(settings.storage.data_dir, network.database_name)
    # Listing must not create empty databases as a side effect
    if not os.path.exists(path):
        return f"Network: {network.name} (chain {chain_id})\nNo database at {path}"

    try:
        async with TradeDatabase(path) as database:
            store = TradeStore(database)
            if tx_hash is None:
                return format_listing(await list_network(store, network, limit))
            record = await store.get_by_hash(tx_hash)
    except (aiosqlite.Error, OSError) as e:
        raise SetupError(f"Cannot read database {path}: {e}") from e

    if record is None:
        return f"No trade with hash {tx_hash} on {network.name}"
    return "\n".join([f"{record.hash} ({network.name})", *format_record(record)])


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)

    if args.limit <= 0:
        logger.error("invalid_limit", limit=args.limit)
        return 1

    failed = 0
    print(RULE)
    for chain_id in args.networks or supported_chain_ids():
        with structlog.contextvars.bound_contextvars(chain_id=chain_id):
            try:
                print(await show_network(settings, chain_id, args.limit, args.tx_hash))
            except SetupError as e:
                failed += 1
                logger.error("listing_failed", error=str(e))
        print(RULE)
    return 1 if failed else 0


def run() -> None:
    """Synchronous entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
