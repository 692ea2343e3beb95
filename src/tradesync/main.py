"""Entry point for the historical trade backfill.

Wires configuration, per-network SQLite storage, the chain reader and the
order API client, then runs the backfill engine for each configured network
in turn. A setup failure on one network is logged and the next network is
still processed; the process exits non-zero if any network failed.
"""

import asyncio
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import aiosqlite
import structlog

from tradesync.backfill.engine import BackfillEngine
from tradesync.backfill.progress import SyncProgress
from tradesync.chain.reader import ChainReader
from tradesync.chain.timestamps import BlockTimestampService
from tradesync.chain.tokens import TokenMetadataService
from tradesync.chain.web3_reader import Web3ChainReader
from tradesync.config import AppSettings
from tradesync.data.cache import BlockTimestampCache, TokenMetadataCache
from tradesync.data.database import TradeDatabase, database_path
from tradesync.data.store import TradeStore
from tradesync.exceptions import SetupError
from tradesync.logging import get_logger, setup_logging
from tradesync.networks import NetworkConfig, get_network
from tradesync.trades.api_client import TradeApiClient
from tradesync.trades.resolver import TradeResolver

logger = get_logger(__name__)


@dataclass
class NetworkResources:
    """Open handles for one network, shared by the backfill and cleanup tools."""

    network: NetworkConfig
    database: TradeDatabase
    reader: ChainReader
    store: TradeStore
    timestamps: BlockTimestampService
    tokens: TokenMetadataService


@asynccontextmanager
async def open_network(settings: AppSettings, chain_id: int) -> AsyncIterator[NetworkResources]:
    """Open the database and chain reader for chain_id, closing both on exit.

    Raises SetupError for an unsupported network, a missing RPC URL or a
    database that cannot be opened.
    """
    network = get_network(chain_id)
    rpc_url = settings.chain.rpc_url_for(chain_id)
    if not rpc_url:
        raise SetupError(f"No RPC URL configured for {network.name} (chain {chain_id})")

    database = TradeDatabase(database_path(settings.storage.data_dir, network.database_name))
    try:
        await database.connect()
    except (aiosqlite.Error, OSError) as e:
        raise SetupError(f"Cannot open database {database.path}: {e}") from e

    reader = Web3ChainReader(
        network,
        rpc_url,
        request_timeout_seconds=settings.chain.request_timeout_seconds,
    )
    ttl = settings.storage.cache_ttl_seconds
    try:
        yield NetworkResources(
            network=network,
            database=database,
            reader=reader,
            store=TradeStore(database),
            timestamps=BlockTimestampService(
                reader, BlockTimestampCache(database, ttl_seconds=ttl), chain_id
            ),
            tokens=TokenMetadataService(
                reader, TokenMetadataCache(database, ttl_seconds=ttl), chain_id
            ),
        )
    finally:
        await reader.close()
        await database.close()


async def sync_network(settings: AppSettings, chain_id: int) -> SyncProgress:
    """Run a complete backfill for one network."""
    async with open_network(settings, chain_id) as resources:
        network = resources.network
        api_base_url = settings.trade_api.base_url or network.api_base_url
        async with TradeApiClient(
            api_base_url, timeout_seconds=settings.trade_api.timeout_seconds
        ) as api_client:
            engine = BackfillEngine(
                network,
                resources.reader,
                resources.store,
                TradeResolver(api_client),
                resources.timestamps,
                settings.backfill,
                tokens=resources.tokens,
            )
            logger.info(
                "network_sync_starting",
                network=network.name,
                database=resources.database.path,
                api_base_url=api_base_url,
            )
            return await engine.run()


async def backfill_all(settings: AppSettings) -> int:
    """Backfill every configured network. Returns the number that failed."""
    failed = 0
    for chain_id in settings.backfill.networks:
        with structlog.contextvars.bound_contextvars(chain_id=chain_id):
            try:
                await sync_network(settings, chain_id)
            except SetupError as e:
                failed += 1
                logger.error("network_sync_aborted", error=str(e))
            except Exception:
                failed += 1
                logger.exception("network_sync_crashed")
    return failed


async def main() -> int:
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)

    logger.info(
        "backfill_starting",
        networks=settings.backfill.networks,
        lookback_months=settings.backfill.lookback_months,
        initial_batch_size=settings.backfill.initial_batch_size,
    )
    failed = await backfill_all(settings)
    logger.info(
        "backfill_finished",
        networks=len(settings.backfill.networks),
        failed=failed,
    )
    return 1 if failed else 0


def run() -> None:
    """Synchronous entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
