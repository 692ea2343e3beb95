"""Tests for the retention cleanup command."""

from unittest.mock import AsyncMock

import pytest

from tradesync.chain.timestamps import BlockTimestampService
from tradesync.chain.tokens import TokenMetadataService
from tradesync.cleanup import build_parser, cleanup_network
from tradesync.data.cache import BlockTimestampCache, TokenMetadataCache
from tradesync.data.database import TradeDatabase
from tradesync.data.store import TradeStore
from tradesync.exceptions import ProviderError, SetupError
from tradesync.main import NetworkResources

GENESIS_TS = 1_600_000_000
BLOCK_TIME = 12
HEAD = 1_000_000
# One 30-day month of 12s blocks
MONTH_BLOCKS = 30 * 86_400 // BLOCK_TIME


def _reader(head: int = HEAD) -> AsyncMock:
    reader = AsyncMock()
    reader.latest_block_number.return_value = head
    reader.block_timestamp.side_effect = lambda block: GENESIS_TS + block * BLOCK_TIME
    return reader


def _resources(database: TradeDatabase, network, reader) -> NetworkResources:
    return NetworkResources(
        network=network,
        database=database,
        reader=reader,
        store=TradeStore(database),
        timestamps=BlockTimestampService(reader, BlockTimestampCache(database), network.chain_id),
        tokens=TokenMetadataService(reader, TokenMetadataCache(database), network.chain_id),
    )


async def _seed(store: TradeStore, make_record) -> None:
    # Two trades well inside the last month, two far older
    for i, block in enumerate((HEAD - 10, HEAD - 1_000, HEAD - 3 * MONTH_BLOCKS, 5)):
        await store.upsert(make_record(tx_hash=f"0x{i}", block_number=block))


class TestCleanupNetwork:
    @pytest.mark.asyncio
    async def test_dry_run_deletes_nothing(self, tmp_path, test_network, make_record) -> None:
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            resources = _resources(database, test_network, _reader())
            await _seed(resources.store, make_record)

            report = await cleanup_network(
                resources, months=1, live=False, now=GENESIS_TS + HEAD * BLOCK_TIME
            )

            assert report.head_block == HEAD
            assert abs(report.cutoff_block - (HEAD - MONTH_BLOCKS)) <= 10
            assert report.total == 4
            assert report.outside_range == 2
            assert report.deleted == 0
            assert await resources.store.count() == 4

    @pytest.mark.asyncio
    async def test_live_run_deletes_old_trades(self, tmp_path, test_network, make_record) -> None:
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            resources = _resources(database, test_network, _reader())
            await _seed(resources.store, make_record)

            report = await cleanup_network(
                resources, months=1, live=True, now=GENESIS_TS + HEAD * BLOCK_TIME
            )

            assert report.deleted == 2
            assert await resources.store.count() == 2
            assert await resources.store.exists_by_hash("0x0")
            assert not await resources.store.exists_by_hash("0x3")

    @pytest.mark.asyncio
    async def test_head_failure_is_setup_error(self, tmp_path, test_network) -> None:
        reader = _reader()
        reader.latest_block_number.side_effect = ProviderError("connection refused")
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            with pytest.raises(SetupError):
                await cleanup_network(_resources(database, test_network, reader), 4, live=False)

    @pytest.mark.asyncio
    async def test_timestamp_failure_deletes_nothing(
        self, tmp_path, test_network, make_record
    ) -> None:
        reader = _reader()
        reader.block_timestamp.side_effect = ProviderError("header not found")
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            resources = _resources(database, test_network, reader)
            await _seed(resources.store, make_record)

            with pytest.raises(SetupError, match="cutoff block"):
                await cleanup_network(
                    resources, months=6, live=True, now=GENESIS_TS + HEAD * BLOCK_TIME
                )

            assert await resources.store.count() == 4


class TestParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args([])
        assert args.months == 4
        assert args.live is False
        assert args.networks is None

    def test_flags(self) -> None:
        args = build_parser().parse_args(["--months", "6", "--live", "--network", "42161"])
        assert args.months == 6
        assert args.live is True
        assert args.networks == [42161]
