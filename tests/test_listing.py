"""Tests for the per-network database listing command."""

import os
from datetime import datetime, timezone

import pytest

from tradesync.config import AppSettings, StorageSettings
from tradesync.data.database import TradeDatabase, database_path
from tradesync.data.store import TradeStore
from tradesync.exceptions import UnsupportedNetworkError
from tradesync.listing import build_parser, format_listing, list_network, show_network
from tradesync.networks import get_network


def _settings(tmp_path) -> AppSettings:
    return AppSettings(storage=StorageSettings(data_dir=str(tmp_path / "data")))


async def _seed(path: str, make_record) -> None:
    async with TradeDatabase(path) as database:
        store = TradeStore(database)
        for i in range(3):
            await store.upsert(
                make_record(
                    tx_hash=f"0x{i}",
                    block_number=100 + i,
                    creation_date=datetime(2024, 1, 1 + i, tzinfo=timezone.utc),
                    sell_token="0xAAAA" if i < 2 else "0xaaaa",
                    buy_token=f"0xB{i}",
                )
            )


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_store(self, tmp_path) -> None:
        async with TradeDatabase(str(tmp_path / "t.db")) as database:
            stats = await TradeStore(database).stats()

        assert stats.total == 0
        assert stats.earliest is None
        assert stats.latest is None
        assert stats.sell_tokens == 0

    @pytest.mark.asyncio
    async def test_date_range_and_distinct_tokens(self, tmp_path, make_record) -> None:
        path = str(tmp_path / "t.db")
        await _seed(path, make_record)

        async with TradeDatabase(path) as database:
            stats = await TradeStore(database).stats()

        assert stats.total == 3
        assert stats.earliest == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert stats.latest == datetime(2024, 1, 3, tzinfo=timezone.utc)
        # Token addresses are counted case-insensitively
        assert stats.sell_tokens == 1
        assert stats.buy_tokens == 3


class TestListNetwork:
    @pytest.mark.asyncio
    async def test_listing_shows_latest_first(self, tmp_path, test_network, make_record) -> None:
        path = str(tmp_path / "t.db")
        await _seed(path, make_record)

        async with TradeDatabase(path) as database:
            listing = await list_network(TradeStore(database), test_network, limit=2)

        assert [r.hash for r in listing.latest] == ["0x2", "0x1"]
        text = format_listing(listing)
        assert "Total trades: 3" in text
        assert "Distinct buy tokens: 3" in text
        assert "0x0" not in text.split("Latest")[1]

    @pytest.mark.asyncio
    async def test_missing_database_is_not_created(self, tmp_path) -> None:
        settings = _settings(tmp_path)

        text = await show_network(settings, 1, limit=20, tx_hash=None)

        path = database_path(settings.storage.data_dir, get_network(1).database_name)
        assert "No database" in text
        assert not os.path.exists(path)

    @pytest.mark.asyncio
    async def test_hash_lookup(self, tmp_path, make_record) -> None:
        settings = _settings(tmp_path)
        await _seed(database_path(settings.storage.data_dir, get_network(1).database_name), make_record)

        found = await show_network(settings, 1, limit=20, tx_hash="0x1")
        missing = await show_network(settings, 1, limit=20, tx_hash="0xdead")

        assert found.startswith("0x1 (")
        assert "Block: 101" in found
        assert "No trade with hash 0xdead" in missing

    @pytest.mark.asyncio
    async def test_unknown_network_raises(self, tmp_path) -> None:
        with pytest.raises(UnsupportedNetworkError):
            await show_network(_settings(tmp_path), 5, limit=20, tx_hash=None)


class TestParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args([])
        assert args.networks is None
        assert args.limit == 20
        assert args.tx_hash is None

    def test_flags(self) -> None:
        args = build_parser().parse_args(["--network", "1", "--network", "42161", "--limit", "5"])
        assert args.networks == [1, 42161]
        assert args.limit == 5
