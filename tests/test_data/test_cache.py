"""Tests for the TTL cache tables."""

import pytest

from tradesync.data.cache import DEFAULT_TTL_SECONDS, BlockTimestampCache, TokenMetadataCache
from tradesync.data.database import TradeDatabase
from tradesync.models import TokenMetadata

HOUR = 3_600


class _Clock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestBlockTimestampCache:
    @pytest.mark.asyncio
    async def test_fresh_entry_hits(self, tmp_path) -> None:
        clock = _Clock()
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            cache = BlockTimestampCache(database, clock=clock)
            await cache.put(100, 1, 1_650_000_000)

            clock.now += 23 * HOUR
            assert await cache.get(100, 1) == 1_650_000_000

    @pytest.mark.asyncio
    async def test_expired_entry_misses_then_refreshes(self, tmp_path) -> None:
        """A 25h old entry is a miss; re-putting it makes it valid again."""
        clock = _Clock()
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            cache = BlockTimestampCache(database, clock=clock)
            await cache.put(100, 1, 1_650_000_000)

            clock.now += 25 * HOUR
            assert await cache.get(100, 1) is None

            await cache.put(100, 1, 1_650_000_000)
            assert await cache.get(100, 1) == 1_650_000_000

            cursor = await database.db.execute("SELECT COUNT(*) FROM block_timestamps")
            assert (await cursor.fetchone())[0] == 1

    @pytest.mark.asyncio
    async def test_network_isolation(self, tmp_path) -> None:
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            cache = BlockTimestampCache(database)
            await cache.put(100, 1, 111)
            await cache.put(100, 42161, 222)

            assert await cache.get(100, 1) == 111
            assert await cache.get(100, "42161") == 222
            assert await cache.get(100, 10) is None

    def test_default_ttl_is_one_day(self) -> None:
        assert DEFAULT_TTL_SECONDS == 24 * HOUR


class TestTokenMetadataCache:
    @pytest.mark.asyncio
    async def test_round_trip_and_expiry(self, tmp_path) -> None:
        clock = _Clock()
        metadata = TokenMetadata(
            address="0x6B175474E89094C44Da98b954EedeAC495271d0F",
            name="Dai Stablecoin",
            symbol="DAI",
            decimals=18,
        )
        async with TradeDatabase(str(tmp_path / "c.db")) as database:
            cache = TokenMetadataCache(database, ttl_seconds=60, clock=clock)
            await cache.put(1, metadata)

            hit = await cache.get(metadata.address.upper().replace("0X", "0x"), 1)
            assert hit is not None
            assert hit.symbol == "DAI"
            assert hit.address == metadata.address.lower()

            clock.now += 61
            assert await cache.get(metadata.address, 1) is None
