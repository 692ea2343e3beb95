"""Cache-backed block timestamp lookup."""

from tradesync.chain.reader import ChainReader
from tradesync.data.cache import BlockTimestampCache
from tradesync.logging import get_logger

logger = get_logger(__name__)


class BlockTimestampService:
    """Read-through block timestamp lookup over the block_timestamps cache.

    Cache hits cost no RPC call; misses (absent or older than the TTL) fetch
    from the chain reader and overwrite the cache entry.
    """

    def __init__(
        self,
        reader: ChainReader,
        cache: BlockTimestampCache,
        network_id: int,
    ) -> None:
        self._reader = reader
        self._cache = cache
        self._network_id = network_id

    async def get(self, block_number: int) -> int:
        cached = await self._cache.get(block_number, self._network_id)
        if cached is not None:
            return cached

        timestamp = await self._reader.block_timestamp(block_number)
        await self._cache.put(block_number, self._network_id, timestamp)
        logger.debug("block_timestamp_fetched", block_number=block_number, timestamp=timestamp)
        return timestamp
