"""Cache-backed ERC-20 token metadata lookup."""

from tradesync.chain.reader import ChainReader
from tradesync.data.cache import TokenMetadataCache
from tradesync.models import TokenMetadata


class TokenMetadataService:
    """Read-through token metadata lookup over the token_metadata cache."""

    def __init__(
        self,
        reader: ChainReader,
        cache: TokenMetadataCache,
        network_id: int,
    ) -> None:
        self._reader = reader
        self._cache = cache
        self._network_id = network_id

    async def get(self, address: str) -> TokenMetadata:
        cached = await self._cache.get(address, self._network_id)
        if cached is not None:
            return cached

        metadata = await self._reader.token_metadata(address)
        await self._cache.put(self._network_id, metadata)
        return metadata
