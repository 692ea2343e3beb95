"""Tests for Web3ChainReader error translation that need no live RPC endpoint."""

import pytest

from tradesync.chain.web3_reader import Web3ChainReader
from tradesync.exceptions import ProviderError


class TestTokenMetadata:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("address", ["0x1234", "not-an-address"])
    async def test_malformed_address_is_provider_error(self, test_network, address: str) -> None:
        reader = Web3ChainReader(test_network, "http://127.0.0.1:1")

        with pytest.raises(ProviderError, match="erc20 metadata"):
            await reader.token_metadata(address)
