"""Chain reader implementation via web3 AsyncWeb3.

Wraps AsyncWeb3 + AsyncHTTPProvider for head, block timestamp, settlement
Trade log and ERC-20 metadata lookups. Every library or transport failure is
re-raised as ProviderError carrying the provider's message and error payload.
"""

import asyncio
from typing import Any

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from tradesync.chain.reader import ChainReader
from tradesync.exceptions import ProviderError
from tradesync.logging import get_logger
from tradesync.models import RawEvent, TokenMetadata
from tradesync.networks import TRADE_EVENT_TOPIC, NetworkConfig

logger = get_logger(__name__)

_ERC20_ABI = [
    {
        "name": "name",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "name": "symbol",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
]

_TRANSPORT_ERRORS = (
    Web3Exception,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
    ValueError,  # older providers surface JSON-RPC errors as ValueError(dict)
)


def _provider_error(action: str, exc: BaseException) -> ProviderError:
    """Translate a web3/aiohttp failure into a ProviderError."""
    data: Any = None
    details: str | None = None

    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict):
        error = rpc_response.get("error") or {}
        data = error.get("data")
        if error.get("code") is not None:
            details = f"code={error['code']} message={error.get('message', '')}"
    elif exc.args and isinstance(exc.args[0], dict):
        error = exc.args[0]
        data = error.get("data")
        details = f"code={error.get('code')} message={error.get('message', '')}"

    message = f"{action} failed: {exc}" if str(exc) else f"{action} failed: {type(exc).__name__}"
    return ProviderError(message, data=data, details=details)


class Web3ChainReader(ChainReader):
    """Concrete chain reader using web3 AsyncWeb3 over HTTP."""

    def __init__(
        self,
        network: NetworkConfig,
        rpc_url: str,
        request_timeout_seconds: float = 30.0,
    ) -> None:
        self._network = network
        provider = AsyncHTTPProvider(
            rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=request_timeout_seconds)},
        )
        self._w3 = AsyncWeb3(provider)
        self._contract = Web3.to_checksum_address(network.settlement_contract)

    @property
    def w3(self) -> AsyncWeb3:
        """Access the underlying AsyncWeb3 instance."""
        return self._w3

    async def latest_block_number(self) -> int:
        try:
            return int(await self._w3.eth.block_number)
        except _TRANSPORT_ERRORS as e:
            raise _provider_error("eth_blockNumber", e) from e

    async def block_timestamp(self, block_number: int) -> int:
        try:
            block = await self._w3.eth.get_block(block_number)
        except _TRANSPORT_ERRORS as e:
            raise _provider_error(f"eth_getBlockByNumber({block_number})", e) from e
        return int(block["timestamp"])

    async def events_in_range(self, from_block: int, to_block: int) -> list[RawEvent]:
        """Fetch settlement Trade logs for an inclusive block range."""
        try:
            logs = await self._w3.eth.get_logs(
                {
                    "address": self._contract,
                    "fromBlock": from_block,
                    "toBlock": to_block,
                    "topics": [TRADE_EVENT_TOPIC],
                }
            )
        except _TRANSPORT_ERRORS as e:
            raise _provider_error(f"eth_getLogs({from_block}-{to_block})", e) from e

        events = [
            RawEvent(
                transaction_hash=Web3.to_hex(log["transactionHash"]),
                block_number=int(log["blockNumber"]),
                log_index=int(log.get("logIndex", 0)),
            )
            for log in logs
        ]
        logger.debug(
            "fetched_trade_logs",
            from_block=from_block,
            to_block=to_block,
            count=len(events),
        )
        return events

    async def token_metadata(self, address: str) -> TokenMetadata:
        """Read name, symbol and decimals with three eth_calls."""
        try:
            checksum = Web3.to_checksum_address(address)
            token = self._w3.eth.contract(address=checksum, abi=_ERC20_ABI)
            name = await token.functions.name().call()
            symbol = await token.functions.symbol().call()
            decimals = await token.functions.decimals().call()
        except _TRANSPORT_ERRORS as e:
            raise _provider_error(f"erc20 metadata({address})", e) from e
        return TokenMetadata(
            address=checksum,
            name=str(name),
            symbol=str(symbol),
            decimals=int(decimals),
        )

    async def close(self) -> None:
        """Close the provider's aiohttp session."""
        await self._w3.provider.disconnect()
        logger.debug("chain_reader_closed", chain_id=self._network.chain_id)
