"""Supported network registry.

Maps chain ids to display names, per-network database file names, the
settlement contract emitting Trade events and the order API base URL.
"""

from dataclasses import dataclass

from tradesync.exceptions import UnsupportedNetworkError

SETTLEMENT_CONTRACT = "0x9008D19f58AAbD9eD0d60971565AA8510560ab41"

# keccak256("Trade(address,address,address,uint256,uint256,uint256,bytes)")
TRADE_EVENT_TOPIC = "0xa07a543ab8a018198e99ca0184c93fe9050a79400a0a723441f84de1d972cc17"


@dataclass(frozen=True)
class NetworkConfig:
    """Static description of one supported chain."""

    chain_id: int
    name: str
    database_name: str
    api_base_url: str
    settlement_contract: str = SETTLEMENT_CONTRACT
    start_block: int = 0  # settlement contract deployment; lower bound for block search


NETWORKS: dict[int, NetworkConfig] = {
    1: NetworkConfig(
        chain_id=1,
        name="Ethereum Mainnet",
        database_name="mainnet-visualiser",
        api_base_url="https://api.cow.fi/mainnet/api/v1",
        start_block=12_593_265,
    ),
    42161: NetworkConfig(
        chain_id=42161,
        name="Arbitrum One",
        database_name="arbitrum-visualiser",
        api_base_url="https://api.cow.fi/arbitrum_one/api/v1",
    ),
}


def get_network(chain_id: int) -> NetworkConfig:
    """Look up a network by chain id.

    Raises UnsupportedNetworkError for chain ids without a registry entry.
    """
    try:
        return NETWORKS[chain_id]
    except KeyError:
        raise UnsupportedNetworkError(
            f"Network {chain_id} is not supported (known: {sorted(NETWORKS)})"
        ) from None


def supported_chain_ids() -> list[int]:
    return sorted(NETWORKS)
