"""Chain access layer -- RPC reads via web3 plus cached lookups."""

from tradesync.chain.errors import CAPACITY_ERROR_PATTERNS, is_capacity_error, make_capacity_classifier
from tradesync.chain.reader import ChainReader
from tradesync.chain.timestamps import BlockTimestampService
from tradesync.chain.tokens import TokenMetadataService
from tradesync.chain.web3_reader import Web3ChainReader

__all__ = [
    "CAPACITY_ERROR_PATTERNS",
    "BlockTimestampService",
    "ChainReader",
    "TokenMetadataService",
    "Web3ChainReader",
    "is_capacity_error",
    "make_capacity_classifier",
]
