"""Order API client and settlement transaction resolution."""

from tradesync.trades.api_client import TradeApiClient
from tradesync.trades.resolver import TradeResolver, order_to_record

__all__ = ["TradeApiClient", "TradeResolver", "order_to_record"]
