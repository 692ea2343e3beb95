"""Trade resolution: settlement transaction hash -> TradeRecords.

A settlement transaction batches one or more orders. The resolver asks the
order API for them and maps each order 1:1 into a TradeRecord keyed by the
transaction hash, with amounts normalized to integer strings.
"""

from datetime import datetime

from tradesync.amounts import sanitize_amount
from tradesync.exceptions import InvalidAmountError, TradeApiError
from tradesync.logging import get_logger
from tradesync.models import OrderKind, TradeRecord
from tradesync.trades.api_client import TradeApiClient

logger = get_logger(__name__)


def _amount(order: dict, key: str) -> str:
    value = sanitize_amount(order[key])
    if value is None:
        raise InvalidAmountError(f"Order field {key} is null")
    return value


def order_to_record(order: dict, tx_hash: str, block_number: int) -> TradeRecord:
    """Map one order API payload onto a TradeRecord.

    Raises KeyError/ValueError on missing or malformed fields and
    InvalidAmountError on amounts that are not integers.
    """
    return TradeRecord(
        hash=tx_hash,
        block_number=block_number,
        creation_date=datetime.fromisoformat(order["creationDate"]),
        sell_token=order["sellToken"],
        buy_token=order["buyToken"],
        sell_amount=_amount(order, "sellAmount"),
        buy_amount=_amount(order, "buyAmount"),
        executed_sell_amount=_amount(order, "executedSellAmount"),
        executed_buy_amount=_amount(order, "executedBuyAmount"),
        executed_sell_amount_before_fees=_amount(order, "executedSellAmountBeforeFees"),
        kind=OrderKind(order["kind"]),
        receiver=order.get("receiver"),
        order_uid=order.get("uid"),
        owner=order.get("owner"),
    )


class TradeResolver:
    """Resolves settlement transactions into trade records via the order API.

    Usage:
        async with TradeApiClient(network.api_base_url) as client:
            resolver = TradeResolver(client)
            records = await resolver.resolve(tx_hash, block_number)
    """

    def __init__(self, api_client: TradeApiClient) -> None:
        self._api_client = api_client

    async def resolve(self, tx_hash: str, block_number: int) -> list[TradeRecord]:
        """Return one TradeRecord per order settled in tx_hash.

        Returns [] when the API has no orders for the transaction. Raises
        TradeApiError when the API fails or returns an order that cannot
        be mapped; the whole transaction is then treated as failed.
        """
        orders = await self._api_client.orders_for_transaction(tx_hash)

        records: list[TradeRecord] = []
        for index, order in enumerate(orders):
            try:
                records.append(order_to_record(order, tx_hash, block_number))
            except (KeyError, ValueError, TypeError, InvalidAmountError) as e:
                raise TradeApiError(
                    f"Malformed order {index} in {tx_hash}: {type(e).__name__}: {e}"
                ) from e

        logger.debug(
            "transaction_resolved",
            tx_hash=tx_hash,
            block_number=block_number,
            orders=len(records),
        )
        return records
