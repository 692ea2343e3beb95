"""Shared test fixtures for the settlement trade backfill."""

from datetime import datetime, timezone

import pytest

from tradesync.config import BackfillSettings
from tradesync.models import OrderKind, TradeRecord
from tradesync.networks import NetworkConfig


@pytest.fixture
def backfill_settings() -> BackfillSettings:
    """BackfillSettings with no inter-batch delay and token warm-up off."""
    return BackfillSettings(
        networks=[1],
        lookback_months=4,
        initial_batch_size=100,
        min_batch_size=1,
        max_batch_size=10_000,
        batch_delay_seconds=0,
        warm_token_metadata=False,
    )


@pytest.fixture
def test_network() -> NetworkConfig:
    """A small network starting at block 0, so locator tests stay cheap."""
    return NetworkConfig(
        chain_id=31337,
        name="Test Chain",
        database_name="test-visualiser",
        api_base_url="https://orders.test/api/v1",
        start_block=0,
    )


@pytest.fixture
def make_record():
    """Factory for TradeRecords with sensible defaults."""

    def _make(
        tx_hash: str = "0xabc",
        block_number: int = 100,
        **overrides,
    ) -> TradeRecord:
        fields = dict(
            hash=tx_hash,
            block_number=block_number,
            creation_date=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            sell_token="0x6B175474E89094C44Da98b954EedeAC495271d0F",
            buy_token="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
            sell_amount="1000000000000000000000",
            buy_amount="500000000000000000",
            executed_sell_amount="1000000000000000000000",
            executed_buy_amount="510000000000000000",
            executed_sell_amount_before_fees="999000000000000000000",
            kind=OrderKind.SELL,
            receiver="0x1111111111111111111111111111111111111111",
            order_uid="0xuid",
            owner="0x2222222222222222222222222222222222222222",
        )
        fields.update(overrides)
        return TradeRecord(**fields)

    return _make
