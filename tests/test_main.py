"""Tests for the backfill entry point wiring."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tradesync.backfill.progress import SyncProgress
from tradesync.config import AppSettings, BackfillSettings, ChainSettings, StorageSettings
from tradesync.exceptions import SetupError, UnsupportedNetworkError
from tradesync.main import backfill_all, open_network


def _settings(tmp_path, rpc_urls: dict[str, str] | None = None, networks: list[int] | None = None) -> AppSettings:
    return AppSettings(
        chain=ChainSettings(rpc_urls=rpc_urls or {}),
        backfill=BackfillSettings(networks=networks or [1]),
        storage=StorageSettings(data_dir=str(tmp_path / "data")),
    )


class TestOpenNetwork:
    @pytest.mark.asyncio
    async def test_missing_rpc_url_is_setup_error(self, tmp_path) -> None:
        with pytest.raises(SetupError, match="No RPC URL"):
            async with open_network(_settings(tmp_path), 1):
                pass

    @pytest.mark.asyncio
    async def test_unsupported_network(self, tmp_path) -> None:
        with pytest.raises(UnsupportedNetworkError):
            async with open_network(_settings(tmp_path, {"5": "https://goerli"}), 5):
                pass

    @pytest.mark.asyncio
    async def test_opens_per_network_database_and_closes(self, tmp_path) -> None:
        settings = _settings(tmp_path, {"42161": "https://arb.example"})
        reader = MagicMock()
        reader.close = AsyncMock()

        with patch("tradesync.main.Web3ChainReader", return_value=reader):
            async with open_network(settings, 42161) as resources:
                assert resources.database.path.endswith("arbitrum-visualiser.db")
                assert resources.network.chain_id == 42161
                assert await resources.store.count() == 0

        reader.close.assert_awaited_once()
        assert (tmp_path / "data" / "arbitrum-visualiser.db").exists()


class TestBackfillAll:
    @pytest.mark.asyncio
    async def test_failed_network_does_not_stop_the_next(self, tmp_path) -> None:
        settings = _settings(tmp_path, networks=[1, 42161])
        calls: list[int] = []

        async def fake_sync(_settings, chain_id: int) -> SyncProgress:
            calls.append(chain_id)
            if chain_id == 1:
                raise SetupError("head unavailable")
            return SyncProgress()

        with patch("tradesync.main.sync_network", side_effect=fake_sync):
            failed = await backfill_all(settings)

        assert calls == [1, 42161]
        assert failed == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_counts_as_failure(self, tmp_path) -> None:
        settings = _settings(tmp_path, networks=[1])

        with patch("tradesync.main.sync_network", side_effect=RuntimeError("disk full")):
            failed = await backfill_all(settings)

        assert failed == 1
