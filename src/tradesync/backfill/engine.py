"""Historical backfill engine: backward walk from chain head to a time cutoff.

Locates the cutoff block once, then walks backward in block ranges sized by
the adaptive batch controller. Each range's Trade events are grouped by
transaction, deduplicated against the store, resolved through the order API
and upserted. The walk is strictly sequential: one eth_getLogs request in
flight at a time, because the batch controller's feedback loop assumes it.

Failure handling per range:
- capacity error (range too large): shrink and retry the SAME range; ranges
  are never skipped because of their size
- any other provider error: count it, skip the range, keep walking
- order API error: count it for that transaction, continue with the batch
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from tradesync.backfill.batch import BatchState, initial_state, on_failure, on_success
from tradesync.backfill.locator import cutoff_timestamp, locate_block
from tradesync.backfill.progress import SyncProgress, log_batch_progress, log_final_report
from tradesync.chain.errors import CapacityClassifier, is_capacity_error
from tradesync.chain.reader import ChainReader
from tradesync.chain.timestamps import BlockTimestampService
from tradesync.chain.tokens import TokenMetadataService
from tradesync.config import BackfillSettings
from tradesync.data.store import TradeStore
from tradesync.exceptions import ProviderError, SetupError, TradeApiError
from tradesync.logging import get_logger
from tradesync.models import RawEvent, SyncPhase, TradeRecord
from tradesync.networks import NetworkConfig
from tradesync.trades.resolver import TradeResolver

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def group_by_transaction(events: list[RawEvent]) -> dict[str, int]:
    """Map each transaction hash to its block number, in first-seen order."""
    grouped: dict[str, int] = {}
    for event in events:
        grouped.setdefault(event.transaction_hash, event.block_number)
    return grouped


class BackfillEngine:
    """Walks one network backward from its head and persists settled trades.

    Usage:
        engine = BackfillEngine(network, reader, store, resolver, timestamps, settings)
        progress = await engine.run()

    sleep and clock are injectable so tests can run the walk with no delay
    and a fixed notion of "now".
    """

    def __init__(
        self,
        network: NetworkConfig,
        reader: ChainReader,
        store: TradeStore,
        resolver: TradeResolver,
        timestamps: BlockTimestampService,
        settings: BackfillSettings,
        *,
        tokens: TokenMetadataService | None = None,
        capacity_classifier: CapacityClassifier = is_capacity_error,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._network = network
        self._reader = reader
        self._store = store
        self._resolver = resolver
        self._timestamps = timestamps
        self._settings = settings
        self._tokens = tokens
        self._is_capacity_error = capacity_classifier
        self._sleep = sleep
        self._clock = clock

        self._phase = SyncPhase.INITIALIZING
        self._batch: BatchState = initial_state(settings)
        self._progress = SyncProgress(eta_window=settings.eta_window)
        self._warmed_tokens: set[str] = set()

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def batch_state(self) -> BatchState:
        return self._batch

    @property
    def progress(self) -> SyncProgress:
        return self._progress

    # ──────────────────────────────────────────────
    # Public methods
    # ──────────────────────────────────────────────

    async def run(self) -> SyncProgress:
        """Locate the cutoff block and walk down to it. Blocks until complete."""
        start_block, target_block = await self.initialize()
        return await self.walk(start_block, target_block)

    async def initialize(self) -> tuple[int, int]:
        """Return (head block, cutoff block) for this run.

        Raises SetupError when the chain head cannot be read or lies below
        the network's start block.
        """
        self._phase = SyncPhase.INITIALIZING
        try:
            latest = await self._reader.latest_block_number()
        except ProviderError as e:
            raise SetupError(
                f"Cannot read chain head for {self._network.name}: {e}"
            ) from e

        low = self._network.start_block
        if latest < low:
            raise SetupError(
                f"Chain head {latest} is below start block {low} for {self._network.name}"
            )

        cutoff_ts = cutoff_timestamp(self._settings.lookback_months, now=self._clock())
        target = await locate_block(self._timestamps.get, low, latest, cutoff_ts)

        logger.info(
            "backfill_initialized",
            head_block=latest,
            target_block=target,
            cutoff_timestamp=cutoff_ts,
            lookback_months=self._settings.lookback_months,
            blocks_to_walk=latest - target,
        )
        return latest, target

    async def walk(self, start_block: int, target_block: int) -> SyncProgress:
        """Process [target_block, start_block] newest-first in adaptive batches."""
        if target_block > start_block:
            raise ValueError(f"Target block {target_block} is above start block {start_block}")

        self._phase = SyncPhase.WALKING
        progress = self._progress
        progress.start_block = start_block
        progress.current_block = start_block
        progress.target_block = target_block

        current = start_block
        failures_at_min = 0

        logger.info(
            "backfill_walk_started",
            start_block=start_block,
            target_block=target_block,
            initial_batch_size=self._batch.size,
        )

        while current >= target_block:
            size = self._batch.size
            batch_end = max(current - size + 1, target_block)
            batch_started = time.monotonic()

            try:
                events = await self._reader.events_in_range(batch_end, current)
            except ProviderError as e:
                capacity = self._is_capacity_error(e)
                if capacity and self._batch.at_minimum:
                    failures_at_min += 1
                    capacity = failures_at_min < self._settings.max_capacity_retries_at_min

                if capacity:
                    self._batch = on_failure(self._batch)
                    progress.capacity_retries += 1
                    logger.warning(
                        "batch_capacity_error",
                        from_block=batch_end,
                        to_block=current,
                        failed_size=size,
                        next_size=self._batch.size,
                        error=str(e),
                    )
                    continue

                progress.errors += 1
                failures_at_min = 0
                logger.error(
                    "batch_fetch_failed_skipping_range",
                    from_block=batch_end,
                    to_block=current,
                    batch_size=size,
                    error=str(e),
                )
                current = batch_end - 1
                progress.current_block = current
                continue

            await self._process_events(events)

            failures_at_min = 0
            batch_start = current
            current = batch_end - 1
            progress.current_block = current
            progress.record_batch(batch_start - batch_end + 1, time.monotonic() - batch_started)
            self._batch = on_success(self._batch)
            log_batch_progress(progress, size, batch_end, batch_start)

            if current >= target_block:
                await self._sleep(self._settings.batch_delay_seconds)

        self._phase = SyncPhase.DONE
        log_final_report(progress)
        return progress

    # ──────────────────────────────────────────────
    # Batch processing
    # ──────────────────────────────────────────────

    async def _process_events(self, events: list[RawEvent]) -> None:
        transactions = group_by_transaction(events)
        self._progress.transactions_seen += len(transactions)
        if transactions:
            logger.debug("processing_transactions", events=len(events), transactions=len(transactions))

        for tx_hash, block_number in transactions.items():
            await self._process_transaction(tx_hash, block_number)

    async def _process_transaction(self, tx_hash: str, block_number: int) -> None:
        if await self._store.exists_by_hash(tx_hash):
            self._progress.duplicates_skipped += 1
            logger.debug("duplicate_transaction_skipped", tx_hash=tx_hash)
            return

        try:
            records = await self._resolver.resolve(tx_hash, block_number)
        except TradeApiError as e:
            self._progress.errors += 1
            logger.warning(
                "transaction_resolution_failed",
                tx_hash=tx_hash,
                block_number=block_number,
                status_code=e.status_code,
                error=str(e),
            )
            return

        if not records:
            logger.debug("no_orders_for_transaction", tx_hash=tx_hash)
            return

        for record in records:
            await self._store.upsert(record)
            self._progress.records_saved += 1

        if self._tokens is not None and self._settings.warm_token_metadata:
            await self._warm_token_metadata(records)

    async def _warm_token_metadata(self, records: list[TradeRecord]) -> None:
        """Populate the token metadata cache for tokens seen in new trades.

        Failures only cost a cache miss later and are not sync errors.
        """
        assert self._tokens is not None
        for record in records:
            for address in (record.sell_token, record.buy_token):
                key = address.lower()
                if key in self._warmed_tokens:
                    continue
                try:
                    await self._tokens.get(address)
                except ProviderError as e:
                    logger.warning("token_metadata_unavailable", address=address, error=str(e))
                self._warmed_tokens.add(key)
