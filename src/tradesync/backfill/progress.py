"""Backfill progress counters and reporting.

SyncProgress is written only by the engine. Per-batch and final reports are
emitted as structured log events; the ETA is derived from a rolling average of
recent batch throughput rather than the whole-run average, because batch size
and provider latency both drift during a run.
"""

import time
from collections import deque
from dataclasses import dataclass, field

from tradesync.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SyncProgress:
    """Monotonic counters and the block cursor of one backfill run.

    current_block is the next block still to be fetched; the walk is done
    once it drops below target_block (both ends inclusive).
    """

    start_block: int = 0
    current_block: int = 0
    target_block: int = 0
    transactions_seen: int = 0
    records_saved: int = 0
    duplicates_skipped: int = 0
    errors: int = 0
    capacity_retries: int = 0
    batches_completed: int = 0
    started_at: float = field(default_factory=time.monotonic)
    eta_window: int = 10
    _recent: deque = field(init=False, repr=False, default_factory=deque)

    def __post_init__(self) -> None:
        self._recent = deque(maxlen=self.eta_window)

    @property
    def remaining_blocks(self) -> int:
        return max(0, self.current_block - self.target_block + 1)

    @property
    def total_blocks(self) -> int:
        return max(0, self.start_block - self.target_block + 1)

    @property
    def percent_complete(self) -> float:
        if self.total_blocks == 0:
            return 100.0
        done = self.total_blocks - self.remaining_blocks
        return round(done / self.total_blocks * 100, 2)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.started_at

    def record_batch(self, blocks: int, seconds: float) -> None:
        """Add one completed batch to the rolling throughput window."""
        self.batches_completed += 1
        self._recent.append((blocks, seconds))

    def eta_seconds(self) -> float | None:
        """Seconds left at recent throughput, or None before any timing data."""
        blocks = sum(b for b, _ in self._recent)
        seconds = sum(s for _, s in self._recent)
        if blocks <= 0 or seconds <= 0:
            return None
        return self.remaining_blocks / (blocks / seconds)


def format_duration(seconds: float | None) -> str:
    """Render seconds as '1h 2m 3s', '2m 3s' or '3s'."""
    if seconds is None:
        return "unknown"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def log_batch_progress(
    progress: SyncProgress,
    batch_size: int,
    from_block: int,
    to_block: int,
) -> None:
    logger.info(
        "batch_completed",
        batch=progress.batches_completed,
        batch_size=batch_size,
        from_block=from_block,
        to_block=to_block,
        remaining_blocks=progress.remaining_blocks,
        percent=progress.percent_complete,
        saved=progress.records_saved,
        duplicates=progress.duplicates_skipped,
        errors=progress.errors,
        eta=format_duration(progress.eta_seconds()),
    )


def log_final_report(progress: SyncProgress) -> None:
    logger.info(
        "backfill_complete",
        start_block=progress.start_block,
        target_block=progress.target_block,
        batches=progress.batches_completed,
        transactions_seen=progress.transactions_seen,
        saved=progress.records_saved,
        duplicates=progress.duplicates_skipped,
        errors=progress.errors,
        capacity_retries=progress.capacity_retries,
        duration=format_duration(progress.elapsed_seconds),
    )
