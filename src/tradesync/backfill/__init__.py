"""Historical backfill package.

Block locator for the lookback cutoff, the adaptive batch size controller,
progress reporting, and the engine that walks a chain backward from its
head persisting settled trades.
"""

from tradesync.backfill.batch import BatchState, initial_state, on_failure, on_success
from tradesync.backfill.engine import BackfillEngine
from tradesync.backfill.locator import cutoff_timestamp, locate_block
from tradesync.backfill.progress import SyncProgress

__all__ = [
    "BackfillEngine",
    "BatchState",
    "SyncProgress",
    "cutoff_timestamp",
    "initial_state",
    "locate_block",
    "on_failure",
    "on_success",
]
