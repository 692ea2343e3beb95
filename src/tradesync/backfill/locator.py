"""Block locator: map a wall-clock cutoff to a block number.

Binary search over block numbers using only block -> timestamp lookups,
relying on block timestamps being non-decreasing in block number. The search
stops once the interval is within BLOCK_TOLERANCE blocks and returns its lower
end, trading up to that many blocks of precision for fewer RPC calls.
"""

import time
from collections.abc import Awaitable, Callable

from tradesync.logging import get_logger

logger = get_logger(__name__)

BLOCK_TOLERANCE = 10
MAX_SEARCH_STEPS = 64  # covers any 64-bit block range
SECONDS_PER_MONTH = 30 * 86_400

TimestampLookup = Callable[[int], Awaitable[int]]


def cutoff_timestamp(lookback_months: int, now: float | None = None) -> int:
    """Unix timestamp lookback_months (30-day months) before now."""
    if now is None:
        now = time.time()
    return int(now) - lookback_months * SECONDS_PER_MONTH


async def locate_block(
    timestamp_of: TimestampLookup,
    low: int,
    high: int,
    target_timestamp: int,
    *,
    tolerance: int = BLOCK_TOLERANCE,
    max_steps: int = MAX_SEARCH_STEPS,
    fail_soft: bool = True,
) -> int:
    """Return the approximate last block at or before target_timestamp.

    Each step costs one timestamp lookup. If a lookup fails and fail_soft is
    set, the current midpoint is returned as a best-effort estimate; callers
    must treat the result as approximate either way. With fail_soft=False the
    lookup error propagates, for callers that act destructively on the result.
    """
    if low > high:
        raise ValueError(f"Invalid search interval [{low}, {high}]")

    steps = 0
    while high - low > tolerance:
        if steps >= max_steps:
            logger.warning("block_search_step_limit", low=low, high=high, steps=steps)
            break

        mid = (low + high) // 2
        steps += 1
        try:
            mid_timestamp = await timestamp_of(mid)
        except Exception as e:
            if not fail_soft:
                raise
            logger.warning(
                "block_search_lookup_failed",
                block=mid,
                steps=steps,
                error=str(e),
            )
            return mid

        if mid_timestamp > target_timestamp:
            high = mid
        else:
            low = mid

    logger.info(
        "block_located",
        block=low,
        target_timestamp=target_timestamp,
        steps=steps,
        window=high - low,
    )
    return low
