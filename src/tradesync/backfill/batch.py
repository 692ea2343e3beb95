"""Adaptive batch sizing for eth_getLogs ranges.

The provider's largest acceptable block range is unknown, differs between
providers and drifts during a run. BatchState is an immutable value and the
two transitions are pure functions:

- on_success doubles the size, but never to or above the last failing size
  (so the same rejection is not immediately re-triggered) and never above
  max_size.
- on_failure (capacity errors only) bisects toward the last good size when
  one exists, halves otherwise, and halves outright after two consecutive
  failures at the same size.

Every result is kept within [min_size, max_size].
"""

from dataclasses import dataclass, replace

from tradesync.config import BackfillSettings


@dataclass(frozen=True)
class BatchState:
    """Current block-range size and what the run has learned so far."""

    size: int
    min_size: int
    max_size: int
    last_success_size: int | None = None
    last_failure_size: int | None = None
    consecutive_failures: int = 0

    def __post_init__(self) -> None:
        if not 1 <= self.min_size <= self.max_size:
            raise ValueError(
                f"Invalid batch bounds [{self.min_size}, {self.max_size}]"
            )
        if not self.min_size <= self.size <= self.max_size:
            raise ValueError(
                f"Batch size {self.size} outside [{self.min_size}, {self.max_size}]"
            )

    @property
    def at_minimum(self) -> bool:
        return self.size == self.min_size


def initial_state(settings: BackfillSettings) -> BatchState:
    """Fresh state for a new run; adaptation never persists across runs."""
    return BatchState(
        size=settings.initial_batch_size,
        min_size=settings.min_batch_size,
        max_size=settings.max_batch_size,
    )


def _clamp(value: int, state: BatchState) -> int:
    return max(state.min_size, min(value, state.max_size))


def on_success(state: BatchState) -> BatchState:
    """Record a successful fetch at state.size and propose the next size."""
    proposal = state.size * 2
    if state.last_failure_size is not None:
        proposal = min(proposal, state.last_failure_size - 1)
    return replace(
        state,
        size=_clamp(proposal, state),
        last_success_size=state.size,
        consecutive_failures=0,
    )


def on_failure(state: BatchState) -> BatchState:
    """Record a capacity rejection at state.size and propose a smaller size."""
    failed = state.size
    if state.last_failure_size == failed:
        consecutive = state.consecutive_failures + 1
    else:
        consecutive = 1

    if consecutive >= 2:
        proposal = failed // 2
        consecutive = 0
    elif state.last_success_size is not None and state.last_success_size < failed:
        proposal = (state.last_success_size + failed) // 2
    else:
        proposal = failed // 2

    return replace(
        state,
        size=_clamp(proposal, state),
        last_failure_size=failed,
        consecutive_failures=consecutive,
    )
