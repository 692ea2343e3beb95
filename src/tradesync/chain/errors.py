"""Classification of provider errors.

Providers signal "requested range too large" in many shapes: JSON-RPC error
codes, free-text messages, a nested data payload. There is no standard, so
classification is a case-insensitive substring match over everything the
error carries. The predicate is passed into the engine so the rule can be
swapped per provider.
"""

import json
from collections.abc import Callable, Iterable
from typing import Any

CapacityClassifier = Callable[[BaseException], bool]

CAPACITY_ERROR_PATTERNS: tuple[str, ...] = (
    "too many",
    "batch",
    "limit",
    "exceeded",
    "rate limit",
    "timeout",
    "timed out",
    "more than",
    "invalid params",
    "range is too large",
    "block range",
    "payload too large",
    "response size",
    "exceeds max results",
    "-32005",
)


def _flatten(value: Any) -> Iterable[str]:
    """Yield the text content of an error field, walking nested payloads."""
    if value is None:
        return
    if isinstance(value, str):
        yield value
    elif isinstance(value, bytes):
        yield value.decode("utf-8", errors="replace")
    elif isinstance(value, (dict, list, tuple)):
        yield json.dumps(value, default=str)
    else:
        yield str(value)


def error_text(exc: BaseException) -> str:
    """Collect message, data and details of an exception into one lowercase string."""
    parts: list[str] = [str(exc)]
    for attr in ("message", "data", "details", "rpc_response"):
        parts.extend(_flatten(getattr(exc, attr, None)))
    if exc.__cause__ is not None:
        parts.append(str(exc.__cause__))
    return " ".join(parts).lower()


def is_capacity_error(
    exc: BaseException,
    patterns: Iterable[str] = CAPACITY_ERROR_PATTERNS,
) -> bool:
    """Return True when the error looks like the requested range was too large."""
    text = error_text(exc)
    return any(pattern in text for pattern in patterns)


def make_capacity_classifier(patterns: Iterable[str]) -> CapacityClassifier:
    """Build a classifier bound to a custom phrase list."""
    frozen = tuple(p.lower() for p in patterns)

    def classify(exc: BaseException) -> bool:
        return is_capacity_error(exc, frozen)

    return classify
