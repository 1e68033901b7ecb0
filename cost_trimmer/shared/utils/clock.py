"""Millisecond clock used for TTL bookkeeping.

TTLs are measured on the monotonic clock so wall-clock adjustments never
expire or resurrect cache entries. Components accept any zero-argument
callable returning milliseconds, so tests can inject a manual clock.
"""

import time
from collections.abc import Callable

Clock = Callable[[], int]


def monotonic_ms() -> int:
    """Return the monotonic clock in whole milliseconds."""
    return time.monotonic_ns() // 1_000_000
