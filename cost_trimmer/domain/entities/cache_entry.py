"""Cache entry and collection page entities.

Entries are replace-only: created on a miss-then-fetch, never partially
updated, destroyed on expiry, invalidation or eviction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cost_trimmer.domain.value_objects.core import PaginationCursor


@dataclass(frozen=True)
class CacheEntry:
    """Cached read result with expiry metadata (milliseconds)."""

    key: str
    value: Any
    stored_at: int
    ttl_ms: int
    size: int = 0

    def is_valid(self, now_ms: int) -> bool:
        """Valid iff now - stored_at < ttl_ms."""
        return now_ms - self.stored_at < self.ttl_ms

    @property
    def expires_at(self) -> int:
        return self.stored_at + self.ttl_ms


@dataclass(frozen=True)
class CollectionPage:
    """One page of collection results plus the cursor for the next page."""

    items: list[dict[str, Any]] = field(default_factory=list)
    next_cursor: PaginationCursor | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None
