"""Service interfaces (ports) for the application layer.

Protocols define contracts for the collaborators the read orchestrator
depends on (DIP): the remote document database, the cache store, and the
access policy.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from cost_trimmer.domain.entities import CacheEntry, CollectionPage
    from cost_trimmer.domain.enums import ReadOperation
    from cost_trimmer.domain.value_objects import (
        Identity,
        PaginationCursor,
        QueryConstraint,
        ResourcePath,
    )


class IDocumentFetcher(Protocol):
    """Protocol for the remote database collaborator (billed reads)."""

    async def fetch_document(self, path: str) -> dict[str, Any]:
        """Return document data.

        Raises DocumentNotFoundError if absent, RemoteFetchError on
        network/timeout failures.
        """
        ...

    async def fetch_collection_page(
        self,
        path: str,
        constraints: Sequence[QueryConstraint],
        cursor: PaginationCursor | None = None,
    ) -> CollectionPage:
        """Return one page of results and the cursor for the next page (or None)."""
        ...


class ICacheStore(Protocol):
    """Protocol for the bounded key/value store holding cached reads."""

    def get(self, key: str) -> CacheEntry | None:
        """Return a valid entry or None (expired entries are removed)."""
        ...

    def put(self, key: str, value: Any, ttl_ms: int) -> None:
        """Store value under key with a per-entry TTL in milliseconds."""
        ...

    def invalidate(self, key: str) -> bool:
        """Remove one key. Returns True if it was present."""
        ...

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns number removed."""
        ...

    def clear(self) -> None:
        """Remove every entry."""
        ...


class IAccessPolicy(Protocol):
    """Injected authorization rule.

    Returns None to allow, or a denial reason string.
    """

    def __call__(
        self,
        identity: Identity,
        path: ResourcePath,
        operation: ReadOperation,
    ) -> str | None: ...
