"""Read orchestrator: the cached, authorized read path for documents and collections.

Every read runs key building -> access guard -> cache lookup -> (on miss)
one coalesced remote fetch -> cache population, and records the outcome.
Concurrent misses on the same key share one in-flight fetch task; callers
await it through asyncio.shield so a caller that is cancelled detaches
without cancelling the fetch other waiters depend on.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from cost_trimmer.application.interfaces.services import (
    ICacheStore,
    IDocumentFetcher,
)
from cost_trimmer.application.services.access_guard import AccessGuard
from cost_trimmer.application.services.stats_recorder import (
    StatsListener,
    StatsRecorder,
)
from cost_trimmer.domain.entities import CollectionPage, StatsSnapshot
from cost_trimmer.domain.enums import ReadOperation
from cost_trimmer.domain.exceptions import InvalidConstraintError
from cost_trimmer.domain.value_objects import (
    Identity,
    PaginationCursor,
    QueryConstraint,
    ResourcePath,
    parse_constraints,
)
from cost_trimmer.infrastructure.cache.keys import (
    collection_key,
    document_key,
    identity_path_prefix,
    path_prefix,
)

logger = logging.getLogger(__name__)

ConstraintInput = QueryConstraint | Mapping[str, Any]


class CollectionResult:
    """One page of a collection read, with load_more() for the next page."""

    def __init__(
        self,
        orchestrator: ReadOrchestrator,
        identity: Identity,
        path: ResourcePath,
        constraints: list[QueryConstraint],
        page: CollectionPage,
        *,
        cache: bool,
        ttl_ms: int | None,
        from_cache: bool,
    ) -> None:
        self._orchestrator = orchestrator
        self._identity = identity
        self._path = path
        self._constraints = constraints
        self._cache = cache
        self._ttl_ms = ttl_ms
        self.items = page.items
        self.next_cursor = page.next_cursor
        self.from_cache = from_cache

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    async def load_more(self) -> CollectionResult:
        """Read the next page (same identity, path, constraints and options).

        Raises:
            InvalidConstraintError: If there is no next page.
        """
        if self.next_cursor is None:
            raise InvalidConstraintError("No more pages to load")
        return await self._orchestrator.read_collection(
            self._identity,
            self._path,
            constraints=self._constraints,
            cache=self._cache,
            ttl_ms=self._ttl_ms,
            cursor=self.next_cursor,
        )

    def __repr__(self) -> str:
        return (
            f"CollectionResult(path={self._path.value!r}, items={len(self.items)}, "
            f"has_more={self.has_more}, from_cache={self.from_cache})"
        )


class ReadOrchestrator:
    """Facade for cached document and collection reads.

    In-flight coalescing state is bound to the event loop the reads run
    on; use one orchestrator per loop.
    """

    def __init__(
        self,
        fetcher: IDocumentFetcher,
        cache_store: ICacheStore,
        guard: AccessGuard,
        stats: StatsRecorder,
        *,
        document_ttl_ms: int,
        collection_ttl_ms: int,
        sweep_interval_seconds: float = 0.0,
        close_fetcher: bool = False,
    ) -> None:
        """Wire collaborators.

        Args:
            fetcher: Remote database collaborator (billed reads).
            cache_store: Store for read results.
            guard: Access guard holding registered identities.
            stats: Statistics recorder.
            document_ttl_ms: Default TTL for document reads.
            collection_ttl_ms: Default TTL for collection pages.
            sweep_interval_seconds: Proactive expiry interval; 0 disables.
            close_fetcher: Close the fetcher in aclose() (when the engine built it).
        """
        self.fetcher = fetcher
        self.cache_store = cache_store
        self.guard = guard
        self.stats = stats
        self.document_ttl_ms = document_ttl_ms
        self.collection_ttl_ms = collection_ttl_ms
        self.sweep_interval_seconds = sweep_interval_seconds
        self._close_fetcher = close_fetcher
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    # ---- lifecycle ----

    async def start(self) -> None:
        """Start the proactive expiry sweeper when configured."""
        if self.sweep_interval_seconds > 0 and hasattr(self.cache_store, "start_sweeper"):
            self.cache_store.start_sweeper(self.sweep_interval_seconds)

    async def aclose(self) -> None:
        """Stop the sweeper and close the fetcher if owned."""
        if hasattr(self.cache_store, "stop_sweeper"):
            await self.cache_store.stop_sweeper()
        if self._close_fetcher and hasattr(self.fetcher, "aclose"):
            await self.fetcher.aclose()

    async def __aenter__(self) -> ReadOrchestrator:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---- identities and stats ----

    def register_user(self, identity: Identity | Mapping[str, Any]) -> Identity:
        """Record the identity used for scoping and authorization (idempotent per id).

        Raises:
            InvalidIdentityError: If the identity has no id or role.
        """
        registered = self.guard.register(identity)
        logger.info("Registered identity %s (role=%s)", registered.id, registered.role)
        return registered

    def get_cache_stats(self) -> StatsSnapshot:
        """Point-in-time statistics snapshot."""
        return self.stats.snapshot()

    def subscribe_stats(self, listener: StatsListener) -> Callable[[], None]:
        """Call listener with a snapshot after every read outcome; returns unsubscribe."""
        return self.stats.subscribe(listener)

    def reset_stats(self) -> None:
        self.stats.reset()

    # ---- invalidation ----

    def invalidate(
        self,
        path: ResourcePath | str,
        identity: Identity | str | None = None,
    ) -> int:
        """Drop cached entries for a path (all identities unless one is given).

        Invalidating a document also drops cached pages of its parent
        collection, since those pages may contain the document. Fetches in
        flight for matching keys are detached so their results are not stored.

        Returns:
            Number of cached entries removed.
        """
        resource = ResourcePath.parse(path)
        targets = [resource]
        if resource.is_document and resource.parent is not None:
            targets.append(resource.parent)
        removed = 0
        for target in targets:
            if identity is None:
                prefix = path_prefix(target)
            else:
                identity_id = identity.id if isinstance(identity, Identity) else identity
                prefix = identity_path_prefix(target, identity_id)
            removed += self.cache_store.invalidate_prefix(prefix)
            for key in [k for k in self._inflight if k.startswith(prefix)]:
                del self._inflight[key]
        return removed

    def clear_cache(self) -> None:
        """Drop every cached entry and detach every in-flight fetch."""
        self._inflight.clear()
        self.cache_store.clear()

    # ---- reads ----

    async def read_document(
        self,
        identity: Identity | str,
        path: ResourcePath | str,
        *,
        cache: bool = True,
        ttl_ms: int | None = None,
        force_refresh: bool = False,
    ) -> Any:
        """Read one document through the cache.

        Args:
            identity: Identity, or the id of a registered identity.
            path: Document path (even number of segments).
            cache: False skips the cache entirely (recorded as a bypass).
            ttl_ms: Freshness window for a stored result; preset default if None.
            force_refresh: Skip the lookup but store the fresh result.

        Raises:
            AuthorizationError: Guard denied the read; cache and remote untouched.
            InvalidConstraintError: Path is malformed or not a document path.
            RemoteFetchError: Remote fetch failed (DocumentNotFoundError if absent).
        """
        who = self.guard.resolve(identity)
        resource = ResourcePath.parse(path)
        if not resource.is_document:
            raise InvalidConstraintError(f"{resource} is a collection path, not a document")
        ttl = self._ttl(ttl_ms, self.document_ttl_ms)

        if not cache:
            self.guard.require(who, resource, ReadOperation.GET)
            value = await self.fetcher.fetch_document(resource.value)
            self.stats.record_bypass()
            return value

        key = document_key(who, resource)
        self.guard.require(who, resource, ReadOperation.GET)
        value, _ = await self._load(
            key,
            lambda: self.fetcher.fetch_document(resource.value),
            ttl,
            force_refresh,
        )
        return value

    async def read_collection(
        self,
        identity: Identity | str,
        path: ResourcePath | str,
        *,
        constraints: Iterable[ConstraintInput] | None = None,
        cache: bool = True,
        ttl_ms: int | None = None,
        cursor: PaginationCursor | str | None = None,
        force_refresh: bool = False,
    ) -> CollectionResult:
        """Read one page of a collection query through the cache.

        Each (constraints, cursor) combination is cached independently, so
        revisiting a page is a hit and advancing to an unseen page is a miss.

        Raises:
            AuthorizationError: Guard denied the read.
            InvalidConstraintError: Malformed constraint, cursor or path.
            RemoteFetchError: Remote query failed.
        """
        who = self.guard.resolve(identity)
        resource = ResourcePath.parse(path)
        if not resource.is_collection:
            raise InvalidConstraintError(f"{resource} is a document path, not a collection")
        parsed = parse_constraints(constraints)
        page_cursor = PaginationCursor.parse(cursor) if cursor is not None else None
        ttl = self._ttl(ttl_ms, self.collection_ttl_ms)

        def fetch() -> Awaitable[CollectionPage]:
            return self.fetcher.fetch_collection_page(resource.value, parsed, page_cursor)

        if not cache:
            self.guard.require(who, resource, ReadOperation.LIST)
            page = await fetch()
            self.stats.record_bypass()
            return self._result(who, resource, parsed, page, cache, ttl_ms, False)

        key = collection_key(who, resource, parsed, page_cursor)
        self.guard.require(who, resource, ReadOperation.LIST)
        page, from_cache = await self._load(key, fetch, ttl, force_refresh)
        return self._result(who, resource, parsed, page, cache, ttl_ms, from_cache)

    # ---- internals ----

    def _result(
        self,
        identity: Identity,
        path: ResourcePath,
        constraints: list[QueryConstraint],
        page: CollectionPage,
        cache: bool,
        ttl_ms: int | None,
        from_cache: bool,
    ) -> CollectionResult:
        return CollectionResult(
            self,
            identity,
            path,
            constraints,
            page,
            cache=cache,
            ttl_ms=ttl_ms,
            from_cache=from_cache,
        )

    @staticmethod
    def _ttl(ttl_ms: int | None, default: int) -> int:
        ttl = default if ttl_ms is None else ttl_ms
        if not isinstance(ttl, int) or isinstance(ttl, bool) or ttl <= 0:
            raise InvalidConstraintError(f"ttl must be a positive integer, got {ttl!r}")
        return ttl

    async def _load(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl_ms: int,
        force_refresh: bool,
    ) -> tuple[Any, bool]:
        """Serve key from cache or from one shared fetch. Returns (value, served_from_cache).

        Only a valid cache entry counts as a hit. A read that finds no entry
        records a miss whether it starts the fetch or joins one already in
        flight; joining costs no billed read of its own, but it still waited
        on the remote.
        """
        if not force_refresh:
            entry = self.cache_store.get(key)
            if entry is not None:
                self.stats.record_hit()
                return copy.deepcopy(entry.value), True

        self.stats.record_miss()
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, fetch, ttl_ms))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task
            logger.debug("Fetching %s from remote", key)
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        value = await asyncio.shield(task)
        return copy.deepcopy(value), False

    async def _fetch_and_store(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl_ms: int,
    ) -> Any:
        """Shared fetch for one key; stores on success, always releases in-flight state.

        A fetch detached by invalidate() or clear_cache() still answers its
        waiters but does not store its (possibly stale) result.
        """
        current = asyncio.current_task()
        try:
            value = await fetch()
            if self._inflight.get(key) is current:
                self.cache_store.put(key, value, ttl_ms)
            else:
                logger.debug("Discarding result of invalidated fetch for %s", key)
            return value
        except Exception as e:
            logger.warning("Remote fetch failed for %s: %s", key, e)
            raise
        finally:
            if self._inflight.get(key) is current:
                del self._inflight[key]


def _consume_exception(task: asyncio.Task[Any]) -> None:
    """Mark a shared fetch's exception as retrieved when every waiter has detached."""
    if not task.cancelled():
        task.exception()
