"""Pytest configuration and fixtures for cost_trimmer.

Provides a manual millisecond clock, an in-memory fake of the remote
fetch collaborator (counts billed reads, can be gated or made to fail),
and a ReadOrchestrator wired like the balanced preset with user-123
registered.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from cost_trimmer.application.services.access_guard import AccessGuard
from cost_trimmer.application.services.read_orchestrator import ReadOrchestrator
from cost_trimmer.application.services.stats_recorder import StatsRecorder
from cost_trimmer.core.config import get_settings
from cost_trimmer.domain.entities import CollectionPage
from cost_trimmer.domain.enums import GuardStrictness
from cost_trimmer.domain.exceptions import DocumentNotFoundError
from cost_trimmer.domain.value_objects import (
    FieldFilter,
    Identity,
    PaginationCursor,
    QueryConstraint,
    page_size,
)
from cost_trimmer.infrastructure.cache.memory_cache import InMemoryCacheStore

COST_PER_READ = 0.000036

PRODUCTS = [
    {"id": "product-1", "name": "Dune", "category": "books", "price": 12},
    {"id": "product-2", "name": "Emma", "category": "books", "price": 9},
    {"id": "product-3", "name": "Ulysses", "category": "books", "price": 15},
    {"id": "product-4", "name": "Headphones", "category": "electronics", "price": 80},
    {"id": "product-5", "name": "Keyboard", "category": "electronics", "price": 45},
]


class ManualClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeFetcher:
    """In-memory remote collaborator; every call counts as one billed read.

    Set ``gate`` to hold fetches until the event is set; ``started`` is set
    when a fetch begins. Set ``error`` to make every fetch fail.
    """

    def __init__(
        self,
        documents: dict[str, dict[str, Any]] | None = None,
        collections: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.documents = documents if documents is not None else {}
        self.collections = collections if collections is not None else {}
        self.document_calls: list[str] = []
        self.collection_calls: list[tuple[str, list[QueryConstraint], PaginationCursor | None]] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.error: Exception | None = None

    @property
    def calls(self) -> int:
        return len(self.document_calls) + len(self.collection_calls)

    async def _wait(self) -> None:
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

    async def fetch_document(self, path: str) -> dict[str, Any]:
        self.document_calls.append(path)
        # The remote answers with the data as of the request, not as of the reply.
        snapshot = self.documents.get(path)
        await self._wait()
        if snapshot is None:
            raise DocumentNotFoundError(path)
        return dict(snapshot)

    async def fetch_collection_page(
        self,
        path: str,
        constraints: Sequence[QueryConstraint],
        cursor: PaginationCursor | None = None,
    ) -> CollectionPage:
        self.collection_calls.append((path, list(constraints), cursor))
        await self._wait()
        items = [
            dict(item)
            for item in self.collections.get(path, [])
            if all(
                item.get(c.field) == c.value
                for c in constraints
                if isinstance(c, FieldFilter) and c.operator == "=="
            )
        ]
        offset = cursor.offset if cursor is not None else 0
        limit = page_size(constraints, 100)
        page = items[offset : offset + limit]
        consumed = offset + len(page)
        next_cursor = PaginationCursor.after(consumed) if consumed < len(items) else None
        return CollectionPage(items=page, next_cursor=next_cursor)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached per process; tests that patch env get a fresh load."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        documents={
            "products/product-1": {"name": "Dune", "category": "books", "price": 12},
            "products/product-2": {"name": "Emma", "category": "books", "price": 9},
            "users/user-123/profile/main": {"displayName": "John"},
            "users/user-456/profile/main": {"displayName": "Jane"},
        },
        collections={"products": PRODUCTS},
    )


@pytest.fixture
def user() -> Identity:
    return Identity(id="user-123", role="user", email="john@example.com")


@pytest.fixture
def cache_store(clock: ManualClock) -> InMemoryCacheStore:
    return InMemoryCacheStore(max_entries=100, clock=clock)


@pytest.fixture
def optimizer(
    fetcher: FakeFetcher,
    cache_store: InMemoryCacheStore,
    user: Identity,
) -> ReadOrchestrator:
    """Orchestrator with balanced-preset TTLs and user-123 registered."""
    orchestrator = ReadOrchestrator(
        fetcher,
        cache_store,
        AccessGuard(strictness=GuardStrictness.STANDARD),
        StatsRecorder(COST_PER_READ),
        document_ttl_ms=60_000,
        collection_ttl_ms=30_000,
    )
    orchestrator.register_user(user)
    return orchestrator
