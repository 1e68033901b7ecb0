"""Firestore fetcher: the remote read collaborator behind the cache (IDocumentFetcher).

Every call here is a billed read. Transport failures, timeouts and
non-2xx responses become RemoteFetchError; a missing document becomes
DocumentNotFoundError.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError

from cost_trimmer.core.constants import DEFAULT_PAGE_SIZE
from cost_trimmer.domain.entities import CollectionPage
from cost_trimmer.domain.exceptions import DocumentNotFoundError, RemoteFetchError
from cost_trimmer.domain.value_objects import (
    FieldFilter,
    Limit,
    OrderBy,
    PaginationCursor,
    QueryConstraint,
    page_size,
)
from cost_trimmer.infrastructure.firebase._rest_client import FirestoreRESTClient
from cost_trimmer.infrastructure.firebase._rest_encoding import (
    decode_document,
    document_id,
    encode_value,
)
from cost_trimmer.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)

_OP_MAP: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "in": "IN",
    "not-in": "NOT_IN",
    "array-contains": "ARRAY_CONTAINS",
    "array-contains-any": "ARRAY_CONTAINS_ANY",
}

_DIRECTION_MAP = {"asc": "ASCENDING", "desc": "DESCENDING"}


def build_structured_query(
    constraints: Sequence[QueryConstraint],
    offset: int = 0,
    default_limit: int = DEFAULT_PAGE_SIZE,
) -> tuple[dict[str, Any], int]:
    """Translate constraints into a structuredQuery body (without "from").

    Filters are ANDed; orderBy clauses keep caller order. Returns the query
    and the effective page size.
    """
    filters = [
        {
            "fieldFilter": {
                "field": {"fieldPath": c.field},
                "op": _OP_MAP[c.operator],
                "value": encode_value(c.value),
            }
        }
        for c in constraints
        if isinstance(c, FieldFilter)
    ]
    structured: dict[str, Any] = {}
    if len(filters) == 1:
        structured["where"] = filters[0]
    elif filters:
        structured["where"] = {"compositeFilter": {"op": "AND", "filters": filters}}
    order = [
        {
            "field": {"fieldPath": c.field},
            "direction": _DIRECTION_MAP[c.direction.value],
        }
        for c in constraints
        if isinstance(c, OrderBy)
    ]
    if order:
        structured["orderBy"] = order
    limit = page_size([c for c in constraints if isinstance(c, Limit)], default_limit)
    structured["limit"] = limit
    if offset:
        structured["offset"] = offset
    return structured, limit


class FirestoreFetcher:
    """Reads documents and collection pages from Firestore over REST."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.client = client
        self.default_page_size = default_page_size

    async def aclose(self) -> None:
        await self.client.aclose()

    @traced("firestore.fetch_document")
    async def fetch_document(self, path: str) -> dict[str, Any]:
        """Return document data (with its id under "id").

        Raises:
            DocumentNotFoundError: If the document does not exist.
            RemoteFetchError: On network, timeout, auth or server errors.
        """
        add_span_attributes(**{"firestore.path": path})
        try:
            doc = await self.client.get_document(path)
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise _to_remote_error(path, e) from e
        if doc is None:
            logger.info("Document not found: %s", path)
            raise DocumentNotFoundError(path)
        return _with_id(doc)

    @traced("firestore.fetch_collection_page")
    async def fetch_collection_page(
        self,
        path: str,
        constraints: Sequence[QueryConstraint],
        cursor: PaginationCursor | None = None,
    ) -> CollectionPage:
        """Run the query for one page; next_cursor is set only when the page is full.

        Cursors are offsets, and Firestore bills every document an offset
        skips, so page N of size L costs about N * L reads on a miss. Deep
        pagination is cheap only when revisited pages are served from cache.

        Raises:
            RemoteFetchError: On network, timeout, auth or server errors.
        """
        offset = cursor.offset if cursor is not None else 0
        structured, limit = build_structured_query(
            constraints, offset=offset, default_limit=self.default_page_size
        )
        try:
            docs = await self.client.run_query(path, structured)
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise _to_remote_error(path, e) from e
        items = [_with_id(d) for d in docs]
        add_span_attributes(
            **{"firestore.path": path, "firestore.offset": offset, "firestore.results": len(items)}
        )
        next_cursor = PaginationCursor.after(offset + len(items)) if len(items) >= limit else None
        return CollectionPage(items=items, next_cursor=next_cursor)


def _with_id(document: dict[str, Any]) -> dict[str, Any]:
    """Decoded fields plus the document id under "id" (the id wins over a stored "id" field)."""
    return {**decode_document(document), "id": document_id(document)}


def _to_remote_error(path: str, exc: Exception) -> RemoteFetchError:
    if isinstance(exc, httpx.TimeoutException):
        reason = "timeout"
    elif isinstance(exc, httpx.HTTPStatusError):
        reason = f"HTTP {exc.response.status_code}"
    elif isinstance(exc, GoogleAuthError):
        reason = f"credential refresh failed: {exc}"
    else:
        reason = str(exc) or exc.__class__.__name__
    logger.warning("Firestore read failed for %s: %s", path, reason)
    return RemoteFetchError(path, reason)
