"""Tests for the Firestore REST fetcher (query translation, decoding, error mapping).

HTTP is served by httpx.MockTransport; no network or real credentials.
"""

import json
from types import SimpleNamespace

import httpx
import pytest

from cost_trimmer.domain.enums import SortDirection
from cost_trimmer.domain.exceptions import DocumentNotFoundError, RemoteFetchError
from cost_trimmer.domain.value_objects import (
    FieldFilter,
    Limit,
    OrderBy,
    PaginationCursor,
    parse_constraints,
)
from cost_trimmer.infrastructure.firebase._rest_client import FirestoreRESTClient
from cost_trimmer.infrastructure.firebase.fetcher import (
    FirestoreFetcher,
    build_structured_query,
)

PREFIX = "projects/demo/databases/(default)/documents"


def _doc(doc_id: str, **fields: dict) -> dict:
    return {"name": f"{PREFIX}/products/{doc_id}", "fields": fields}


def _fetcher(handler) -> tuple[FirestoreFetcher, httpx.AsyncClient]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    credentials = SimpleNamespace(valid=True, token="test-token")
    client = FirestoreRESTClient("demo", credentials, http_client=http)
    return FirestoreFetcher(client, default_page_size=2), http


class TestBuildStructuredQuery:
    def test_single_filter(self) -> None:
        structured, limit = build_structured_query([FieldFilter("category", "==", "books")])
        assert structured["where"] == {
            "fieldFilter": {
                "field": {"fieldPath": "category"},
                "op": "EQUAL",
                "value": {"stringValue": "books"},
            }
        }
        assert limit == 100
        assert "offset" not in structured

    def test_composite_filter_order_limit_and_offset(self) -> None:
        constraints = [
            FieldFilter("category", "==", "books"),
            FieldFilter("price", "<", 20),
            OrderBy("price", SortDirection.DESC),
            Limit(10),
        ]
        structured, limit = build_structured_query(constraints, offset=20)
        assert structured["where"]["compositeFilter"]["op"] == "AND"
        assert len(structured["where"]["compositeFilter"]["filters"]) == 2
        assert structured["orderBy"] == [
            {"field": {"fieldPath": "price"}, "direction": "DESCENDING"}
        ]
        assert structured["limit"] == limit == 10
        assert structured["offset"] == 20

    def test_mapping_constraints_translate(self) -> None:
        parsed = parse_constraints(
            [{"field": "tags", "operator": "array-contains", "value": "sale"}]
        )
        structured, _ = build_structured_query(parsed)
        assert structured["where"]["fieldFilter"]["op"] == "ARRAY_CONTAINS"


class TestFetchDocument:
    @pytest.mark.asyncio
    async def test_decodes_document(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(
                200,
                json=_doc(
                    "product-1",
                    name={"stringValue": "Dune"},
                    price={"integerValue": "12"},
                    tags={"arrayValue": {"values": [{"stringValue": "scifi"}]}},
                ),
            )

        fetcher, http = _fetcher(handler)
        async with http:
            doc = await fetcher.fetch_document("products/product-1")

        assert doc == {"id": "product-1", "name": "Dune", "price": 12, "tags": ["scifi"]}
        assert seen["url"].endswith(f"{PREFIX}/products/product-1")
        assert seen["auth"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_stored_id_field_does_not_replace_document_id(self) -> None:
        fetcher, http = _fetcher(
            lambda request: httpx.Response(
                200, json=_doc("product-1", id={"stringValue": "legacy-42"})
            )
        )
        async with http:
            doc = await fetcher.fetch_document("products/product-1")
        assert doc == {"id": "product-1"}

    @pytest.mark.asyncio
    async def test_missing_document(self) -> None:
        fetcher, http = _fetcher(lambda request: httpx.Response(404))
        async with http:
            with pytest.raises(DocumentNotFoundError):
                await fetcher.fetch_document("products/nope")

    @pytest.mark.asyncio
    async def test_server_error_is_network_error(self) -> None:
        fetcher, http = _fetcher(lambda request: httpx.Response(503))
        async with http:
            with pytest.raises(RemoteFetchError) as exc_info:
                await fetcher.fetch_document("products/product-1")
        assert exc_info.value.error_code == "NETWORK_ERROR"
        assert exc_info.value.reason == "HTTP 503"

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        fetcher, http = _fetcher(handler)
        async with http:
            with pytest.raises(RemoteFetchError) as exc_info:
                await fetcher.fetch_document("products/product-1")
        assert exc_info.value.reason == "timeout"


class TestFetchCollectionPage:
    @pytest.mark.asyncio
    async def test_full_page_sets_next_cursor(self) -> None:
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(
                200,
                json=[
                    {"document": _doc("product-1", name={"stringValue": "Dune"})},
                    {"document": _doc("product-2", name={"stringValue": "Emma"})},
                ],
            )

        fetcher, http = _fetcher(handler)
        async with http:
            page = await fetcher.fetch_collection_page(
                "products", [FieldFilter("category", "==", "books")]
            )

        assert [item["id"] for item in page.items] == ["product-1", "product-2"]
        assert page.next_cursor == PaginationCursor.after(2)
        path, body = bodies[0]
        assert path.endswith(f"{PREFIX}:runQuery")
        assert body["structuredQuery"]["from"] == [{"collectionId": "products"}]
        assert body["structuredQuery"]["limit"] == 2

    @pytest.mark.asyncio
    async def test_short_page_has_no_cursor_and_nested_parent(self) -> None:
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            body = json.loads(request.content)
            assert body["structuredQuery"]["offset"] == 2
            assert body["structuredQuery"]["from"] == [{"collectionId": "orders"}]
            return httpx.Response(
                200, json=[{"document": _doc("o-3")}, {"readTime": "2024-01-01T00:00:00Z"}]
            )

        fetcher, http = _fetcher(handler)
        async with http:
            page = await fetcher.fetch_collection_page(
                "users/u1/orders", [], PaginationCursor.after(2)
            )

        assert [item["id"] for item in page.items] == ["o-3"]
        assert page.next_cursor is None
        assert paths[0].endswith(f"{PREFIX}/users/u1:runQuery")

    @pytest.mark.asyncio
    async def test_transport_error_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        fetcher, http = _fetcher(handler)
        async with http:
            with pytest.raises(RemoteFetchError) as exc_info:
                await fetcher.fetch_collection_page("products", [])
        assert exc_info.value.reason == "refused"

    @pytest.mark.asyncio
    async def test_next_page_offsets_past_consumed_items(self) -> None:
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content)["structuredQuery"])
            return httpx.Response(
                200,
                json=[
                    {"document": _doc("p-3", id={"stringValue": "stored"})},
                    {"document": _doc("p-4")},
                ],
            )

        fetcher, http = _fetcher(handler)
        async with http:
            first = await fetcher.fetch_collection_page("products", [])
            second = await fetcher.fetch_collection_page("products", [], first.next_cursor)

        assert "offset" not in bodies[0]
        assert bodies[1]["offset"] == 2
        assert bodies[1]["limit"] == 2
        assert second.next_cursor == PaginationCursor.after(4)
        assert [item["id"] for item in second.items] == ["p-3", "p-4"]
