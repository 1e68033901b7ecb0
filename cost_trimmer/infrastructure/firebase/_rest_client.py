"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
Read-only: document get and structured runQuery. All HTTP calls use
httpx.AsyncClient so they do not block the event loop.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
) -> Any:
    """Perform async HTTP request to Firestore REST API. 404 returns None.

    Raises:
        httpx.HTTPStatusError: For any other non-2xx status.
        httpx.HTTPError: For transport failures and timeouts.
    """
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    if method == "GET":
        resp = await client.get(url, headers=headers)
    elif method == "POST":
        resp = await client.post(url, headers=headers, json=body)
    else:
        raise ValueError(f"Unsupported method: {method!r}")
    if resp.status_code == 404:
        return None
    if resp.status_code != 200:
        resp.raise_for_status()
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


class FirestoreRESTClient:
    """Lightweight read-only Firestore client using the REST API."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._prefix = f"projects/{project_id}/databases/(default)/documents"
        self._http = (
            http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        )
        self._owns_http = http_client is None

    @property
    def prefix(self) -> str:
        return self._prefix

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str:
        """Return a valid access token; refreshes in thread pool to avoid blocking."""
        return await asyncio.to_thread(_get_access_token, self._credentials)

    async def get_document(self, path: str) -> dict | None:
        """Fetch a REST Document by relative path; None if it does not exist."""
        url = f"{_BASE}/{self._prefix}/{path}"
        return await _request_async(self._http, url, access_token=await self.get_token())

    async def run_query(self, collection_path: str, structured: dict[str, Any]) -> list[dict]:
        """Run a structuredQuery against a (possibly nested) collection.

        The query's "from" is filled in from collection_path; returns the
        REST Documents in result order.
        """
        parent, _, collection_id = collection_path.rpartition("/")
        parent_name = f"{self._prefix}/{parent}" if parent else self._prefix
        query = {"from": [{"collectionId": collection_id}], **structured}
        url = f"{_BASE}/{parent_name}:runQuery"
        resp = await _request_async(
            self._http,
            url,
            method="POST",
            body={"structuredQuery": query},
            access_token=await self.get_token(),
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        return [item["document"] for item in items if "document" in item]
