"""Cache key builders. Single place for key format (DRY).

Key layout::

    doc:<path>:<identity digest>
    col:<path>:<identity digest>:<query digest>[:<cursor>]

The path is percent-encoded (slashes kept) so it can never contain the
separator, which keeps path prefixes usable for invalidation. The query
digest covers the constraints in canonical order, so permutations of the
same constraint set share a key. The cursor, when present, goes last.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from cost_trimmer.core.constants import (
    CACHE_KEY_SEP,
    CACHE_PREFIX_COLLECTION,
    CACHE_PREFIX_DOCUMENT,
)
from cost_trimmer.domain.value_objects import (
    Identity,
    PaginationCursor,
    QueryConstraint,
    ResourcePath,
    canonical_constraints,
    parse_constraints,
)

_DIGEST_LEN = 32


def canonical_json(data: Any) -> str:
    """Canonical JSON for deterministic hashing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def _digest(data: str) -> str:
    return hashlib.sha256(data.encode()).hexdigest()[:_DIGEST_LEN]


def _encode_path(path: ResourcePath) -> str:
    return quote(path.value, safe="/")


def identity_digest(identity: Identity | str) -> str:
    """Stable digest of an identity id (the per-user scope of every key)."""
    identity_id = identity.id if isinstance(identity, Identity) else identity
    return _digest(identity_id)


def query_digest(constraints: Iterable[QueryConstraint]) -> str:
    """Digest of a constraint set, independent of input order."""
    ordered = [c.to_dict() for c in canonical_constraints(constraints)]
    return _digest(canonical_json(ordered))


def path_prefix(path: ResourcePath | str) -> str:
    """Prefix matching every cached entry for a path, across identities."""
    resource = ResourcePath.parse(path)
    prefix = CACHE_PREFIX_DOCUMENT if resource.is_document else CACHE_PREFIX_COLLECTION
    return f"{prefix}{CACHE_KEY_SEP}{_encode_path(resource)}{CACHE_KEY_SEP}"


def identity_path_prefix(path: ResourcePath | str, identity: Identity | str) -> str:
    """Prefix matching every cached entry for one identity on a path."""
    return f"{path_prefix(path)}{identity_digest(identity)}"


def document_key(identity: Identity, path: ResourcePath | str) -> str:
    """Cache key for a single-document read."""
    return identity_path_prefix(path, identity)


def collection_key(
    identity: Identity,
    path: ResourcePath | str,
    constraints: Iterable[QueryConstraint | Mapping[str, Any]] | None = None,
    cursor: PaginationCursor | str | None = None,
) -> str:
    """Cache key for one page of a collection query.

    Raises:
        InvalidConstraintError: If a constraint is malformed.
    """
    parsed = parse_constraints(constraints)
    key = (
        f"{identity_path_prefix(path, identity)}{CACHE_KEY_SEP}{query_digest(parsed)}"
    )
    if cursor is not None:
        key = f"{key}{CACHE_KEY_SEP}{cursor}"
    return key


def build_key(
    identity: Identity,
    path: ResourcePath | str,
    constraints: Iterable[QueryConstraint | Mapping[str, Any]] | None = None,
    cursor: PaginationCursor | str | None = None,
) -> str:
    """Derive the cache key for a read; document vs collection follows the path shape.

    Raises:
        InvalidConstraintError: If the path or a constraint is malformed.
    """
    resource = ResourcePath.parse(path)
    if resource.is_document and not constraints and cursor is None:
        return document_key(identity, resource)
    return collection_key(identity, resource, constraints, cursor)
