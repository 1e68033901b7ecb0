"""Cache: in-process LRU store and cache key utilities.

The read orchestrator stores read results in InMemoryCacheStore; key
format lives in keys.py (DRY).
"""

from cost_trimmer.infrastructure.cache.keys import (
    build_key,
    collection_key,
    document_key,
    identity_path_prefix,
    path_prefix,
)
from cost_trimmer.infrastructure.cache.memory_cache import (
    InMemoryCacheStore,
    estimate_size,
)

__all__ = [
    "InMemoryCacheStore",
    "build_key",
    "collection_key",
    "document_key",
    "estimate_size",
    "identity_path_prefix",
    "path_prefix",
]
