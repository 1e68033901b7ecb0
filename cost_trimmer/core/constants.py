"""Core constants: cache key prefixes and shared literal values.

Single source of truth for cache key structure (DRY). Used by the key
builder and by prefix invalidation in the read orchestrator.
"""

# Cache key prefixes (document reads vs collection page reads)
CACHE_PREFIX_DOCUMENT = "doc"
CACHE_PREFIX_COLLECTION = "col"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Estimated USD cost of one billed document read (Firestore list price)
DEFAULT_COST_PER_READ = 0.000036

# Page size used for collection reads that carry no limit constraint
DEFAULT_PAGE_SIZE = 100
