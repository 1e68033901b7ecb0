"""Domain entities."""

from cost_trimmer.domain.entities.cache_entry import CacheEntry, CollectionPage
from cost_trimmer.domain.entities.stats import StatsSnapshot

__all__ = ["CacheEntry", "CollectionPage", "StatsSnapshot"]
