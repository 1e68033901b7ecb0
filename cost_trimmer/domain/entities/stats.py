"""Statistics snapshot entity (point-in-time view of read accounting)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time read accounting.

    total_operations counts cache-eligible reads only (hits + misses);
    bypassed reads are tracked separately and never count as hits.
    """

    cache_hits: int
    cache_misses: int
    estimated_cost_saved: float
    bypasses: int = 0

    @property
    def total_operations(self) -> int:
        return self.cache_hits + self.cache_misses

    @property
    def hit_rate(self) -> float:
        total = self.total_operations
        return self.cache_hits / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Caller-facing shape (camelCase keys)."""
        return {
            "cacheHits": self.cache_hits,
            "cacheMisses": self.cache_misses,
            "totalOperations": self.total_operations,
            "estimatedCostSaved": self.estimated_cost_saved,
            "bypasses": self.bypasses,
            "hitRate": self.hit_rate,
        }
