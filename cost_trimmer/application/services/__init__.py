"""Application services: access guard, statistics recorder, read orchestrator."""

from cost_trimmer.application.services.access_guard import (
    AccessDecision,
    AccessGuard,
    owner_scoped_policy,
)
from cost_trimmer.application.services.read_orchestrator import (
    CollectionResult,
    ReadOrchestrator,
)
from cost_trimmer.application.services.stats_recorder import StatsRecorder

__all__ = [
    "AccessDecision",
    "AccessGuard",
    "CollectionResult",
    "ReadOrchestrator",
    "StatsRecorder",
    "owner_scoped_policy",
]
