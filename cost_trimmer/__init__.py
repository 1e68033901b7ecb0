"""Read-path cache and cost optimizer for Firestore document reads.

Serves repeated document and query reads from a per-user cache with TTL
expiry, coalesces concurrent misses into one billed read, and reports
hit/miss statistics with an estimated cost saved.
"""

from cost_trimmer.application.services import (
    AccessGuard,
    CollectionResult,
    ReadOrchestrator,
    StatsRecorder,
    owner_scoped_policy,
)
from cost_trimmer.core.composition import build_optimizer, quick_firestore
from cost_trimmer.core.presets import PRESETS, PresetConfig, resolve_preset
from cost_trimmer.domain.entities import CollectionPage, StatsSnapshot
from cost_trimmer.domain.enums import GuardStrictness, OptimizerPreset
from cost_trimmer.domain.exceptions import (
    AuthorizationError,
    ConfigurationError,
    CostTrimmerException,
    DocumentNotFoundError,
    InvalidConstraintError,
    InvalidIdentityError,
    RemoteFetchError,
)
from cost_trimmer.domain.value_objects import (
    FieldFilter,
    Identity,
    Limit,
    OrderBy,
    PaginationCursor,
    ResourcePath,
)
from cost_trimmer.infrastructure.cache import InMemoryCacheStore, build_key

__all__ = [
    "PRESETS",
    "AccessGuard",
    "AuthorizationError",
    "CollectionPage",
    "CollectionResult",
    "ConfigurationError",
    "CostTrimmerException",
    "DocumentNotFoundError",
    "FieldFilter",
    "GuardStrictness",
    "Identity",
    "InMemoryCacheStore",
    "InvalidConstraintError",
    "InvalidIdentityError",
    "Limit",
    "OptimizerPreset",
    "OrderBy",
    "PaginationCursor",
    "PresetConfig",
    "ReadOrchestrator",
    "RemoteFetchError",
    "ResourcePath",
    "StatsRecorder",
    "StatsSnapshot",
    "build_key",
    "build_optimizer",
    "owner_scoped_policy",
    "quick_firestore",
    "resolve_preset",
]
