"""Domain value objects (immutable, self-validating)."""

from cost_trimmer.domain.value_objects.core import (
    FieldFilter,
    Identity,
    Limit,
    OrderBy,
    PaginationCursor,
    QueryConstraint,
    ResourcePath,
    canonical_constraints,
    page_size,
    parse_constraint,
    parse_constraints,
)

__all__ = [
    "FieldFilter",
    "Identity",
    "Limit",
    "OrderBy",
    "PaginationCursor",
    "QueryConstraint",
    "ResourcePath",
    "canonical_constraints",
    "page_size",
    "parse_constraint",
    "parse_constraints",
]
