"""Domain enumerations for the read cache engine.

Enums represent fixed sets of domain values (presets, roles, read
operations, query constraint kinds).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class OptimizerPreset(_ValuesMixin, str, Enum):
    """Named configuration profile (closed set, resolved once at construction)."""

    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    CONSERVATIVE = "conservative"


class GuardStrictness(_ValuesMixin, str, Enum):
    """How strictly the access guard treats identity registration.

    RELAXED admits unregistered identities (policy still decides), STANDARD
    requires registration, STRICT also requires the registered role to match.
    """

    RELAXED = "relaxed"
    STANDARD = "standard"
    STRICT = "strict"


class Role(_ValuesMixin, str, Enum):
    """Roles understood by the default owner-scoped access policy."""

    USER = "user"
    ADMIN = "admin"


class ReadOperation(_ValuesMixin, str, Enum):
    """Read operation being authorized (single document vs collection page)."""

    GET = "get"
    LIST = "list"


class ConstraintType(_ValuesMixin, str, Enum):
    """Kind of query constraint."""

    WHERE = "where"
    ORDER_BY = "orderBy"
    LIMIT = "limit"


class SortDirection(_ValuesMixin, str, Enum):
    """Ordering direction for orderBy constraints."""

    ASC = "asc"
    DESC = "desc"


# Comparison operators accepted in where constraints (Firestore query syntax)
COMPARISON_OPERATORS = frozenset(
    {
        "==",
        "!=",
        "<",
        "<=",
        ">",
        ">=",
        "in",
        "not-in",
        "array-contains",
        "array-contains-any",
    }
)
