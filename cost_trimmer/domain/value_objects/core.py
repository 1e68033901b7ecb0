"""Domain value objects for the read cache engine.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from cost_trimmer.domain.enums import (
    COMPARISON_OPERATORS,
    ConstraintType,
    SortDirection,
)
from cost_trimmer.domain.exceptions import InvalidConstraintError, InvalidIdentityError


def _canonical_value(value: Any) -> str:
    """Stable string form of a constraint value (type-aware, key-order independent)."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


@dataclass(frozen=True)
class Identity:
    """Authenticated identity that scopes and authorizes reads.

    Owned by the caller; the engine only holds a reference and never
    mutates it.
    """

    id: str
    role: str
    email: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise InvalidIdentityError("Identity id must be a non-empty string", field="id")
        if not isinstance(self.role, str) or not self.role:
            raise InvalidIdentityError("Identity role must be a non-empty string", field="role")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Identity:
        """Build from a mapping; accepts 'uid' or 'id' for the identifier."""
        identity_id = data.get("uid") or data.get("id")
        return cls(
            id=identity_id or "",
            role=data.get("role") or "",
            email=data.get("email"),
        )


@dataclass(frozen=True)
class ResourcePath:
    """Normalized slash-delimited path to a document or collection.

    Leading/trailing slashes are stripped; empty segments are rejected.
    Case is preserved. An odd number of segments addresses a collection,
    an even number a document.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise InvalidConstraintError("Resource path must be a non-empty string")
        if any(not segment for segment in self.value.split("/")):
            raise InvalidConstraintError(
                f"Resource path {self.value!r} contains an empty segment"
            )

    @classmethod
    def parse(cls, raw: str | ResourcePath) -> ResourcePath:
        """Normalize a raw path string (strip surrounding slashes)."""
        if isinstance(raw, ResourcePath):
            return raw
        if not isinstance(raw, str):
            raise InvalidConstraintError(
                f"Resource path must be a string, got {type(raw).__name__}"
            )
        return cls(raw.strip().strip("/"))

    @property
    def segments(self) -> list[str]:
        return self.value.split("/")

    @property
    def is_document(self) -> bool:
        return len(self.segments) % 2 == 0

    @property
    def is_collection(self) -> bool:
        return not self.is_document

    @property
    def parent(self) -> ResourcePath | None:
        """Containing collection for a document, containing document for a collection."""
        segments = self.segments
        if len(segments) == 1:
            return None
        return ResourcePath("/".join(segments[:-1]))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FieldFilter:
    """Comparison constraint: field <operator> value."""

    field: str
    operator: str
    value: Any

    kind = ConstraintType.WHERE

    def sort_key(self) -> tuple[str, str, str]:
        return (self.field, self.operator, _canonical_value(self.value))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "field": self.field,
            "operator": self.operator,
            "value": self.value,
        }


@dataclass(frozen=True)
class OrderBy:
    """Ordering constraint."""

    field: str
    direction: SortDirection = SortDirection.ASC

    kind = ConstraintType.ORDER_BY

    def sort_key(self) -> tuple[str, str, str]:
        return (self.field, self.kind.value, self.direction.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "field": self.field,
            "direction": self.direction.value,
        }


@dataclass(frozen=True)
class Limit:
    """Page size constraint. Different limits are different cache entries."""

    count: int

    kind = ConstraintType.LIMIT

    def sort_key(self) -> tuple[str, str, str]:
        return ("", self.kind.value, str(self.count))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "limit": self.count}


QueryConstraint = Union[FieldFilter, OrderBy, Limit]


def _require_str(data: Mapping[str, Any], key: str, index: int) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidConstraintError(
            f"Constraint #{index} is missing '{key}'",
            field=data.get("field") if isinstance(data.get("field"), str) else None,
            index=index,
        )
    return value


def parse_constraint(raw: QueryConstraint | Mapping[str, Any], index: int = 0) -> QueryConstraint:
    """Convert a caller-supplied constraint (object or mapping) into a value object.

    Mapping shapes:
        {"field", "operator", "value"} (optional "type": "where")
        {"type": "orderBy", "field", "direction"}
        {"type": "limit", "limit"}

    Raises:
        InvalidConstraintError: If the constraint is malformed.
    """
    if isinstance(raw, (FieldFilter, OrderBy, Limit)):
        _validate_constraint(raw, index)
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidConstraintError(
            f"Constraint #{index} must be a mapping, got {type(raw).__name__}",
            index=index,
        )
    kind = raw.get("type", ConstraintType.WHERE.value)
    if kind == ConstraintType.WHERE.value:
        field = _require_str(raw, "field", index)
        operator = _require_str(raw, "operator", index)
        if "value" not in raw:
            raise InvalidConstraintError(
                f"Constraint #{index} is missing 'value'", field=field, index=index
            )
        constraint: QueryConstraint = FieldFilter(field, operator, raw["value"])
    elif kind == ConstraintType.ORDER_BY.value:
        field = _require_str(raw, "field", index)
        direction = raw.get("direction", SortDirection.ASC.value)
        if direction not in SortDirection.values():
            raise InvalidConstraintError(
                f"Constraint #{index} has invalid direction {direction!r}",
                field=field,
                index=index,
            )
        constraint = OrderBy(field, SortDirection(direction))
    elif kind == ConstraintType.LIMIT.value:
        constraint = Limit(raw.get("limit"))  # type: ignore[arg-type]
    else:
        raise InvalidConstraintError(
            f"Constraint #{index} has unknown type {kind!r}", index=index
        )
    _validate_constraint(constraint, index)
    return constraint


def _validate_constraint(constraint: QueryConstraint, index: int) -> None:
    if isinstance(constraint, FieldFilter):
        if not constraint.field or not constraint.operator:
            raise InvalidConstraintError(
                f"Constraint #{index} needs both field and operator",
                field=constraint.field or None,
                index=index,
            )
        if constraint.operator not in COMPARISON_OPERATORS:
            raise InvalidConstraintError(
                f"Constraint #{index} has unsupported operator {constraint.operator!r}",
                field=constraint.field,
                index=index,
            )
    elif isinstance(constraint, OrderBy):
        if not constraint.field:
            raise InvalidConstraintError(
                f"Constraint #{index} orderBy needs a field", index=index
            )
    elif isinstance(constraint, Limit):
        if (
            not isinstance(constraint.count, int)
            or isinstance(constraint.count, bool)
            or constraint.count <= 0
        ):
            raise InvalidConstraintError(
                f"Constraint #{index} limit must be a positive integer", index=index
            )


def parse_constraints(
    raw: Iterable[QueryConstraint | Mapping[str, Any]] | None,
) -> list[QueryConstraint]:
    """Parse a constraint list, preserving caller order."""
    if raw is None:
        return []
    return [parse_constraint(item, index) for index, item in enumerate(raw)]


def canonical_constraints(constraints: Iterable[QueryConstraint]) -> list[QueryConstraint]:
    """Return constraints in canonical order (field, operator, stringified value)."""
    return sorted(constraints, key=lambda c: c.sort_key())


def page_size(constraints: Iterable[QueryConstraint], default: int) -> int:
    """Return the smallest limit among constraints, or default when none is set."""
    limits = [c.count for c in constraints if isinstance(c, Limit)]
    return min(limits) if limits else default


@dataclass(frozen=True)
class PaginationCursor:
    """Opaque continuation token meaning "resume after element N"."""

    token: str

    _PREFIX = "after:"

    def __post_init__(self) -> None:
        if not isinstance(self.token, str) or not self.token:
            raise InvalidConstraintError("Cursor must be a non-empty string")
        self._decode()

    @classmethod
    def parse(cls, raw: PaginationCursor | str) -> PaginationCursor:
        """Return raw as a cursor, validating string tokens."""
        if isinstance(raw, PaginationCursor):
            return raw
        return cls(raw)

    @classmethod
    def after(cls, offset: int) -> PaginationCursor:
        """Cursor that resumes after the first ``offset`` results."""
        raw = f"{cls._PREFIX}{offset}".encode()
        return cls(base64.urlsafe_b64encode(raw).decode("ascii").rstrip("="))

    @property
    def offset(self) -> int:
        """Number of results already consumed."""
        return self._decode()

    def _decode(self) -> int:
        padded = self.token + "=" * (-len(self.token) % 4)
        try:
            raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode()
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidConstraintError(f"Malformed cursor {self.token!r}") from e
        if not raw.startswith(self._PREFIX):
            raise InvalidConstraintError(f"Malformed cursor {self.token!r}")
        try:
            offset = int(raw[len(self._PREFIX):])
        except ValueError as e:
            raise InvalidConstraintError(f"Malformed cursor {self.token!r}") from e
        if offset < 0:
            raise InvalidConstraintError(f"Malformed cursor {self.token!r}")
        return offset

    def __str__(self) -> str:
        return self.token
