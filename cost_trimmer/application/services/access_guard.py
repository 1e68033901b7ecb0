"""Access guard: authorizes every read before cache lookup or remote fetch.

Rules come from an injected policy callable; the guard adds identity
registration checks whose strictness comes from the active preset.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from cost_trimmer.application.interfaces.services import IAccessPolicy
from cost_trimmer.domain.enums import GuardStrictness, ReadOperation, Role
from cost_trimmer.domain.exceptions import AuthorizationError
from cost_trimmer.domain.value_objects import Identity, ResourcePath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> AccessDecision:
        return cls(False, reason)


def owner_scoped_policy(owner_collections: Iterable[str] = ("users",)) -> IAccessPolicy:
    """Default policy: admins read anything; users read shared data and their own subtree.

    Paths under an owner-scoped collection (e.g. users/{uid}/...) are
    readable by a 'user' only when the owner segment equals their id.
    Listing the owner collection itself requires 'admin'. Unknown roles
    are denied.
    """
    scoped = frozenset(owner_collections)

    def policy(
        identity: Identity, path: ResourcePath, operation: ReadOperation
    ) -> str | None:
        if identity.role == Role.ADMIN.value:
            return None
        if identity.role != Role.USER.value:
            return f"role {identity.role!r} is not permitted to read"
        segments = path.segments
        if segments[0] not in scoped:
            return None
        if len(segments) == 1:
            return f"{operation.value} on {segments[0]} requires admin"
        if segments[1] != identity.id:
            return "resource belongs to another identity"
        return None

    return policy


class AccessGuard:
    """Identity registry plus role-based read authorization."""

    def __init__(
        self,
        policy: IAccessPolicy | None = None,
        strictness: GuardStrictness = GuardStrictness.STANDARD,
    ) -> None:
        self.policy = policy or owner_scoped_policy()
        self.strictness = GuardStrictness(strictness)
        self._identities: dict[str, Identity] = {}
        self._lock = threading.Lock()

    def register(self, identity: Identity | Mapping[str, Any]) -> Identity:
        """Record an identity for scoping and authorization. Idempotent per id.

        The first registration for an id wins; later registrations with
        different attributes are ignored with a warning.

        Raises:
            InvalidIdentityError: If the identity has no id or role.
        """
        if not isinstance(identity, Identity):
            identity = Identity.from_mapping(identity)
        with self._lock:
            existing = self._identities.setdefault(identity.id, identity)
        if existing is not identity and existing != identity:
            logger.warning(
                "Identity %s already registered; ignoring changed attributes",
                identity.id,
            )
        return existing

    def get_registered(self, identity_id: str) -> Identity | None:
        return self._identities.get(identity_id)

    def resolve(self, identity: Identity | str) -> Identity:
        """Return the Identity for an object or a registered id.

        Raises:
            AuthorizationError: If a bare id is not registered.
        """
        if isinstance(identity, Identity):
            return identity
        registered = self._identities.get(identity)
        if registered is None:
            raise AuthorizationError("identity is not registered", identity_id=identity)
        return registered

    def authorize(
        self,
        identity: Identity,
        path: ResourcePath,
        operation: ReadOperation,
    ) -> AccessDecision:
        """Check whether identity may perform operation on path.

        A registered identity is authorized as registered: the policy sees
        the stored role, never the one presented. Strict guards additionally
        deny a presented role that differs from the registration.
        """
        registered = self._identities.get(identity.id)
        if registered is None:
            if self.strictness != GuardStrictness.RELAXED:
                return AccessDecision.deny("identity is not registered")
            logger.warning("Admitting unregistered identity %s (relaxed guard)", identity.id)
            subject = identity
        else:
            if (
                self.strictness == GuardStrictness.STRICT
                and registered.role != identity.role
            ):
                return AccessDecision.deny("identity role does not match registration")
            subject = registered
        reason = self.policy(subject, path, operation)
        if reason is not None:
            return AccessDecision.deny(reason)
        return AccessDecision.allow()

    def require(
        self,
        identity: Identity,
        path: ResourcePath,
        operation: ReadOperation,
    ) -> None:
        """Raise AuthorizationError if the read is denied."""
        decision = self.authorize(identity, path, operation)
        if not decision.allowed:
            logger.warning(
                "Access denied: identity=%s path=%s operation=%s reason=%s",
                identity.id,
                path,
                operation.value,
                decision.reason,
            )
            raise AuthorizationError(
                decision.reason or "denied",
                identity_id=identity.id,
                path=str(path),
                operation=operation.value,
            )
