"""Domain exceptions for the read cache engine.

Every error that reaches a caller derives from CostTrimmerException and
carries a machine-readable error_code. to_dict() produces the caller-facing
shape {code, message}; codes are NOT_FOUND, UNAUTHORIZED, NETWORK_ERROR and
INVALID_QUERY (plus CONFIGURATION_ERROR at setup time).
"""

from typing import Any


class CostTrimmerException(Exception):
    """Base exception for all cache engine errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. path, field).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    @property
    def code(self) -> str:
        """Alias for error_code (caller-facing name)."""
        return self.error_code

    def to_dict(self) -> dict[str, Any]:
        """Return the caller-facing error shape {code, message[, details]}."""
        out: dict[str, Any] = {"code": self.error_code, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


class AuthorizationError(CostTrimmerException):
    """Raised when the access guard denies a read. Never retried automatically."""

    def __init__(
        self,
        reason: str,
        identity_id: str | None = None,
        path: str | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize with the denial reason and read context.

        Args:
            reason: Why the read was denied.
            identity_id: Id of the requesting identity, when known.
            path: Resource path that was requested.
            operation: Read operation ('get' or 'list').
        """
        details: dict[str, Any] = {"reason": reason}
        if identity_id is not None:
            details["identity_id"] = identity_id
        if path is not None:
            details["path"] = path
        if operation is not None:
            details["operation"] = operation
        message = f"Permission denied: {reason}"
        super().__init__(message, "UNAUTHORIZED", details)
        self.reason = reason


class InvalidConstraintError(CostTrimmerException):
    """Raised when a query constraint or resource path is malformed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        index: int | None = None,
    ) -> None:
        """Initialize with message and optional offending field/position.

        Args:
            message: Description of the malformed input.
            field: Optional constraint field name.
            index: Optional position of the constraint in the caller's list.
        """
        details: dict[str, Any] = {}
        if field is not None:
            details["field"] = field
        if index is not None:
            details["index"] = index
        super().__init__(message, "INVALID_QUERY", details)


class RemoteFetchError(CostTrimmerException):
    """Raised when the database collaborator fails (network, timeout, server error)."""

    def __init__(
        self,
        path: str,
        reason: str,
        error_code: str = "NETWORK_ERROR",
        message: str | None = None,
    ) -> None:
        """Initialize with the path and failure reason.

        Args:
            path: Resource path whose fetch failed.
            reason: Short description of the failure.
            error_code: Caller-facing code (NETWORK_ERROR unless overridden).
            message: Optional message; defaults to one built from path/reason.
        """
        super().__init__(
            message or f"Failed to fetch {path}: {reason}",
            error_code,
            {"path": path, "reason": reason},
        )
        self.path = path
        self.reason = reason


class DocumentNotFoundError(RemoteFetchError):
    """Raised when the requested document does not exist."""

    def __init__(self, path: str) -> None:
        """Initialize with the missing document path.

        Args:
            path: Document path that was not found.
        """
        super().__init__(
            path,
            "not found",
            error_code="NOT_FOUND",
            message=f"Document not found: {path}",
        )


class ConfigurationError(CostTrimmerException):
    """Raised when the engine cannot be configured (unknown preset, missing credentials)."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        details = {"setting": setting} if setting else {}
        super().__init__(message, "CONFIGURATION_ERROR", details)


class InvalidIdentityError(CostTrimmerException):
    """Raised when an identity lacks a usable id or role (e.g. a malformed registration)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "INVALID_IDENTITY", details)
