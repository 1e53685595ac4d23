"""Error taxonomy for access-controlled operations.

Each error carries the HTTP status it maps to so the API layer can render it
without a lookup table of its own.
"""

from __future__ import annotations

from typing import Any


class AccessError(Exception):
    """Base class for terminal gateway failures."""

    status_code: int = 500
    code: str = "ACCESS_ERROR"

    def __init__(self, detail: str, details: dict[str, Any] | None = None) -> None:
        self.detail = detail
        self.details = details or {}
        super().__init__(detail)


class AuthorizationDenied(AccessError):
    """The policy engine returned DENY."""

    status_code = 403
    code = "AUTHORIZATION_DENIED"

    def __init__(self, detail: str = "Not permitted", details: dict[str, Any] | None = None) -> None:
        super().__init__(detail, details)


class NotFound(AccessError):
    """The target row, or the collection it belongs to, does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class Conflict(AccessError):
    """Uniqueness violation on (owner, kind) or (collection, resource)."""

    status_code = 409
    code = "CONFLICT"


class InvariantViolation(AccessError):
    """The item-count hook failed; the enclosing transaction was rolled back."""

    status_code = 500
    code = "INVARIANT_VIOLATION"
