"""
Vidstream Error Taxonomy.

Every error carries a short message plus identifying context (ids, kinds)
for logs and API responses. Context never holds user-supplied free text.
"""
from __future__ import annotations

from typing import Any, Dict


class EngagementError(Exception):
    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: str(v) for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "error": type(self).__name__,
            "context": self.context,
        }

    def __str__(self) -> str:
        if not self.context:
            return self.message
        ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({ctx})"


class InvalidArgumentError(EngagementError):
    """Malformed identifiers or bad pagination / sort parameters."""
    status_code = 400


class AuthenticationError(EngagementError):
    status_code = 401


class NotFoundError(EngagementError):
    status_code = 404


class InvalidOperationError(EngagementError):
    """The request is well-formed but not allowed (e.g. self-subscription)."""
    status_code = 400


class ConflictError(EngagementError):
    """A relation for the same (actor, target, kind) tuple already exists.

    Raised by the ledger and resolved inside the toggle coordinator.
    """
    status_code = 409


class NotComputableError(EngagementError):
    status_code = 500
