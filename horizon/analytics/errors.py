"""Error kinds raised by the analytics engine.

Each error carries a kind and an HTTP status so the transport binding can
answer with a structured body without knowing engine internals.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds surfaced to callers."""
    VALIDATION = "VALIDATION"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_HISTORY = "INSUFFICIENT_HISTORY"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


class AnalyticsError(Exception):
    """Base class for structured engine errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind.value, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AnalyticsError):
    """Request malformed or violates declared constraints."""
    kind = ErrorKind.VALIDATION
    status_code = 422


class BadRequestError(AnalyticsError):
    """Identifier malformed."""
    kind = ErrorKind.BAD_REQUEST
    status_code = 400


class NotFoundError(AnalyticsError):
    """Identifier well-formed but no artifact exists in the caller's tenant."""
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class InsufficientHistoryError(AnalyticsError):
    """An algorithmic precondition on history length is unmet."""
    kind = ErrorKind.INSUFFICIENT_HISTORY
    status_code = 400


class ConflictError(AnalyticsError):
    """A concurrent writer updated the artifact first."""
    kind = ErrorKind.CONFLICT
    status_code = 409


class InternalError(AnalyticsError):
    """Unexpected condition. Details are logged, never returned."""
    kind = ErrorKind.INTERNAL
    status_code = 500

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind.value, "detail": "Internal error"}
