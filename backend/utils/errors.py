"""Application error kinds.

Every error carries a kind, a human message and optional details; the
server turns them into ``{"error", "message", "details"}`` JSON bodies.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base exception for expected, structured failures."""
    kind = "Internal"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class RecordValidationError(AppError):
    """Malformed or missing input. ``details["fields"]`` lists every violation."""
    kind = "ValidationError"
    status_code = 400


class NotFoundError(AppError):
    kind = "NotFound"
    status_code = 404


class ForbiddenError(AppError):
    """Record exists but the principal does not own it."""
    kind = "Forbidden"
    status_code = 403


class DependencyUnavailableError(AppError):
    """Document store unreachable or not configured."""
    kind = "DependencyUnavailable"
    status_code = 503


class InternalError(AppError):
    pass


class CascadeDeleteError(InternalError):
    """Some dependent records could not be removed; the parent was kept."""

    def __init__(self, resource_type: str, failed: int, total: int):
        self.failed = failed
        self.total = total
        super().__init__(
            f"Failed to delete {failed} of {total} {resource_type} record(s)",
            details={"failed": failed, "total": total},
        )
