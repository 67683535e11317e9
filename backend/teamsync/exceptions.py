"""Domain exceptions.

Services raise these; the API layer maps each one onto a stable HTTP status
and error code (see ``teamsync.main``).
"""

from typing import Optional


class TeamSyncError(Exception):
    """Base exception for TeamSync domain errors."""

    status_code: int = 500

    def __init__(self, message: str, code: str = "TEAMSYNC_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(TeamSyncError):
    """Entity or relation is absent, or hidden from a non-member."""

    status_code = 404

    def __init__(self, message: str = "Not found", resource: Optional[str] = None):
        self.resource = resource
        super().__init__(message=message, code="NOT_FOUND")


class UnauthenticatedError(TeamSyncError):
    """No valid actor identity on the request."""

    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message=message, code="UNAUTHENTICATED")


class ForbiddenError(TeamSyncError):
    """Authenticated, but the role check failed."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message=message, code="FORBIDDEN")


class ConflictError(TeamSyncError):
    """Uniqueness violation such as a duplicate tag name or membership."""

    status_code = 409

    def __init__(self, message: str = "Conflict"):
        super().__init__(message=message, code="CONFLICT")


class ValidationError(TeamSyncError):
    """Malformed or inconsistent input."""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message=message, code="VALIDATION_ERROR")


class InternalError(TeamSyncError):
    """Store or unexpected failure. The message never carries store details."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message=message, code="INTERNAL_ERROR")
