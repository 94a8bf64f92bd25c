"""Domain error taxonomy.

Every failure surfaced to a caller is a ``CRMError`` subclass carrying a stable
machine-readable ``code``, an HTTP status and a human-readable message. The
application registers a single handler that renders them as::

    {"success": false, "error": {"code": ..., "message": ...}}
"""

from typing import Any


class CRMError(Exception):
    """Base exception for all domain errors."""

    code = "INTERNAL_ERROR"
    status_code = 500
    message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: Any = None,
    ):
        self.message = message or self.message
        if code:
            self.code = code
        self.details = details
        super().__init__(self.message)


# =============================================================================
# Authentication
# =============================================================================


class Unauthorized(CRMError):
    """No session token was presented."""

    code = "UNAUTHORIZED"
    status_code = 401
    message = "Session not found"


class InvalidSession(Unauthorized):
    """Token does not match any stored session."""

    message = "Session is invalid"


class SessionExpired(Unauthorized):
    """Session exists but is past its expiry."""

    code = "SESSION_EXPIRED"
    message = "Session has expired"


class InvalidCredentials(Unauthorized):
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


# =============================================================================
# Authorization
# =============================================================================


class WorkspaceNotFound(CRMError):
    code = "WORKSPACE_NOT_FOUND"
    status_code = 404
    message = "Workspace not found"


class Forbidden(CRMError):
    """Caller is not a member, or their role is not allowed to do this."""

    code = "FORBIDDEN"
    status_code = 403
    message = "Access denied"


class CannotRemoveSelf(Forbidden):
    code = "CANNOT_REMOVE_SELF"
    status_code = 400
    message = "You cannot remove yourself from the workspace"


class CannotRemoveLastOwner(Forbidden):
    code = "CANNOT_REMOVE_LAST_OWNER"
    status_code = 400
    message = "Cannot remove the last OWNER of the workspace"


# =============================================================================
# Data
# =============================================================================


class EntityNotFound(CRMError):
    """Entity is absent or belongs to another workspace."""

    status_code = 404

    def __init__(self, entity: str, message: str | None = None):
        self.entity = entity
        super().__init__(
            message or f"{entity} not found",
            code=f"{entity.upper()}_NOT_FOUND",
        )


class ValidationFailed(CRMError):
    code = "VALIDATION_ERROR"
    status_code = 400
    message = "Validation error"


class Conflict(CRMError):
    code = "CONFLICT"
    status_code = 409
    message = "Conflict"
