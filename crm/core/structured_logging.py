"""Log ``extra`` payloads built from request identifiers only.

Emails, names and message bodies never go into a log context; records carry
ids that can be joined back to the database by whoever is allowed to.
"""

from typing import Any
from uuid import UUID

from fastapi import Request

# Request-state attributes copied into every request log context
REQUEST_STATE_FIELDS = ("request_id", "user_id", "workspace_id")


def log_context(**fields: str | UUID | None) -> dict[str, Any]:
    """Drop empty fields and render ids as strings."""
    return {key: str(value) for key, value in fields.items() if value}


def request_log_context(request: Request) -> dict[str, Any]:
    """Context for a request: whatever the auth chain resolved, plus the route."""
    state = {field: getattr(request.state, field, None) for field in REQUEST_STATE_FIELDS}
    return log_context(**state, route=request.url.path, method=request.method)
