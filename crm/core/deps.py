"""FastAPI dependencies for authentication, authorization, and database access.

Resolution chain for every workspace-scoped request:

    session cookie -> user (+ session id) -> workspace by slug -> membership -> role

Each step fails fast with the matching CRMError; nothing downstream runs
until the whole chain has resolved.
"""

import logging
from typing import Generator, Iterable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.errors import Forbidden
from crm.core.permissions import Action, enforce_action
from crm.core.structured_logging import log_context
from crm.db.enums import Role
from crm.db.session import SessionLocal
from crm.schemas.auth import CurrentUser, WorkspaceContext

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_token(request: Request) -> str | None:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the session cookie to a user.

    Raises:
        Unauthorized: no cookie
        InvalidSession: token unknown
        SessionExpired: token past expiry (the session row is deleted)
    """
    from crm.services import session_service

    user, session = session_service.resolve_session(db, get_session_token(request))
    request.state.user_id = str(user.id)
    return CurrentUser(
        user_id=user.id,
        session_id=session.id,
        email=user.email,
        is_platform_admin=user.is_platform_admin,
    )


def get_workspace_context(
    workspace_slug: str,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WorkspaceContext:
    """
    Resolve the workspace from the path slug and the caller's membership in it.

    This is the PRIMARY dependency for workspace-scoped endpoints. The
    platform-admin flag is deliberately ignored here.

    Raises:
        WorkspaceNotFound: unknown slug
        Forbidden: caller is not a member, or holds an unknown role
    """
    from crm.services import workspace_service

    workspace, member = workspace_service.resolve_membership(
        db, workspace_slug, current.user_id
    )

    if not Role.has_value(member.role):
        logger.warning(
            "Member %s has unknown role %r",
            member.id,
            member.role,
            extra=log_context(user_id=current.user_id, workspace_id=workspace.id),
        )
        raise Forbidden(f"Unknown role '{member.role}'. Contact administrator.")

    request.state.workspace_id = str(workspace.id)
    return WorkspaceContext(
        user_id=current.user_id,
        session_id=current.session_id,
        email=current.email,
        is_platform_admin=current.is_platform_admin,
        workspace_id=workspace.id,
        workspace_name=workspace.name,
        workspace_slug=workspace.slug,
        member_id=member.id,
        role=Role(member.role),
    )


def check_roles(context: WorkspaceContext | None, allowed_roles: Iterable[Role]) -> WorkspaceContext:
    """Role gate: raise Forbidden unless a membership resolved with an allowed role."""
    if context is None:
        raise Forbidden("Access denied")
    if context.role not in set(allowed_roles):
        raise Forbidden(f"Insufficient role: '{context.role.value}' is not allowed here")
    return context


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role allow-list gating.

    Usage:
        @router.put("/{id}", dependencies=[Depends(require_roles(Role.OWNER, Role.ADMIN))])
    """
    allowed = frozenset(allowed_roles)

    def dependency(context: WorkspaceContext = Depends(get_workspace_context)) -> WorkspaceContext:
        return check_roles(context, allowed)

    return dependency


def require_action(action: Action):
    """
    Dependency factory gating a route on one action of the permission table.

    Follows ENFORCE_ACTION_PERMISSIONS like the checks inside the services.
    """

    def dependency(context: WorkspaceContext = Depends(get_workspace_context)) -> WorkspaceContext:
        enforce_action(context.role, action)
        return context

    return dependency


def require_platform_admin(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Guard for /platform routes. Independent of any workspace role."""
    if not current.is_platform_admin:
        raise Forbidden("Platform administrator access required")
    return current


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, DELETE).
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise Forbidden(
            f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
            code="CSRF_REQUIRED",
        )
