"""Platform service - cross-tenant read views for platform administrators."""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from crm.db.models import AuditEvent, Client, Deal, Member, Task, User, UserSession, Workspace

AUDIT_PAGE_DEFAULT = 100


def _counts_by(db: Session, column) -> dict[UUID, int]:
    return dict(db.query(column, func.count()).group_by(column).all())


# =============================================================================
# Users
# =============================================================================


def list_users(db: Session) -> list[dict]:
    """All users with membership and session counts, newest first."""
    membership_counts = _counts_by(db, Member.user_id)
    session_counts = _counts_by(db, UserSession.user_id)

    users = db.query(User).order_by(User.created_at.desc()).all()
    return [
        {
            "id": user.id,
            "email": user.email,
            "is_platform_admin": user.is_platform_admin,
            "created_at": user.created_at,
            "membership_count": membership_counts.get(user.id, 0),
            "session_count": session_counts.get(user.id, 0),
        }
        for user in users
    ]


# =============================================================================
# Workspaces
# =============================================================================


def list_workspaces(db: Session) -> list[dict]:
    """All tenants with member, client, deal and task counts, newest first."""
    counts = {
        "member_count": _counts_by(db, Member.workspace_id),
        "client_count": _counts_by(db, Client.workspace_id),
        "deal_count": _counts_by(db, Deal.workspace_id),
        "task_count": _counts_by(db, Task.workspace_id),
    }

    workspaces = db.query(Workspace).order_by(Workspace.created_at.desc()).all()
    return [
        {
            "id": ws.id,
            "name": ws.name,
            "slug": ws.slug,
            "created_at": ws.created_at,
            **{key: by_workspace.get(ws.id, 0) for key, by_workspace in counts.items()},
        }
        for ws in workspaces
    ]


# =============================================================================
# Audit log (cross-tenant)
# =============================================================================


def list_audit_events(
    db: Session,
    limit: int = AUDIT_PAGE_DEFAULT,
    offset: int = 0,
) -> tuple[list[AuditEvent], int]:
    """
    Audit events of every workspace, newest first.

    Returns:
        (events for the page with actor and workspace loaded, total number of events)
    """
    total = db.query(func.count(AuditEvent.id)).scalar() or 0
    events = (
        db.query(AuditEvent)
        .options(joinedload(AuditEvent.actor), joinedload(AuditEvent.workspace))
        .order_by(AuditEvent.created_at.desc(), AuditEvent.id)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return events, total
