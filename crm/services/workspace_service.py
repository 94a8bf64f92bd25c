"""Workspace service - tenant lookup, membership resolution and creation."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.errors import Conflict, Forbidden, WorkspaceNotFound
from crm.db.enums import AuditAction, EntityType, Role
from crm.db.models import Member, Workspace
from crm.services import audit_service, automation_service

logger = logging.getLogger(__name__)


def get_workspace_by_slug(db: Session, slug: str) -> Workspace | None:
    return db.query(Workspace).filter(Workspace.slug == slug).first()


def get_membership(db: Session, workspace_id: UUID, user_id: UUID) -> Member | None:
    """Get the (workspace, user) membership, if any."""
    return db.query(Member).filter(
        Member.workspace_id == workspace_id,
        Member.user_id == user_id,
    ).first()


def resolve_membership(db: Session, slug: str, user_id: UUID) -> tuple[Workspace, Member]:
    """
    Resolve a workspace slug and the caller's membership in it.

    Platform admins get no special treatment here.

    Raises:
        WorkspaceNotFound: no workspace with this slug
        Forbidden: user is not a member
    """
    workspace = get_workspace_by_slug(db, slug)
    if workspace is None:
        raise WorkspaceNotFound()

    member = get_membership(db, workspace.id, user_id)
    if member is None:
        raise Forbidden("You are not a member of this workspace")

    return workspace, member


def list_user_workspaces(db: Session, user_id: UUID) -> list[tuple[Workspace, Member]]:
    """Workspaces the user belongs to, with their membership, oldest first."""
    rows = (
        db.query(Workspace, Member)
        .join(Member, Member.workspace_id == Workspace.id)
        .filter(Member.user_id == user_id)
        .order_by(Workspace.created_at.asc())
        .all()
    )
    return [(workspace, member) for workspace, member in rows]


def create_workspace(db: Session, *, name: str, slug: str, owner_user_id: UUID) -> Workspace:
    """
    Create a workspace with the creator as its first OWNER.

    Default task templates are seeded in the same transaction.

    Raises:
        Conflict(WORKSPACE_EXISTS): slug already taken
    """
    if get_workspace_by_slug(db, slug) is not None:
        raise Conflict(f"Workspace '{slug}' already exists", code="WORKSPACE_EXISTS")

    workspace = Workspace(name=name, slug=slug)
    db.add(workspace)
    db.flush()

    db.add(Member(workspace_id=workspace.id, user_id=owner_user_id, role=Role.OWNER.value))
    automation_service.initialize_default_task_templates(db, workspace.id)

    audit_service.log_event(
        db,
        workspace.id,
        owner_user_id,
        EntityType.WORKSPACE,
        workspace.id,
        AuditAction.CREATE,
        {"name": name, "slug": slug},
    )
    db.commit()
    db.refresh(workspace)
    logger.info("Created workspace %s", workspace.id)
    return workspace
