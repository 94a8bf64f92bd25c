"""Members router - membership listing/removal and invitations."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_workspace_context, require_csrf_header, require_roles
from crm.core.permissions import get_permissions
from crm.db.enums import Role
from crm.schemas.auth import WorkspaceContext
from crm.schemas.common import success
from crm.schemas.workspace import (
    CurrentMemberRead,
    InviteCreate,
    InviteRead,
    MemberRead,
    WorkspaceSummary,
)
from crm.services import membership_service

router = APIRouter(prefix="/workspaces/{workspace_slug}/members", tags=["members"])

ADMIN_ROLES = (Role.OWNER, Role.ADMIN)


@router.get("/me")
def get_my_membership(context: WorkspaceContext = Depends(get_workspace_context)):
    """The caller's role in this workspace and the actions it grants."""
    return success(
        workspace=WorkspaceSummary(
            id=context.workspace_id,
            name=context.workspace_name,
            slug=context.workspace_slug,
        ),
        member=CurrentMemberRead(
            id=context.member_id,
            role=context.role,
            permissions=get_permissions(context.role),
        ),
    )


@router.get("")
def list_members(
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    members = membership_service.list_members(db, context.workspace_id)
    return success(members=[MemberRead.model_validate(m) for m in members])


# =============================================================================
# Invites
# =============================================================================


@router.get("/invites")
def list_invites(
    context: WorkspaceContext = Depends(require_roles(*ADMIN_ROLES)),
    db: Session = Depends(get_db),
):
    invites = membership_service.list_invites(db, context.workspace_id)
    return success(invites=[InviteRead.model_validate(i) for i in invites])


@router.post("/invites", status_code=201, dependencies=[Depends(require_csrf_header)])
def create_invite(
    body: InviteCreate,
    context: WorkspaceContext = Depends(require_roles(*ADMIN_ROLES)),
    db: Session = Depends(get_db),
):
    invite = membership_service.create_invite(
        db,
        workspace_id=context.workspace_id,
        actor_user_id=context.user_id,
        email=body.email,
        role=body.role,
    )
    return success(invite=InviteRead.model_validate(invite))


@router.delete("/invites/{invite_id}", dependencies=[Depends(require_csrf_header)])
def revoke_invite(
    invite_id: UUID,
    context: WorkspaceContext = Depends(require_roles(*ADMIN_ROLES)),
    db: Session = Depends(get_db),
):
    membership_service.revoke_invite(
        db, workspace_id=context.workspace_id, actor_user_id=context.user_id, invite_id=invite_id
    )
    return success(message="Invite deleted")


@router.delete("/{member_id}", dependencies=[Depends(require_csrf_header)])
def remove_member(
    member_id: UUID,
    context: WorkspaceContext = Depends(require_roles(*ADMIN_ROLES)),
    db: Session = Depends(get_db),
):
    """Remove a member. Self-removal and removing the last OWNER are rejected."""
    membership_service.remove_member(
        db, workspace_id=context.workspace_id, actor_user_id=context.user_id, member_id=member_id
    )
    return success(message="Member removed")
