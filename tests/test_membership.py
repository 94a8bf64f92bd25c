"""
Workspace membership tests.

Tests cover:
- Slug + membership resolution (platform admins get no bypass)
- Member removal guards: self-removal, last OWNER (checked under FOR UPDATE
  locks on the target and OWNER rows; concurrent removals serialize on Postgres)
- Invites: duplicates and existing members
"""

import pytest

from crm.core.errors import (
    CannotRemoveLastOwner,
    CannotRemoveSelf,
    Conflict,
    EntityNotFound,
    Forbidden,
    WorkspaceNotFound,
)
from crm.db.enums import Role
from crm.db.models import AuditEvent, Invite, Member
from crm.services import membership_service, workspace_service



# =============================================================================
# Resolution
# =============================================================================


def test_resolve_membership(db, workspace, owner):
    ws, member = workspace_service.resolve_membership(db, workspace.slug, owner.id)
    assert ws.id == workspace.id
    assert member.role == Role.OWNER.value


def test_unknown_slug(db, owner):
    with pytest.raises(WorkspaceNotFound):
        workspace_service.resolve_membership(db, "no-such-workspace", owner.id)


def test_non_member_forbidden(db, workspace, make_user):
    outsider = make_user()
    with pytest.raises(Forbidden):
        workspace_service.resolve_membership(db, workspace.slug, outsider.id)


def test_platform_admin_is_not_a_member(db, workspace, make_user):
    admin = make_user(is_platform_admin=True)
    with pytest.raises(Forbidden):
        workspace_service.resolve_membership(db, workspace.slug, admin.id)


def test_create_workspace_makes_creator_owner(db, owner, workspace, member_of):
    assert member_of(workspace, owner).role == Role.OWNER.value
    rows = workspace_service.list_user_workspaces(db, owner.id)
    assert [ws.id for ws, _ in rows] == [workspace.id]


def test_duplicate_slug_conflict(db, owner, workspace):
    with pytest.raises(Conflict) as exc:
        workspace_service.create_workspace(
            db, name="Again", slug=workspace.slug, owner_user_id=owner.id
        )
    assert exc.value.code == "WORKSPACE_EXISTS"


# =============================================================================
# Removal guards
# =============================================================================


def test_cannot_remove_last_owner(db, workspace, owner, add_member, member_of):
    admin, _ = add_member(workspace, Role.ADMIN)
    target = member_of(workspace, owner)

    with pytest.raises(CannotRemoveLastOwner) as exc:
        membership_service.remove_member(
            db, workspace_id=workspace.id, actor_user_id=admin.id, member_id=target.id
        )
    assert exc.value.code == "CANNOT_REMOVE_LAST_OWNER"
    db.rollback()
    assert db.get(Member, target.id) is not None


def test_can_remove_owner_when_another_remains(db, workspace, owner, add_member, member_of):
    second_owner, _ = add_member(workspace, Role.OWNER)
    target = member_of(workspace, owner)
    target_id = target.id

    membership_service.remove_member(
        db, workspace_id=workspace.id, actor_user_id=second_owner.id, member_id=target_id
    )

    assert db.get(Member, target_id) is None
    event = db.query(AuditEvent).filter(
        AuditEvent.entity_type == "Member", AuditEvent.action == "DELETE"
    ).one()
    assert event.payload == {"email": owner.email, "role": "OWNER"}


@pytest.mark.parametrize("role", list(Role))
def test_cannot_remove_self_regardless_of_role(db, workspace, add_member, role):
    # A second owner so the last-owner guard never fires first
    add_member(workspace, Role.OWNER)
    user, member = add_member(workspace, role)

    with pytest.raises(CannotRemoveSelf):
        membership_service.remove_member(
            db, workspace_id=workspace.id, actor_user_id=user.id, member_id=member.id
        )


def test_remove_member_from_other_workspace_not_found(db, workspace, owner, make_user, member_of):
    other_owner = make_user()
    other = workspace_service.create_workspace(
        db, name="Other", slug="other-ws", owner_user_id=other_owner.id
    )
    foreign = member_of(other, other_owner)

    with pytest.raises(EntityNotFound) as exc:
        membership_service.remove_member(
            db, workspace_id=workspace.id, actor_user_id=owner.id, member_id=foreign.id
        )
    assert exc.value.code == "MEMBER_NOT_FOUND"


# =============================================================================
# Invites
# =============================================================================


def test_create_invite(db, workspace, owner):
    invite = membership_service.create_invite(
        db, workspace_id=workspace.id, actor_user_id=owner.id, email="New@Test.com", role=Role.AGENT
    )
    assert invite.email == "new@test.com"
    assert invite.role == "AGENT"
    assert len(invite.token) == 64
    assert invite.accepted_at is None


def test_duplicate_active_invite(db, workspace, owner):
    membership_service.create_invite(
        db, workspace_id=workspace.id, actor_user_id=owner.id, email="a@test.com", role=Role.AGENT
    )
    with pytest.raises(Conflict) as exc:
        membership_service.create_invite(
            db, workspace_id=workspace.id, actor_user_id=owner.id, email="a@test.com", role=Role.VIEWER
        )
    assert exc.value.code == "INVITE_EXISTS"


def test_invite_existing_member(db, workspace, owner):
    with pytest.raises(Conflict) as exc:
        membership_service.create_invite(
            db, workspace_id=workspace.id, actor_user_id=owner.id, email=owner.email, role=Role.AGENT
        )
    assert exc.value.code == "USER_ALREADY_MEMBER"


def test_revoke_invite(db, workspace, owner):
    invite = membership_service.create_invite(
        db, workspace_id=workspace.id, actor_user_id=owner.id, email="b@test.com", role=Role.AGENT
    )
    invite_id = invite.id
    membership_service.revoke_invite(
        db, workspace_id=workspace.id, actor_user_id=owner.id, invite_id=invite_id
    )
    assert db.get(Invite, invite_id) is None

    with pytest.raises(EntityNotFound) as exc:
        membership_service.revoke_invite(
            db, workspace_id=workspace.id, actor_user_id=owner.id, invite_id=invite_id
        )
    assert exc.value.code == "INVITE_NOT_FOUND"
