"""Membership service - workspace members and invitations.

Removal guards (no self-removal, at least one OWNER left) run inside the
removal transaction with the workspace's OWNER rows locked, so two concurrent
removals cannot both pass the owner count.
"""

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from crm.core.config import settings
from crm.core.errors import CannotRemoveLastOwner, CannotRemoveSelf, Conflict, EntityNotFound
from crm.core.security import generate_token
from crm.db.enums import AuditAction, EntityType, Role
from crm.db.models import Invite, Member, User
from crm.db.types import utcnow
from crm.services import audit_service

logger = logging.getLogger(__name__)


# =============================================================================
# Members
# =============================================================================


def list_members(db: Session, workspace_id: UUID) -> list[Member]:
    """Members with their users, in join order."""
    return (
        db.query(Member)
        .options(joinedload(Member.user))
        .filter(Member.workspace_id == workspace_id)
        .order_by(Member.created_at.asc())
        .all()
    )


def remove_member(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID,
    member_id: UUID,
) -> Member:
    """
    Remove a membership.

    Raises:
        EntityNotFound(Member): no such member in this workspace
        CannotRemoveSelf: actor targets their own membership (any role)
        CannotRemoveLastOwner: target is the only OWNER
    """
    member = (
        db.query(Member)
        .filter(Member.id == member_id, Member.workspace_id == workspace_id)
        .with_for_update()
        .first()
    )
    if member is None:
        raise EntityNotFound("Member")

    if member.user_id == actor_user_id:
        raise CannotRemoveSelf()

    if member.role == Role.OWNER.value:
        # Lock every OWNER row before counting
        owners = (
            db.query(Member.id)
            .filter(Member.workspace_id == workspace_id, Member.role == Role.OWNER.value)
            .with_for_update()
            .all()
        )
        if len(owners) <= 1:
            raise CannotRemoveLastOwner()

    email = member.user.email if member.user else None
    role = member.role
    db.delete(member)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.MEMBER,
        member_id,
        AuditAction.DELETE,
        {"email": email, "role": role},
    )
    db.commit()
    logger.info("Removed member %s from workspace %s", member_id, workspace_id)
    return member


# =============================================================================
# Invites
# =============================================================================


def list_invites(db: Session, workspace_id: UUID) -> list[Invite]:
    """Pending (not yet accepted) invites, newest first."""
    return (
        db.query(Invite)
        .filter(Invite.workspace_id == workspace_id, Invite.accepted_at.is_(None))
        .order_by(Invite.created_at.desc())
        .all()
    )


def _send_invite(invite: Invite, workspace_id: UUID) -> None:
    # Delivery is mocked; the token is never logged
    logger.info("Invite %s for workspace %s queued for delivery (mock)", invite.id, workspace_id)


def create_invite(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID,
    email: str,
    role: Role,
) -> Invite:
    """
    Invite an email address to the workspace.

    Raises:
        Conflict(USER_ALREADY_MEMBER): a user with this email is already a member
        Conflict(INVITE_EXISTS): an unexpired, unaccepted invite exists
    """
    email = email.strip().lower()

    already_member = (
        db.query(Member.id)
        .join(User, User.id == Member.user_id)
        .filter(Member.workspace_id == workspace_id, User.email == email)
        .first()
    )
    if already_member is not None:
        raise Conflict("User is already a member of this workspace", code="USER_ALREADY_MEMBER")

    now = utcnow()
    active = db.query(Invite).filter(
        Invite.workspace_id == workspace_id,
        Invite.email == email,
        Invite.accepted_at.is_(None),
        Invite.expires_at > now,
    ).first()
    if active is not None:
        raise Conflict("An active invite for this email already exists", code="INVITE_EXISTS")

    invite = Invite(
        workspace_id=workspace_id,
        email=email,
        role=role.value,
        token=generate_token(),
        expires_at=now + timedelta(days=settings.INVITE_EXPIRES_DAYS),
    )
    db.add(invite)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.INVITE,
        invite.id,
        AuditAction.CREATE,
        {"email": email, "role": role.value},
    )
    db.commit()
    db.refresh(invite)
    _send_invite(invite, workspace_id)
    return invite


def revoke_invite(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID,
    invite_id: UUID,
) -> None:
    """
    Delete an invite.

    Raises:
        EntityNotFound(Invite): no such invite in this workspace
    """
    invite = db.query(Invite).filter(
        Invite.id == invite_id,
        Invite.workspace_id == workspace_id,
    ).first()
    if invite is None:
        raise EntityNotFound("Invite")

    email = invite.email
    db.delete(invite)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.INVITE,
        invite_id,
        AuditAction.DELETE,
        {"email": email},
    )
    db.commit()
