"""Deal service - pipeline CRUD, stage-change automation hook.

Order inside every mutation: permission check, write, automation, audit,
commit. Automation and audit are best-effort side effects.
"""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.errors import EntityNotFound
from crm.core.permissions import Action, enforce_action
from crm.db.enums import AuditAction, EntityType, Role
from crm.db.models import Client, Deal
from crm.schemas.deal import DealCreate, DealUpdate
from crm.services import audit_service, automation_service

logger = logging.getLogger(__name__)


def _amount_for_audit(amount: Decimal | None) -> float | None:
    return float(amount) if amount is not None else None


def list_deals(
    db: Session,
    workspace_id: UUID,
    *,
    stage: str | None = None,
    client_id: UUID | None = None,
) -> list[Deal]:
    query = db.query(Deal).filter(Deal.workspace_id == workspace_id)
    if stage:
        query = query.filter(Deal.stage == stage)
    if client_id:
        query = query.filter(Deal.client_id == client_id)
    return query.order_by(Deal.created_at.desc()).all()


def get_deal(db: Session, workspace_id: UUID, deal_id: UUID) -> Deal:
    """
    Get a deal scoped to the workspace.

    Raises:
        EntityNotFound(Deal): absent or in another workspace
    """
    deal = db.query(Deal).filter(
        Deal.id == deal_id,
        Deal.workspace_id == workspace_id,
    ).first()
    if deal is None:
        raise EntityNotFound("Deal")
    return deal


def ensure_client_in_workspace(db: Session, workspace_id: UUID, client_id: UUID | None) -> None:
    """Raise EntityNotFound(Client) unless client_id is None or a client of this workspace."""
    if client_id is None:
        return
    exists = db.query(Client.id).filter(
        Client.id == client_id,
        Client.workspace_id == workspace_id,
    ).first()
    if exists is None:
        raise EntityNotFound("Client")


def create_deal(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID,
    data: DealCreate,
) -> Deal:
    """Create a deal and fire DEAL_CREATED automation."""
    ensure_client_in_workspace(db, workspace_id, data.client_id)

    deal = Deal(
        workspace_id=workspace_id,
        client_id=data.client_id,
        stage=data.stage,
        amount=data.amount,
        assigned_to_user_id=data.assigned_to_user_id,
    )
    db.add(deal)
    db.flush()

    automation_service.trigger_deal_created(db, deal, actor_user_id)
    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.DEAL,
        deal.id,
        AuditAction.CREATE,
        {"stage": deal.stage, "amount": _amount_for_audit(deal.amount)},
    )

    db.commit()
    db.refresh(deal)
    return deal


def required_update_actions(deal: Deal, changes: dict[str, Any]) -> set[Action]:
    """
    Actions needed to apply ``changes`` to ``deal``.

    Fields sent with their current value need nothing.
    """
    actions: set[Action] = set()
    if "stage" in changes and changes["stage"] != deal.stage:
        actions.add(Action.DEAL_UPDATE_STAGE)
    if "amount" in changes and changes["amount"] != deal.amount:
        actions.add(Action.DEAL_UPDATE_AMOUNT)
    for field in ("client_id", "assigned_to_user_id"):
        if field in changes and changes[field] != getattr(deal, field):
            actions.add(Action.DEAL_UPDATE_ALL)
    return actions


def update_deal(
    db: Session,
    *,
    deal: Deal,
    actor_user_id: UUID,
    role: Role,
    data: DealUpdate,
) -> Deal:
    """
    Apply a partial update.

    A stage different from the previous one fires DEAL_STAGE_CHANGED; the
    response does not report what automation did.
    """
    changes = data.model_dump(exclude_unset=True)
    if changes.get("stage") is None:
        changes.pop("stage", None)

    for action in sorted(required_update_actions(deal, changes), key=lambda a: a.value):
        enforce_action(role, action)

    if "client_id" in changes:
        ensure_client_in_workspace(db, deal.workspace_id, changes["client_id"])

    previous_stage = deal.stage
    for field, value in changes.items():
        setattr(deal, field, value)
    db.flush()

    stage_changed = deal.stage != previous_stage
    if stage_changed:
        automation_service.trigger_stage_changed(db, deal, previous_stage, actor_user_id)

    payload = data.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if stage_changed:
        payload["previousStage"] = previous_stage
    audit_service.log_event(
        db,
        deal.workspace_id,
        actor_user_id,
        EntityType.DEAL,
        deal.id,
        AuditAction.UPDATE,
        payload,
    )

    db.commit()
    db.refresh(deal)
    return deal


def delete_deal(db: Session, *, deal: Deal, actor_user_id: UUID) -> None:
    workspace_id, deal_id, stage = deal.workspace_id, deal.id, deal.stage
    db.delete(deal)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.DEAL,
        deal_id,
        AuditAction.DELETE,
        {"stage": stage},
    )
    db.commit()
    logger.info("Deleted deal %s", deal_id)
