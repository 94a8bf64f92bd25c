"""Deals router - pipeline CRUD, timeline and stage checklist."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.core.deps import (
    get_db,
    get_workspace_context,
    require_action,
    require_csrf_header,
    require_roles,
)
from crm.core.permissions import Action
from crm.db.enums import Role
from crm.schemas.audit import AuditEventRead
from crm.schemas.auth import WorkspaceContext
from crm.schemas.common import success
from crm.schemas.deal import (
    ChecklistItemRead,
    ChecklistToggle,
    ChecklistToggleResult,
    DealCreate,
    DealRead,
    DealUpdate,
)
from crm.services import audit_service, checklist_service, deal_service

router = APIRouter(prefix="/workspaces/{workspace_slug}/deals", tags=["deals"])

# Coarse route gate for edits; fine-grained actions are checked in the services
EDITOR_ROLES = (Role.OWNER, Role.ADMIN, Role.MANAGER, Role.AGENT)


@router.get("")
def list_deals(
    stage: str | None = None,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    deals = deal_service.list_deals(db, context.workspace_id, stage=stage)
    return success(deals=[DealRead.model_validate(d) for d in deals])


@router.post("", status_code=201, dependencies=[Depends(require_csrf_header)])
def create_deal(
    body: DealCreate,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    deal = deal_service.create_deal(
        db, workspace_id=context.workspace_id, actor_user_id=context.user_id, data=body
    )
    return success(deal=DealRead.model_validate(deal))


@router.get("/{deal_id}")
def get_deal(
    deal_id: UUID,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    deal = deal_service.get_deal(db, context.workspace_id, deal_id)
    return success(deal=DealRead.model_validate(deal))


@router.put("/{deal_id}", dependencies=[Depends(require_csrf_header)])
def update_deal(
    deal_id: UUID,
    body: DealUpdate,
    context: WorkspaceContext = Depends(require_roles(*EDITOR_ROLES)),
    db: Session = Depends(get_db),
):
    """Update a deal. Stage-change automation is not reported in the response."""
    deal = deal_service.get_deal(db, context.workspace_id, deal_id)
    deal = deal_service.update_deal(
        db, deal=deal, actor_user_id=context.user_id, role=context.role, data=body
    )
    return success(deal=DealRead.model_validate(deal))


@router.delete("/{deal_id}", dependencies=[Depends(require_csrf_header)])
def delete_deal(
    deal_id: UUID,
    context: WorkspaceContext = Depends(require_action(Action.DEAL_DELETE)),
    db: Session = Depends(get_db),
):
    deal = deal_service.get_deal(db, context.workspace_id, deal_id)
    deal_service.delete_deal(db, deal=deal, actor_user_id=context.user_id)
    return success(message="Deal deleted")


@router.get("/{deal_id}/timeline")
def get_deal_timeline(
    deal_id: UUID,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    deal_service.get_deal(db, context.workspace_id, deal_id)
    events = audit_service.get_deal_timeline(db, context.workspace_id, deal_id)
    return success(events=[AuditEventRead.model_validate(e) for e in events])


# =============================================================================
# Checklist
# =============================================================================


@router.get("/{deal_id}/checklist")
def get_checklist(
    deal_id: UUID,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    """Checklist for the deal's current stage (created on first read)."""
    deal = deal_service.get_deal(db, context.workspace_id, deal_id)
    items = checklist_service.get_checklist(db, deal)
    progress = checklist_service.get_progress(db, deal.id, deal.stage)
    return success(
        stage=deal.stage,
        items=[ChecklistItemRead.model_validate(i) for i in items],
        checklistComplete=progress.is_complete,
        completedCount=progress.completed_count,
        totalCount=progress.total_count,
    )


@router.put("/{deal_id}/checklist", dependencies=[Depends(require_csrf_header)])
def toggle_checklist_item(
    deal_id: UUID,
    body: ChecklistToggle,
    context: WorkspaceContext = Depends(require_roles(*EDITOR_ROLES)),
    db: Session = Depends(get_db),
):
    deal = deal_service.get_deal(db, context.workspace_id, deal_id)
    outcome = checklist_service.toggle_item(
        db,
        deal=deal,
        actor_user_id=context.user_id,
        role=context.role,
        item_title=body.item_title,
        completed=body.completed,
    )
    result = ChecklistToggleResult(
        item=ChecklistItemRead.model_validate(outcome.item),
        checklist_complete=outcome.progress.is_complete,
        completed_count=outcome.progress.completed_count,
        total_count=outcome.progress.total_count,
    )
    return success(**result.model_dump(mode="json", by_alias=True))
