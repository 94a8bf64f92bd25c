"""Clients router."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
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
from crm.schemas.client import ClientCreate, ClientRead, ClientUpdate
from crm.schemas.common import success
from crm.schemas.deal import DealRead
from crm.schemas.task import TaskRead
from crm.services import audit_service, client_service, deal_service, task_service

router = APIRouter(prefix="/workspaces/{workspace_slug}/clients", tags=["clients"])


@router.get("")
def list_clients(
    q: str | None = Query(None, description="Search by name"),
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    clients = client_service.list_clients(db, context.workspace_id, search=q)
    return success(clients=[ClientRead.model_validate(c) for c in clients])


@router.post("", status_code=201, dependencies=[Depends(require_csrf_header)])
def create_client(
    body: ClientCreate,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    client = client_service.create_client(
        db, workspace_id=context.workspace_id, actor_user_id=context.user_id, data=body
    )
    return success(client=ClientRead.model_validate(client))


@router.get("/{client_id}")
def get_client(
    client_id: UUID,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    """Client with its deals and tasks."""
    client = client_service.get_client(db, context.workspace_id, client_id)
    deals = deal_service.list_deals(db, context.workspace_id, client_id=client.id)
    tasks = task_service.list_tasks(db, context.workspace_id, client_id=client.id)
    return success(
        client=ClientRead.model_validate(client),
        deals=[DealRead.model_validate(d) for d in deals],
        tasks=[TaskRead.model_validate(t) for t in tasks],
    )


@router.get("/{client_id}/timeline")
def get_client_timeline(
    client_id: UUID,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    client_service.get_client(db, context.workspace_id, client_id)
    events = audit_service.get_client_timeline(db, context.workspace_id, client_id)
    return success(events=[AuditEventRead.model_validate(e) for e in events])


@router.put("/{client_id}", dependencies=[Depends(require_csrf_header)])
def update_client(
    client_id: UUID,
    body: ClientUpdate,
    context: WorkspaceContext = Depends(
        require_roles(Role.OWNER, Role.ADMIN, Role.MANAGER, Role.AGENT)
    ),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, context.workspace_id, client_id)
    client = client_service.update_client(
        db, client=client, actor_user_id=context.user_id, role=context.role, data=body
    )
    return success(client=ClientRead.model_validate(client))


@router.delete("/{client_id}", dependencies=[Depends(require_csrf_header)])
def delete_client(
    client_id: UUID,
    context: WorkspaceContext = Depends(require_action(Action.CLIENT_DELETE)),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, context.workspace_id, client_id)
    client_service.delete_client(db, client=client, actor_user_id=context.user_id)
    return success(message="Client deleted")
