"""Tasks router - API endpoints for task management."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_workspace_context, require_action, require_csrf_header
from crm.core.permissions import Action
from crm.db.enums import TaskStatus
from crm.schemas.auth import WorkspaceContext
from crm.schemas.common import success
from crm.schemas.task import TaskCreate, TaskRead, TaskUpdate
from crm.services import task_service

router = APIRouter(prefix="/workspaces/{workspace_slug}/tasks", tags=["tasks"])


@router.get("")
def list_tasks(
    status: TaskStatus | None = None,
    deal_id: UUID | None = None,
    client_id: UUID | None = None,
    assigned_to_user_id: UUID | None = None,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    tasks = task_service.list_tasks(
        db,
        context.workspace_id,
        status=status.value if status else None,
        deal_id=deal_id,
        client_id=client_id,
        assigned_to_user_id=assigned_to_user_id,
    )
    return success(tasks=[TaskRead.model_validate(t) for t in tasks])


@router.post("", status_code=201, dependencies=[Depends(require_csrf_header)])
def create_task(
    body: TaskCreate,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    task = task_service.create_task(
        db, workspace_id=context.workspace_id, actor_user_id=context.user_id, data=body
    )
    return success(task=TaskRead.model_validate(task))


@router.get("/{task_id}")
def get_task(
    task_id: UUID,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, context.workspace_id, task_id)
    return success(task=TaskRead.model_validate(task))


@router.put("/{task_id}", dependencies=[Depends(require_csrf_header)])
def update_task(
    task_id: UUID,
    body: TaskUpdate,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, context.workspace_id, task_id)
    task = task_service.update_task(
        db, task=task, actor_user_id=context.user_id, role=context.role, data=body
    )
    return success(task=TaskRead.model_validate(task))


@router.delete("/{task_id}", dependencies=[Depends(require_csrf_header)])
def delete_task(
    task_id: UUID,
    context: WorkspaceContext = Depends(require_action(Action.TASK_DELETE)),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, context.workspace_id, task_id)
    task_service.delete_task(db, task=task, actor_user_id=context.user_id)
    return success(message="Task deleted")
