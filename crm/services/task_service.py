"""Task service - business logic for task management."""

from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.errors import EntityNotFound
from crm.core.permissions import Action, enforce_action
from crm.db.enums import AuditAction, EntityType, Role
from crm.db.models import Deal, Task
from crm.schemas.task import TaskCreate, TaskUpdate
from crm.services import audit_service
from crm.services.deal_service import ensure_client_in_workspace

_REQUIRED_FIELDS = ("title", "status")


def ensure_deal_in_workspace(db: Session, workspace_id: UUID, deal_id: UUID | None) -> None:
    if deal_id is None:
        return
    exists = db.query(Deal.id).filter(
        Deal.id == deal_id,
        Deal.workspace_id == workspace_id,
    ).first()
    if exists is None:
        raise EntityNotFound("Deal")


def list_tasks(
    db: Session,
    workspace_id: UUID,
    *,
    status: str | None = None,
    deal_id: UUID | None = None,
    client_id: UUID | None = None,
    assigned_to_user_id: UUID | None = None,
) -> list[Task]:
    """List tasks: by status, then soonest due, then newest."""
    query = db.query(Task).filter(Task.workspace_id == workspace_id)
    if status:
        query = query.filter(Task.status == status)
    if deal_id:
        query = query.filter(Task.related_deal_id == deal_id)
    if client_id:
        query = query.filter(Task.related_client_id == client_id)
    if assigned_to_user_id:
        query = query.filter(Task.assigned_to_user_id == assigned_to_user_id)
    return query.order_by(
        Task.status.asc(),
        Task.due_at.asc().nulls_last(),
        Task.created_at.desc(),
    ).all()


def get_task(db: Session, workspace_id: UUID, task_id: UUID) -> Task:
    task = db.query(Task).filter(
        Task.id == task_id,
        Task.workspace_id == workspace_id,
    ).first()
    if task is None:
        raise EntityNotFound("Task")
    return task


def create_task(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID,
    data: TaskCreate,
) -> Task:
    """Create a task. Linked client and deal must belong to the workspace."""
    ensure_client_in_workspace(db, workspace_id, data.related_client_id)
    ensure_deal_in_workspace(db, workspace_id, data.related_deal_id)

    task = Task(
        workspace_id=workspace_id,
        title=data.title,
        description=data.description,
        status=data.status.value,
        due_at=data.due_at,
        assigned_to_user_id=data.assigned_to_user_id,
        related_client_id=data.related_client_id,
        related_deal_id=data.related_deal_id,
    )
    db.add(task)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.TASK,
        task.id,
        AuditAction.CREATE,
        {"title": task.title, "status": task.status},
    )
    db.commit()
    db.refresh(task)
    return task


def update_task(
    db: Session,
    *,
    task: Task,
    actor_user_id: UUID,
    role: Role,
    data: TaskUpdate,
) -> Task:
    """Update task fields (partial)."""
    enforce_action(role, Action.TASK_UPDATE_ALL)

    changes = data.model_dump(exclude_unset=True)
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            changes.pop(field)
    if "status" in changes:
        changes["status"] = changes["status"].value

    if "related_client_id" in changes:
        ensure_client_in_workspace(db, task.workspace_id, changes["related_client_id"])
    if "related_deal_id" in changes:
        ensure_deal_in_workspace(db, task.workspace_id, changes["related_deal_id"])

    for field, value in changes.items():
        setattr(task, field, value)
    db.flush()

    audit_service.log_event(
        db,
        task.workspace_id,
        actor_user_id,
        EntityType.TASK,
        task.id,
        AuditAction.UPDATE,
        data.model_dump(mode="json", by_alias=True, exclude_unset=True),
    )
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, *, task: Task, actor_user_id: UUID) -> None:
    workspace_id, task_id, title = task.workspace_id, task.id, task.title
    db.delete(task)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.TASK,
        task_id,
        AuditAction.DELETE,
        {"title": title},
    )
    db.commit()
