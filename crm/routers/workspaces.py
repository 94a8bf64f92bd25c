"""Workspaces router - tenant listing/creation and task templates."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.core.deps import (
    get_current_user,
    get_db,
    get_workspace_context,
    require_csrf_header,
    require_roles,
)
from crm.db.enums import Role
from crm.schemas.auth import CurrentUser, WorkspaceContext
from crm.schemas.common import success
from crm.schemas.task import TaskTemplateRead
from crm.schemas.workspace import WorkspaceCreate, WorkspaceRead
from crm.services import automation_service, workspace_service

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("")
def list_my_workspaces(
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = workspace_service.list_user_workspaces(db, current.user_id)
    workspaces = []
    for workspace, member in rows:
        item = WorkspaceRead.model_validate(workspace).model_dump(mode="json", by_alias=True)
        item["role"] = member.role
        workspaces.append(item)
    return success(workspaces=workspaces)


@router.post("", status_code=201, dependencies=[Depends(require_csrf_header)])
def create_workspace(
    body: WorkspaceCreate,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a workspace; the caller becomes its OWNER and default templates are seeded."""
    workspace = workspace_service.create_workspace(
        db, name=body.name, slug=body.slug, owner_user_id=current.user_id
    )
    return success(workspace=WorkspaceRead.model_validate(workspace))


@router.get("/{workspace_slug}/task-templates")
def list_task_templates(
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    templates = automation_service.list_templates(db, context.workspace_id)
    return success(templates=[TaskTemplateRead.model_validate(t) for t in templates])


@router.post(
    "/{workspace_slug}/task-templates/defaults",
    dependencies=[Depends(require_csrf_header)],
)
def seed_default_templates(
    context: WorkspaceContext = Depends(require_roles(Role.OWNER, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    """Seed the default templates. Safe to call repeatedly."""
    created = automation_service.initialize_default_task_templates(db, context.workspace_id)
    db.commit()
    templates = automation_service.list_templates(db, context.workspace_id)
    return success(
        created=created,
        templates=[TaskTemplateRead.model_validate(t) for t in templates],
    )
