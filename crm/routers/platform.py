"""Platform router - cross-tenant views for platform administrators.

The platform-admin flag only opens these routes. It grants nothing inside a
workspace.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, require_platform_admin
from crm.schemas.common import success
from crm.schemas.platform import PlatformAuditEventRead, PlatformUserRead, PlatformWorkspaceRead
from crm.services import platform_service

router = APIRouter(
    prefix="/platform",
    tags=["platform"],
    dependencies=[Depends(require_platform_admin)],
)


@router.get("/users")
def list_users(db: Session = Depends(get_db)):
    users = platform_service.list_users(db)
    return success(users=[PlatformUserRead.model_validate(u) for u in users])


@router.get("/workspaces")
def list_workspaces(db: Session = Depends(get_db)):
    workspaces = platform_service.list_workspaces(db)
    return success(workspaces=[PlatformWorkspaceRead.model_validate(w) for w in workspaces])


@router.get("/audit")
def list_audit_events(
    limit: int = Query(platform_service.AUDIT_PAGE_DEFAULT, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Audit log across all workspaces, newest first."""
    events, total = platform_service.list_audit_events(db, limit=limit, offset=offset)
    return success(
        auditEvents=[PlatformAuditEventRead.model_validate(e) for e in events],
        total=total,
        limit=limit,
        offset=offset,
    )
