"""Platform admin read models."""

from datetime import datetime
from uuid import UUID

from crm.schemas.audit import AuditEventRead
from crm.schemas.common import CamelModel
from crm.schemas.workspace import WorkspaceSummary


class PlatformUserRead(CamelModel):
    id: UUID
    email: str
    is_platform_admin: bool
    created_at: datetime
    membership_count: int
    session_count: int


class PlatformWorkspaceRead(CamelModel):
    id: UUID
    name: str
    slug: str
    created_at: datetime
    member_count: int
    client_count: int
    deal_count: int
    task_count: int


class PlatformAuditEventRead(AuditEventRead):
    workspace: WorkspaceSummary
