"""Workspace, membership and invitation schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from crm.db.enums import Role
from crm.schemas.common import CamelModel


class WorkspaceCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-z0-9][a-z0-9-]*$")


class WorkspaceSummary(CamelModel):
    id: UUID
    name: str
    slug: str


class WorkspaceRead(CamelModel):
    id: UUID
    name: str
    slug: str
    created_at: datetime


class MemberUserRead(CamelModel):
    id: UUID
    email: str
    created_at: datetime


class MemberRead(CamelModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: Role
    created_at: datetime
    user: MemberUserRead | None = None


class CurrentMemberRead(CamelModel):
    id: UUID
    role: Role
    permissions: list[str]


class InviteCreate(CamelModel):
    email: EmailStr
    role: Role


class InviteRead(CamelModel):
    id: UUID
    workspace_id: UUID
    email: str
    role: Role
    expires_at: datetime
    accepted_at: datetime | None
    created_at: datetime
