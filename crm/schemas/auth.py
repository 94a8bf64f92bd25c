"""Authentication-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from crm.db.enums import Role
from crm.schemas.common import CamelModel


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserRead(CamelModel):
    id: UUID
    email: str
    is_platform_admin: bool
    created_at: datetime


class CurrentUser(BaseModel):
    """Identity resolved from the session cookie."""
    user_id: UUID
    session_id: UUID
    email: str
    is_platform_admin: bool = False


class WorkspaceContext(CurrentUser):
    """
    Full context for workspace-scoped requests.

    Returned by the get_workspace_context dependency; carries everything
    needed for authorization and tenant scoping.
    """
    workspace_id: UUID
    workspace_name: str
    workspace_slug: str
    member_id: UUID
    role: Role  # Validated enum
