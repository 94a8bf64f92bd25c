"""Pydantic schemas for clients."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from crm.schemas.common import CamelModel, OptionalId, OptionalText


class ClientCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: OptionalText = None
    notes: OptionalText = None
    tags: OptionalText = None
    assigned_to_user_id: OptionalId = None


class ClientUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: OptionalText = None
    notes: OptionalText = None
    tags: OptionalText = None
    assigned_to_user_id: OptionalId = None


class ClientRead(CamelModel):
    id: UUID
    workspace_id: UUID
    name: str
    email: str | None
    phone: str | None
    notes: str | None
    tags: str | None
    assigned_to_user_id: UUID | None
    created_at: datetime
    updated_at: datetime
