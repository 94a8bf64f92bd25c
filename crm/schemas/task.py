"""Pydantic schemas for tasks and task templates."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from crm.db.enums import TaskStatus
from crm.schemas.common import CamelModel, OptionalId, OptionalText


class TaskCreate(CamelModel):
    """Request to create a task."""
    title: str = Field(..., min_length=1, max_length=255)
    description: OptionalText = None
    due_at: datetime | None = None
    status: TaskStatus
    assigned_to_user_id: OptionalId = None
    related_client_id: OptionalId = None
    related_deal_id: OptionalId = None


class TaskUpdate(CamelModel):
    """Request to update a task (partial)."""
    title: str | None = Field(None, min_length=1, max_length=255)
    description: OptionalText = None
    due_at: datetime | None = None
    status: TaskStatus | None = None
    assigned_to_user_id: OptionalId = None
    related_client_id: OptionalId = None
    related_deal_id: OptionalId = None


class TaskRead(CamelModel):
    id: UUID
    workspace_id: UUID
    title: str
    description: str | None
    status: TaskStatus
    due_at: datetime | None
    assigned_to_user_id: UUID | None
    related_client_id: UUID | None
    related_deal_id: UUID | None
    created_at: datetime
    updated_at: datetime


class TaskTemplateRead(CamelModel):
    id: str
    workspace_id: UUID
    trigger_type: str
    trigger_value: str | None
    title: str
    description: str | None
    due_days: int | None
    status: TaskStatus
