"""Audit event schemas (read-only views)."""

from datetime import datetime
from typing import Any
from uuid import UUID

from crm.schemas.common import CamelModel


class AuditActorRead(CamelModel):
    id: UUID
    email: str


class AuditEventRead(CamelModel):
    id: UUID
    workspace_id: UUID
    actor_user_id: UUID | None
    actor: AuditActorRead | None = None
    entity_type: str
    entity_id: str
    action: str
    payload: dict[str, Any] | None
    created_at: datetime
