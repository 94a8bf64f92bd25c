"""Append-only audit trail."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.db.base import Base
from crm.db.types import utcnow

if TYPE_CHECKING:
    from crm.db.models.auth import User
    from crm.db.models.workspaces import Workspace


class AuditEvent(Base):
    """
    Immutable record of a mutation, read by timeline and audit-log views.

    Rows are never updated or deleted by application code.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_workspace_created", "workspace_id", "created_at"),
        Index("idx_audit_entity", "workspace_id", "entity_type", "entity_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # EntityType
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)  # AuditAction
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    actor: Mapped["User"] = relationship()
    workspace: Mapped["Workspace"] = relationship()
