"""Audit service - append-only event trail for timeline and audit-log views.

Writes are best-effort: every event goes through ``fire_and_forget`` so a
failed insert is logged and rolled back to its savepoint without touching the
mutation being audited.

Guidelines:
- NEVER put secrets (passwords, session or invite tokens) in payloads
- Use ids instead of raw data where possible
- Events are never updated or deleted
"""

from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from crm.core.side_effects import SideEffectResult, fire_and_forget
from crm.db.enums import AuditAction, EntityType
from crm.db.models import AuditEvent, Deal, Task

TIMELINE_LIMIT = 100


def _value(item: Enum | str) -> str:
    return item.value if isinstance(item, Enum) else item


def _write_event(
    db: Session,
    workspace_id: UUID,
    actor_user_id: UUID | None,
    entity_type: EntityType | str,
    entity_id: UUID | str,
    action: AuditAction | str,
    payload: dict[str, Any] | None,
) -> AuditEvent:
    event = AuditEvent(
        workspace_id=workspace_id,
        actor_user_id=actor_user_id,
        entity_type=_value(entity_type),
        entity_id=str(entity_id),
        action=_value(action),
        payload=payload,
    )
    db.add(event)
    db.flush()
    return event


def log_event(
    db: Session,
    workspace_id: UUID,
    actor_user_id: UUID | None,
    entity_type: EntityType | str,
    entity_id: UUID | str,
    action: AuditAction | str,
    payload: dict[str, Any] | None = None,
) -> SideEffectResult:
    """
    Append an audit event.

    Args:
        db: Database session (the caller commits)
        workspace_id: Tenant the event belongs to
        actor_user_id: User who performed the action (None for system)
        entity_type: EntityType label
        entity_id: Id of the affected entity (stored as text)
        action: CREATE / UPDATE / DELETE / CHECK / UNCHECK
        payload: JSON-serializable context (no secrets)

    Returns:
        SideEffectResult; ``ok`` is False when the write failed. Never raises.
    """
    return fire_and_forget(
        db,
        f"audit:{_value(entity_type)}.{_value(action)}",
        _write_event,
        db,
        workspace_id,
        actor_user_id,
        entity_type,
        entity_id,
        action,
        payload,
    )


# =============================================================================
# Timelines (read-only)
# =============================================================================


def _timeline_query(db: Session, workspace_id: UUID, conditions: list):
    return (
        db.query(AuditEvent)
        .options(joinedload(AuditEvent.actor))
        .filter(AuditEvent.workspace_id == workspace_id, or_(*conditions))
        .order_by(AuditEvent.created_at.desc())
        .limit(TIMELINE_LIMIT)
    )


def _ids_as_text(rows) -> list[str]:
    return [str(row.id) for row in rows]


def get_deal_timeline(db: Session, workspace_id: UUID, deal_id: UUID) -> list[AuditEvent]:
    """Events for a deal, its checklist and its tasks, newest first."""
    task_ids = _ids_as_text(
        db.query(Task.id).filter(
            Task.workspace_id == workspace_id,
            Task.related_deal_id == deal_id,
        )
    )
    conditions = [
        and_(
            AuditEvent.entity_type.in_([EntityType.DEAL.value, EntityType.DEAL_CHECKLIST.value]),
            AuditEvent.entity_id == str(deal_id),
        )
    ]
    if task_ids:
        conditions.append(
            and_(AuditEvent.entity_type == EntityType.TASK.value, AuditEvent.entity_id.in_(task_ids))
        )
    return _timeline_query(db, workspace_id, conditions).all()


def get_client_timeline(db: Session, workspace_id: UUID, client_id: UUID) -> list[AuditEvent]:
    """Events for a client, its deals and its tasks, newest first."""
    deal_ids = _ids_as_text(
        db.query(Deal.id).filter(Deal.workspace_id == workspace_id, Deal.client_id == client_id)
    )
    task_ids = _ids_as_text(
        db.query(Task.id).filter(
            Task.workspace_id == workspace_id,
            Task.related_client_id == client_id,
        )
    )
    conditions = [
        and_(AuditEvent.entity_type == EntityType.CLIENT.value, AuditEvent.entity_id == str(client_id))
    ]
    if deal_ids:
        conditions.append(
            and_(AuditEvent.entity_type == EntityType.DEAL.value, AuditEvent.entity_id.in_(deal_ids))
        )
    if task_ids:
        conditions.append(
            and_(AuditEvent.entity_type == EntityType.TASK.value, AuditEvent.entity_id.in_(task_ids))
        )
    return _timeline_query(db, workspace_id, conditions).all()
