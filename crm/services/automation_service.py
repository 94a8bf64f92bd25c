"""Task-template automation.

Two deal events materialize tasks from workspace templates:

- DEAL_CREATED fires once, right after a deal is persisted, whatever its stage
- DEAL_STAGE_CHANGED fires when an update moves a deal to a different stage;
  the new stage must equal the template's trigger_value

Automation runs through ``fire_and_forget``: a failure is logged and rolled
back to its savepoint, and the deal create/update that fired it still commits.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.side_effects import SideEffectResult, fire_and_forget
from crm.db.enums import AuditAction, DealStage, EntityType, TaskStatus, TriggerType
from crm.db.models import Deal, Task, TaskTemplate
from crm.db.types import utcnow
from crm.services import audit_service

logger = logging.getLogger(__name__)


# =============================================================================
# Default templates
# =============================================================================


@dataclass(frozen=True)
class DefaultTemplate:
    trigger_type: TriggerType
    trigger_value: str | None
    title: str
    description: str
    due_days: int


DEFAULT_TASK_TEMPLATES: tuple[DefaultTemplate, ...] = (
    DefaultTemplate(
        TriggerType.DEAL_CREATED,
        None,
        "Первичный контакт",
        "Связаться с клиентом и обсудить потребности",
        1,
    ),
    DefaultTemplate(
        TriggerType.DEAL_STAGE_CHANGED,
        DealStage.QUALIFICATION.value,
        "Провести квалификацию",
        "Уточнить потребности, бюджет и сроки",
        2,
    ),
    DefaultTemplate(
        TriggerType.DEAL_STAGE_CHANGED,
        DealStage.PROPOSAL.value,
        "Подготовить коммерческое предложение",
        "Сформировать и отправить КП клиенту",
        3,
    ),
    DefaultTemplate(
        TriggerType.DEAL_STAGE_CHANGED,
        DealStage.NEGOTIATION.value,
        "Обсудить условия",
        "Согласовать условия договора",
        5,
    ),
)


def template_key(
    workspace_id: UUID | str,
    trigger_type: TriggerType | str,
    trigger_value: str | None = None,
) -> str:
    """
    Stable template id for (workspace, trigger).

    The same inputs always give the same key, which makes seeding an upsert.
    """
    trigger = TriggerType(trigger_type)
    if trigger == TriggerType.DEAL_CREATED:
        return f"{workspace_id}-deal-created"
    return f"{workspace_id}-stage-{trigger_value}"


def initialize_default_task_templates(db: Session, workspace_id: UUID) -> int:
    """
    Seed the default templates for a workspace.

    Idempotent: existing keys are left untouched (create-only upsert).

    Returns:
        Number of templates created.
    """
    created_count = 0

    for default in DEFAULT_TASK_TEMPLATES:
        key = template_key(workspace_id, default.trigger_type, default.trigger_value)
        if db.get(TaskTemplate, key) is not None:
            continue

        db.add(
            TaskTemplate(
                id=key,
                workspace_id=workspace_id,
                trigger_type=default.trigger_type.value,
                trigger_value=default.trigger_value,
                title=default.title,
                description=default.description,
                due_days=default.due_days,
                status=TaskStatus.TODO.value,
            )
        )
        created_count += 1

    if created_count > 0:
        db.flush()

    return created_count


def list_templates(db: Session, workspace_id: UUID) -> list[TaskTemplate]:
    return (
        db.query(TaskTemplate)
        .filter(TaskTemplate.workspace_id == workspace_id)
        .order_by(TaskTemplate.created_at.asc(), TaskTemplate.id.asc())
        .all()
    )


# =============================================================================
# Materialization
# =============================================================================


def find_matching_templates(
    db: Session,
    workspace_id: UUID,
    trigger_type: TriggerType,
    trigger_value: str | None,
) -> list[TaskTemplate]:
    """Templates for a trigger. trigger_value only matters for stage changes."""
    query = db.query(TaskTemplate).filter(
        TaskTemplate.workspace_id == workspace_id,
        TaskTemplate.trigger_type == trigger_type.value,
    )
    if trigger_type == TriggerType.DEAL_STAGE_CHANGED:
        query = query.filter(TaskTemplate.trigger_value == trigger_value)
    return query.order_by(TaskTemplate.created_at.asc(), TaskTemplate.id.asc()).all()


def create_tasks_from_templates(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID | None,
    trigger_type: TriggerType,
    trigger_value: str | None,
    deal_id: UUID | None,
    client_id: UUID | None,
    assignee_id: UUID | None,
) -> list[Task]:
    """
    Create one task per matching template.

    due_at is now + due_days when the template sets due_days, else None.
    Each task gets a CREATE audit event tagged autoCreated.
    """
    templates = find_matching_templates(db, workspace_id, trigger_type, trigger_value)
    if not templates:
        return []

    now = utcnow()
    created: list[Task] = []
    for template in templates:
        due_at = now + timedelta(days=template.due_days) if template.due_days is not None else None
        task = Task(
            workspace_id=workspace_id,
            title=template.title,
            description=template.description,
            status=template.status,
            due_at=due_at,
            assigned_to_user_id=assignee_id,
            related_client_id=client_id,
            related_deal_id=deal_id,
        )
        db.add(task)
        db.flush()

        audit_service.log_event(
            db,
            workspace_id,
            actor_user_id,
            EntityType.TASK,
            task.id,
            AuditAction.CREATE,
            {
                "title": task.title,
                "status": task.status,
                "autoCreated": True,
                "templateId": template.id,
                "triggerType": trigger_type.value,
                "triggerValue": trigger_value,
            },
        )
        created.append(task)

    logger.info(
        "Automation %s created %d task(s) for deal %s",
        trigger_type.value,
        len(created),
        deal_id,
    )
    return created


# =============================================================================
# Triggers (called from deal_service)
# =============================================================================


def _run(
    db: Session,
    deal: Deal,
    actor_user_id: UUID | None,
    trigger_type: TriggerType,
    trigger_value: str | None,
) -> SideEffectResult:
    return fire_and_forget(
        db,
        f"automation:{trigger_type.value}",
        create_tasks_from_templates,
        db,
        workspace_id=deal.workspace_id,
        actor_user_id=actor_user_id,
        trigger_type=trigger_type,
        trigger_value=trigger_value,
        deal_id=deal.id,
        client_id=deal.client_id,
        assignee_id=deal.assigned_to_user_id,
    )


def trigger_deal_created(db: Session, deal: Deal, actor_user_id: UUID | None) -> SideEffectResult:
    """Fire DEAL_CREATED for a freshly persisted deal."""
    return _run(db, deal, actor_user_id, TriggerType.DEAL_CREATED, None)


def trigger_stage_changed(
    db: Session,
    deal: Deal,
    previous_stage: str | None,
    actor_user_id: UUID | None,
) -> SideEffectResult | None:
    """Fire DEAL_STAGE_CHANGED keyed on the new stage. No-op if the stage did not change."""
    if previous_stage == deal.stage:
        return None
    return _run(db, deal, actor_user_id, TriggerType.DEAL_STAGE_CHANGED, deal.stage)
