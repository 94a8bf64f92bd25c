"""Deal checklists and checklist-driven task auto-closure.

Each pipeline stage has a fixed list of required items. Rows are created
lazily on first read, keyed by (deal, stage, title). Ticking an item closes
open tasks on the same deal that mention it; that step is best-effort and
cannot fail the toggle.

The completion flag returned by a toggle is advisory. Nothing here blocks a
stage transition.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Protocol
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from crm.core.permissions import Action, enforce_action
from crm.core.side_effects import SideEffectResult, fire_and_forget
from crm.db.enums import OPEN_TASK_STATUSES, AuditAction, DealStage, EntityType, Role, TaskStatus
from crm.db.models import Deal, DealChecklistItem, Task
from crm.db.types import utcnow
from crm.services import audit_service

logger = logging.getLogger(__name__)


STAGE_CHECKLISTS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    DealStage.LEAD.value: (
        "Первичный контакт установлен",
        "Потребность выявлена",
        "Бюджет определен",
    ),
    DealStage.QUALIFICATION.value: (
        "Квалификация пройдена",
        "Решение принято",
        "Сроки согласованы",
    ),
    DealStage.PROPOSAL.value: (
        "Коммерческое предложение отправлено",
        "Презентация проведена",
        "Вопросы клиента получены",
    ),
    DealStage.NEGOTIATION.value: (
        "Условия обсуждены",
        "Скидка согласована",
        "Договор подготовлен",
    ),
    DealStage.CLOSED_WON.value: (
        "Договор подписан",
        "Оплата получена",
        "Проект запущен",
    ),
    DealStage.CLOSED_LOST.value: (
        "Причина отказа выяснена",
        "Обратная связь получена",
        "Клиент в базе сохранен",
    ),
})


def required_items(stage: str) -> tuple[str, ...]:
    """Required titles for a stage; empty for stages outside the standard pipeline."""
    return STAGE_CHECKLISTS.get(stage, ())


# =============================================================================
# Task matching
# =============================================================================


class TaskMatcher(Protocol):
    """Decides whether a checklist item refers to a task."""

    def matches(self, item_title: str, task_title: str, task_description: str | None) -> bool:
        ...


class SubstringTaskMatcher:
    """
    Case-insensitive "contains" match on the task title or description.

    The item title is trimmed first, so surrounding spaces do not prevent a
    match and a blank title matches nothing.
    """

    def matches(self, item_title: str, task_title: str, task_description: str | None) -> bool:
        needle = item_title.strip().lower()
        if not needle:
            return False
        if needle in (task_title or "").lower():
            return True
        return bool(task_description) and needle in task_description.lower()


default_matcher: TaskMatcher = SubstringTaskMatcher()


# =============================================================================
# Reading
# =============================================================================


@dataclass(frozen=True)
class ChecklistProgress:
    completed_count: int
    total_count: int

    @property
    def is_complete(self) -> bool:
        return self.total_count > 0 and self.completed_count == self.total_count


@dataclass(frozen=True)
class ChecklistToggleOutcome:
    item: DealChecklistItem
    progress: ChecklistProgress
    auto_close: SideEffectResult | None = None


def _ordered(items: list[DealChecklistItem], stage: str) -> list[DealChecklistItem]:
    position = {title: index for index, title in enumerate(required_items(stage))}
    # Required items in their defined order, anything else after them
    return sorted(items, key=lambda item: position.get(item.title, len(position)))


def get_checklist(db: Session, deal: Deal) -> list[DealChecklistItem]:
    """
    Checklist for the deal's current stage.

    Missing required items are created (completed=False) first, so repeated
    reads never duplicate rows.
    """
    items = (
        db.query(DealChecklistItem)
        .filter(DealChecklistItem.deal_id == deal.id, DealChecklistItem.stage == deal.stage)
        .order_by(DealChecklistItem.created_at.asc())
        .all()
    )
    existing = {item.title for item in items}

    created = []
    for title in required_items(deal.stage):
        if title in existing:
            continue
        item = DealChecklistItem(deal_id=deal.id, stage=deal.stage, title=title, completed=False)
        db.add(item)
        created.append(item)

    if created:
        db.commit()
        items.extend(created)
        logger.debug("Materialized %d checklist item(s) for deal %s", len(created), deal.id)

    return _ordered(items, deal.stage)


def get_progress(db: Session, deal_id: UUID, stage: str) -> ChecklistProgress:
    """Completed / required counts for a stage. Extra (non-required) items do not count."""
    required = required_items(stage)
    if not required:
        return ChecklistProgress(completed_count=0, total_count=0)

    completed = db.query(func.count(DealChecklistItem.id)).filter(
        DealChecklistItem.deal_id == deal_id,
        DealChecklistItem.stage == stage,
        DealChecklistItem.completed.is_(True),
        DealChecklistItem.title.in_(required),
    ).scalar() or 0
    return ChecklistProgress(completed_count=completed, total_count=len(required))


# =============================================================================
# Toggling and auto-closure
# =============================================================================


def auto_close_related_tasks(
    db: Session,
    *,
    workspace_id: UUID,
    deal_id: UUID,
    item_title: str,
    actor_user_id: UUID | None,
    matcher: TaskMatcher = default_matcher,
) -> list[Task]:
    """
    Move open tasks on the deal that match the item to DONE.

    One UPDATE audit event per closed task, tagged autoClosed.
    """
    candidates = db.query(Task).filter(
        Task.workspace_id == workspace_id,
        Task.related_deal_id == deal_id,
        Task.status.in_(OPEN_TASK_STATUSES),
    ).all()

    closed: list[Task] = []
    for task in candidates:
        if not matcher.matches(item_title, task.title, task.description):
            continue
        task.status = TaskStatus.DONE.value
        db.flush()
        audit_service.log_event(
            db,
            workspace_id,
            actor_user_id,
            EntityType.TASK,
            task.id,
            AuditAction.UPDATE,
            {"status": TaskStatus.DONE.value, "autoClosed": True, "checklistItem": item_title},
        )
        closed.append(task)

    if closed:
        logger.info("Checklist item closed %d task(s) on deal %s", len(closed), deal_id)
    return closed


def toggle_item(
    db: Session,
    *,
    deal: Deal,
    actor_user_id: UUID,
    role: Role,
    item_title: str,
    completed: bool,
    matcher: TaskMatcher = default_matcher,
) -> ChecklistToggleOutcome:
    """
    Tick or untick an item on the deal's current stage.

    The item is created if it does not exist yet. Unticking clears the
    completer and timestamp. Auto-closure only runs when ticking.
    """
    enforce_action(role, Action.CHECKLIST_UPDATE)

    item = db.query(DealChecklistItem).filter(
        DealChecklistItem.deal_id == deal.id,
        DealChecklistItem.stage == deal.stage,
        DealChecklistItem.title == item_title,
    ).first()
    if item is None:
        item = DealChecklistItem(deal_id=deal.id, stage=deal.stage, title=item_title)
        db.add(item)

    item.completed = completed
    item.completed_by_user_id = actor_user_id if completed else None
    item.completed_at = utcnow() if completed else None
    db.flush()

    audit_service.log_event(
        db,
        deal.workspace_id,
        actor_user_id,
        EntityType.DEAL_CHECKLIST,
        deal.id,
        AuditAction.CHECK if completed else AuditAction.UNCHECK,
        {"stage": deal.stage, "itemTitle": item_title},
    )

    auto_close = None
    if completed:
        auto_close = fire_and_forget(
            db,
            "checklist:auto-close",
            auto_close_related_tasks,
            db,
            workspace_id=deal.workspace_id,
            deal_id=deal.id,
            item_title=item_title,
            actor_user_id=actor_user_id,
            matcher=matcher,
        )

    db.commit()
    db.refresh(item)
    return ChecklistToggleOutcome(
        item=item,
        progress=get_progress(db, deal.id, deal.stage),
        auto_close=auto_close,
    )
