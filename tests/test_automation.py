"""
Task-template automation tests.

Tests cover:
- Deterministic template keys and idempotent default seeding
- DEAL_CREATED and DEAL_STAGE_CHANGED materialization
- Audit tagging of auto-created tasks
- Automation failures never fail the deal mutation
"""

from datetime import timedelta

import pytest

from crm.db.enums import Role, TriggerType
from crm.db.models import AuditEvent, Deal, Task, TaskTemplate
from crm.db.types import utcnow
from crm.schemas.deal import DealCreate, DealUpdate
from crm.services import audit_service, automation_service, deal_service


def _tasks(db, deal_id):
    return db.query(Task).filter(Task.related_deal_id == deal_id).all()


def _create_deal(db, workspace, owner, **fields):
    data = DealCreate(stage=fields.pop("stage", "lead"), **fields)
    return deal_service.create_deal(
        db, workspace_id=workspace.id, actor_user_id=owner.id, data=data
    )


def _within(actual, expected, tolerance=timedelta(minutes=1)):
    return abs(actual - expected) < tolerance


# =============================================================================
# Template keys and seeding
# =============================================================================


def test_template_key_is_deterministic():
    ws = "7a1f0c2e-0000-0000-0000-000000000001"
    assert automation_service.template_key(ws, TriggerType.DEAL_CREATED) == f"{ws}-deal-created"
    assert automation_service.template_key(ws, TriggerType.DEAL_CREATED, "ignored") == f"{ws}-deal-created"
    assert (
        automation_service.template_key(ws, "DEAL_STAGE_CHANGED", "proposal")
        == automation_service.template_key(ws, TriggerType.DEAL_STAGE_CHANGED, "proposal")
        == f"{ws}-stage-proposal"
    )


def test_defaults_seeded_with_workspace(db, workspace):
    templates = automation_service.list_templates(db, workspace.id)
    by_key = {t.id: t for t in templates}

    assert len(templates) == 4
    created = by_key[f"{workspace.id}-deal-created"]
    assert created.title == "Первичный контакт"
    assert created.description == "Связаться с клиентом и обсудить потребности"
    assert created.due_days == 1
    assert {
        (t.trigger_value, t.title, t.due_days)
        for t in templates
        if t.trigger_type == TriggerType.DEAL_STAGE_CHANGED.value
    } == {
        ("qualification", "Провести квалификацию", 2),
        ("proposal", "Подготовить коммерческое предложение", 3),
        ("negotiation", "Обсудить условия", 5),
    }
    assert all(t.status == "TODO" for t in templates)


def test_seeding_is_idempotent(db, workspace):
    template = db.get(TaskTemplate, f"{workspace.id}-deal-created")
    template.title = "Customised"
    db.commit()

    assert automation_service.initialize_default_task_templates(db, workspace.id) == 0
    db.commit()

    assert db.query(TaskTemplate).filter(TaskTemplate.workspace_id == workspace.id).count() == 4
    # Create-only: existing rows are not overwritten
    assert db.get(TaskTemplate, f"{workspace.id}-deal-created").title == "Customised"


def test_seeding_restores_missing_defaults(db, workspace):
    db.query(TaskTemplate).filter(TaskTemplate.trigger_value == "proposal").delete()
    db.commit()

    assert automation_service.initialize_default_task_templates(db, workspace.id) == 1


# =============================================================================
# DEAL_CREATED
# =============================================================================


def test_deal_created_materializes_first_contact_task(db, workspace, owner):
    before = utcnow()
    deal = _create_deal(db, workspace, owner, stage="lead")

    tasks = _tasks(db, deal.id)
    assert len(tasks) == 1
    task = tasks[0]
    assert task.title == "Первичный контакт"
    assert task.status == "TODO"
    assert task.workspace_id == workspace.id
    assert _within(task.due_at, before + timedelta(days=1))


def test_deal_created_fires_regardless_of_stage(db, workspace, owner):
    deal = _create_deal(db, workspace, owner, stage="negotiation")
    assert [t.title for t in _tasks(db, deal.id)] == ["Первичный контакт"]


def test_no_deal_created_template_no_tasks(db, workspace, owner):
    db.query(TaskTemplate).filter(
        TaskTemplate.trigger_type == TriggerType.DEAL_CREATED.value
    ).delete()
    db.commit()

    deal = _create_deal(db, workspace, owner)
    assert _tasks(db, deal.id) == []


def test_task_inherits_deal_links(db, workspace, owner, add_member):
    from crm.db.models import Client

    agent, _ = add_member(workspace, Role.AGENT)
    client = Client(workspace_id=workspace.id, name="ACME")
    db.add(client)
    db.commit()

    deal = _create_deal(db, workspace, owner, client_id=client.id, assigned_to_user_id=agent.id)
    task = _tasks(db, deal.id)[0]
    assert task.related_client_id == client.id
    assert task.assigned_to_user_id == agent.id


def test_unassigned_deal_gives_unassigned_task(db, workspace, owner):
    deal = _create_deal(db, workspace, owner)
    assert _tasks(db, deal.id)[0].assigned_to_user_id is None


def test_auto_created_task_is_audited(db, workspace, owner):
    deal = _create_deal(db, workspace, owner)
    task = _tasks(db, deal.id)[0]

    event = db.query(AuditEvent).filter(
        AuditEvent.entity_type == "Task",
        AuditEvent.entity_id == str(task.id),
        AuditEvent.action == "CREATE",
    ).one()
    assert event.actor_user_id == owner.id
    assert event.payload == {
        "title": "Первичный контакт",
        "status": "TODO",
        "autoCreated": True,
        "templateId": f"{workspace.id}-deal-created",
        "triggerType": "DEAL_CREATED",
        "triggerValue": None,
    }


def test_template_without_due_days_gives_no_due_date(db, workspace, owner):
    template = db.get(TaskTemplate, f"{workspace.id}-deal-created")
    template.due_days = None
    db.commit()

    deal = _create_deal(db, workspace, owner)
    assert _tasks(db, deal.id)[0].due_at is None


def test_templates_are_workspace_scoped(db, workspace, owner, make_user):
    from crm.services import workspace_service

    other_owner = make_user()
    workspace_service.create_workspace(db, name="Other", slug="other", owner_user_id=other_owner.id)

    deal = _create_deal(db, workspace, owner)
    assert len(_tasks(db, deal.id)) == 1


# =============================================================================
# DEAL_STAGE_CHANGED
# =============================================================================


def _update(db, deal, owner, **fields):
    return deal_service.update_deal(
        db, deal=deal, actor_user_id=owner.id, role=Role.OWNER, data=DealUpdate(**fields)
    )


def test_stage_change_materializes_stage_task(db, workspace, owner):
    deal = _create_deal(db, workspace, owner, stage="lead")
    before = utcnow()

    _update(db, deal, owner, stage="qualification")

    stage_tasks = [t for t in _tasks(db, deal.id) if t.title != "Первичный контакт"]
    assert len(stage_tasks) == 1
    assert stage_tasks[0].title == "Провести квалификацию"
    assert _within(stage_tasks[0].due_at, before + timedelta(days=2))


def test_same_stage_creates_nothing(db, workspace, owner):
    deal = _create_deal(db, workspace, owner, stage="qualification")
    count = len(_tasks(db, deal.id))

    _update(db, deal, owner, stage="qualification")
    _update(db, deal, owner, amount=1000)

    assert len(_tasks(db, deal.id)) == count


def test_stage_without_template_creates_nothing(db, workspace, owner):
    deal = _create_deal(db, workspace, owner)
    _update(db, deal, owner, stage="closed_won")
    assert len(_tasks(db, deal.id)) == 1


def test_stage_task_audit_carries_trigger(db, workspace, owner):
    deal = _create_deal(db, workspace, owner)
    _update(db, deal, owner, stage="proposal")

    task = next(t for t in _tasks(db, deal.id) if t.title.startswith("Подготовить"))
    event = db.query(AuditEvent).filter(AuditEvent.entity_id == str(task.id)).one()
    assert event.payload["triggerType"] == "DEAL_STAGE_CHANGED"
    assert event.payload["triggerValue"] == "proposal"
    assert event.payload["templateId"] == f"{workspace.id}-stage-proposal"

    deal_update = db.query(AuditEvent).filter(
        AuditEvent.entity_type == "Deal", AuditEvent.action == "UPDATE"
    ).one()
    assert deal_update.payload == {"stage": "proposal", "previousStage": "lead"}


def test_trigger_stage_changed_noop_when_unchanged(db, workspace, owner):
    deal = _create_deal(db, workspace, owner, stage="proposal")
    assert automation_service.trigger_stage_changed(db, deal, "proposal", owner.id) is None


# =============================================================================
# Failure isolation
# =============================================================================


def test_automation_failure_does_not_fail_deal_create(db, workspace, owner, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("template engine down")

    monkeypatch.setattr(automation_service, "create_tasks_from_templates", boom)

    deal = _create_deal(db, workspace, owner)

    assert db.get(Deal, deal.id) is not None
    assert _tasks(db, deal.id) == []
    # Audit still recorded for the deal itself
    assert db.query(AuditEvent).filter(
        AuditEvent.entity_type == "Deal", AuditEvent.entity_id == str(deal.id)
    ).count() == 1


def test_automation_failure_does_not_fail_stage_update(db, workspace, owner, monkeypatch):
    deal = _create_deal(db, workspace, owner)

    def boom(*args, **kwargs):
        raise RuntimeError("template engine down")

    monkeypatch.setattr(automation_service, "create_tasks_from_templates", boom)

    updated = _update(db, deal, owner, stage="qualification")
    assert updated.stage == "qualification"


def test_audit_failure_does_not_fail_deal_create(db, workspace, owner, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(audit_service, "_write_event", boom)

    deal = _create_deal(db, workspace, owner)
    assert db.get(Deal, deal.id) is not None
    assert len(_tasks(db, deal.id)) == 1
    # Only the workspace-creation event from the fixture exists
    assert db.query(AuditEvent).filter(AuditEvent.entity_type != "Workspace").count() == 0


@pytest.mark.parametrize("amount", [0, -5])
def test_non_positive_amount_is_absent(db, workspace, owner, amount):
    deal = _create_deal(db, workspace, owner, amount=amount)
    assert deal.amount is None
