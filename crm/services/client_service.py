"""Client service - workspace-scoped client records."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.errors import EntityNotFound
from crm.core.permissions import Action, enforce_action
from crm.db.enums import AuditAction, EntityType, Role
from crm.db.models import Client
from crm.schemas.client import ClientCreate, ClientUpdate
from crm.services import audit_service

# Non-nullable columns; an explicit null in an update is ignored
_REQUIRED_FIELDS = ("name",)


def list_clients(db: Session, workspace_id: UUID, search: str | None = None) -> list[Client]:
    query = db.query(Client).filter(Client.workspace_id == workspace_id)
    if search:
        query = query.filter(Client.name.ilike(f"%{search}%"))
    return query.order_by(Client.created_at.desc()).all()


def get_client(db: Session, workspace_id: UUID, client_id: UUID) -> Client:
    """
    Raises:
        EntityNotFound(Client): absent or in another workspace
    """
    client = db.query(Client).filter(
        Client.id == client_id,
        Client.workspace_id == workspace_id,
    ).first()
    if client is None:
        raise EntityNotFound("Client")
    return client


def create_client(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID,
    data: ClientCreate,
) -> Client:
    client = Client(workspace_id=workspace_id, **data.model_dump())
    db.add(client)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.CLIENT,
        client.id,
        AuditAction.CREATE,
        {"name": client.name},
    )
    db.commit()
    db.refresh(client)
    return client


def required_update_actions(client: Client, changes: dict[str, Any]) -> set[Action]:
    """
    Actions needed to apply ``changes`` to ``client``.

    Renaming needs client.update.name, any other changed field client.update.all.
    Fields sent with their current value need nothing.
    """
    changed = {field for field, value in changes.items() if value != getattr(client, field)}
    if not changed:
        return set()
    if changed == {"name"}:
        return {Action.CLIENT_UPDATE_NAME}
    return {Action.CLIENT_UPDATE_ALL}


def update_client(
    db: Session,
    *,
    client: Client,
    actor_user_id: UUID,
    role: Role,
    data: ClientUpdate,
) -> Client:
    changes = data.model_dump(exclude_unset=True)
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            changes.pop(field)

    for action in required_update_actions(client, changes):
        enforce_action(role, action)

    for field, value in changes.items():
        setattr(client, field, value)
    db.flush()

    audit_service.log_event(
        db,
        client.workspace_id,
        actor_user_id,
        EntityType.CLIENT,
        client.id,
        AuditAction.UPDATE,
        data.model_dump(mode="json", by_alias=True, exclude_unset=True),
    )
    db.commit()
    db.refresh(client)
    return client


def delete_client(db: Session, *, client: Client, actor_user_id: UUID) -> None:
    workspace_id, client_id, name = client.workspace_id, client.id, client.name
    db.delete(client)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.CLIENT,
        client_id,
        AuditAction.DELETE,
        {"name": name},
    )
    db.commit()
