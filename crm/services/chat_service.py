"""Chat service - workspace chat rooms and messages."""

import logging
from uuid import UUID

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from crm.core.errors import EntityNotFound
from crm.db.enums import AuditAction, EntityType
from crm.db.models import ChatMessage, ChatRoom
from crm.schemas.chat import ChatMessageCreate, ChatRoomCreate
from crm.services import audit_service

logger = logging.getLogger(__name__)

MESSAGE_HISTORY_LIMIT = 100


# =============================================================================
# Rooms
# =============================================================================


def list_rooms(db: Session, workspace_id: UUID) -> list[dict]:
    """Rooms newest first, each with its message count and newest message."""
    rooms = (
        db.query(ChatRoom)
        .filter(ChatRoom.workspace_id == workspace_id)
        .order_by(ChatRoom.created_at.desc())
        .all()
    )
    room_ids = [room.id for room in rooms]
    if not room_ids:
        return []

    counts = dict(
        db.query(ChatMessage.room_id, func.count(ChatMessage.id))
        .filter(ChatMessage.room_id.in_(room_ids))
        .group_by(ChatMessage.room_id)
        .all()
    )

    latest = (
        db.query(
            ChatMessage.room_id.label("room_id"),
            func.max(ChatMessage.created_at).label("latest_at"),
        )
        .filter(ChatMessage.room_id.in_(room_ids))
        .group_by(ChatMessage.room_id)
        .subquery()
    )
    last_messages = {
        message.room_id: message
        for message in db.query(ChatMessage).join(
            latest,
            and_(
                ChatMessage.room_id == latest.c.room_id,
                ChatMessage.created_at == latest.c.latest_at,
            ),
        )
    }

    return [
        {
            "id": room.id,
            "workspace_id": room.workspace_id,
            "name": room.name,
            "type": room.type,
            "created_at": room.created_at,
            "message_count": counts.get(room.id, 0),
            "last_message": last_messages.get(room.id),
        }
        for room in rooms
    ]


def get_room(db: Session, workspace_id: UUID, room_id: UUID) -> ChatRoom:
    """
    Raises:
        EntityNotFound(Room): absent or in another workspace
    """
    room = db.query(ChatRoom).filter(
        ChatRoom.id == room_id,
        ChatRoom.workspace_id == workspace_id,
    ).first()
    if room is None:
        raise EntityNotFound("Room", "Chat room not found")
    return room


def create_room(
    db: Session,
    *,
    workspace_id: UUID,
    actor_user_id: UUID,
    data: ChatRoomCreate,
) -> ChatRoom:
    room = ChatRoom(workspace_id=workspace_id, name=data.name, type=data.type.value)
    db.add(room)
    db.flush()

    audit_service.log_event(
        db,
        workspace_id,
        actor_user_id,
        EntityType.CHAT_ROOM,
        room.id,
        AuditAction.CREATE,
        {"name": room.name, "type": room.type},
    )
    db.commit()
    db.refresh(room)
    return room


# =============================================================================
# Messages
# =============================================================================


def list_messages(db: Session, room: ChatRoom) -> list[ChatMessage]:
    """The newest MESSAGE_HISTORY_LIMIT messages, oldest first."""
    newest = (
        db.query(ChatMessage)
        .filter(ChatMessage.room_id == room.id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(MESSAGE_HISTORY_LIMIT)
        .all()
    )
    return newest[::-1]


def post_message(
    db: Session,
    *,
    room: ChatRoom,
    actor_user_id: UUID,
    data: ChatMessageCreate,
) -> ChatMessage:
    message = ChatMessage(room_id=room.id, user_id=actor_user_id, content=data.content)
    db.add(message)
    db.flush()

    # Content stays out of the audit trail
    audit_service.log_event(
        db,
        room.workspace_id,
        actor_user_id,
        EntityType.CHAT_MESSAGE,
        message.id,
        AuditAction.CREATE,
        {"roomId": str(room.id)},
    )
    db.commit()
    db.refresh(message)
    logger.info("Message %s posted to room %s", message.id, room.id)
    return message
