"""Chat router - workspace rooms and messages, open to every member."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_workspace_context, require_csrf_header
from crm.schemas.auth import WorkspaceContext
from crm.schemas.chat import (
    ChatMessageCreate,
    ChatMessageRead,
    ChatRoomCreate,
    ChatRoomRead,
    ChatRoomSummary,
)
from crm.schemas.common import success
from crm.services import chat_service

router = APIRouter(prefix="/workspaces/{workspace_slug}/chat", tags=["chat"])


@router.get("/rooms")
def list_rooms(
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    rooms = chat_service.list_rooms(db, context.workspace_id)
    return success(rooms=[ChatRoomSummary.model_validate(r) for r in rooms])


@router.post("/rooms", status_code=201, dependencies=[Depends(require_csrf_header)])
def create_room(
    body: ChatRoomCreate,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    room = chat_service.create_room(
        db, workspace_id=context.workspace_id, actor_user_id=context.user_id, data=body
    )
    return success(room=ChatRoomRead.model_validate(room))


@router.get("/rooms/{room_id}/messages")
def list_messages(
    room_id: UUID,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    room = chat_service.get_room(db, context.workspace_id, room_id)
    messages = chat_service.list_messages(db, room)
    return success(messages=[ChatMessageRead.model_validate(m) for m in messages])


@router.post(
    "/rooms/{room_id}/messages",
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def post_message(
    room_id: UUID,
    body: ChatMessageCreate,
    context: WorkspaceContext = Depends(get_workspace_context),
    db: Session = Depends(get_db),
):
    room = chat_service.get_room(db, context.workspace_id, room_id)
    message = chat_service.post_message(db, room=room, actor_user_id=context.user_id, data=body)
    return success(message=ChatMessageRead.model_validate(message))
