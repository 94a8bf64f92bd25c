"""Chat room and message schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from crm.db.enums import ChatRoomType
from crm.schemas.common import CamelModel


class ChatRoomCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: ChatRoomType


class ChatMessageCreate(CamelModel):
    content: str = Field(..., min_length=1)


class ChatMessageRead(CamelModel):
    id: UUID
    room_id: UUID
    user_id: UUID | None
    content: str
    created_at: datetime


class ChatRoomRead(CamelModel):
    id: UUID
    workspace_id: UUID
    name: str
    type: ChatRoomType
    created_at: datetime


class ChatRoomSummary(ChatRoomRead):
    """Room as listed: with its message count and newest message."""
    message_count: int = 0
    last_message: ChatMessageRead | None = None
