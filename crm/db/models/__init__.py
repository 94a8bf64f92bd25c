"""SQLAlchemy ORM models."""

from crm.db.models.audit import AuditEvent
from crm.db.models.auth import User, UserSession
from crm.db.models.chat import ChatMessage, ChatRoom
from crm.db.models.crm import Client, Deal, DealChecklistItem
from crm.db.models.tasks import Task, TaskTemplate
from crm.db.models.workspaces import Invite, Member, Workspace

__all__ = [
    "AuditEvent",
    "ChatMessage",
    "ChatRoom",
    "Client",
    "Deal",
    "DealChecklistItem",
    "Invite",
    "Member",
    "Task",
    "TaskTemplate",
    "User",
    "UserSession",
    "Workspace",
]
