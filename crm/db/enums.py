"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Workspace roles, informally ordered by privilege.

    - OWNER: full access; every workspace keeps at least one
    - ADMIN: same action set as OWNER
    - MANAGER: edits everything, deletes nothing
    - AGENT: day-to-day pipeline work (stage, amount, checklist, tasks)
    - VIEWER: read-only
    """

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    AGENT = "AGENT"
    VIEWER = "VIEWER"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


OPEN_TASK_STATUSES = (TaskStatus.TODO.value, TaskStatus.IN_PROGRESS.value)


class TriggerType(str, Enum):
    """Domain events the task-template engine listens for."""

    DEAL_CREATED = "DEAL_CREATED"
    DEAL_STAGE_CHANGED = "DEAL_STAGE_CHANGED"


class DealStage(str, Enum):
    """Standard sales pipeline. Deal.stage is stored as free text."""

    LEAD = "lead"
    QUALIFICATION = "qualification"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class ChatRoomType(str, Enum):
    DIRECT = "DIRECT"
    GROUP = "GROUP"
    CHANNEL = "CHANNEL"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CHECK = "CHECK"
    UNCHECK = "UNCHECK"


class EntityType(str, Enum):
    """Entity type labels recorded on audit events."""

    WORKSPACE = "Workspace"
    MEMBER = "Member"
    INVITE = "Invite"
    CLIENT = "Client"
    DEAL = "Deal"
    TASK = "Task"
    DEAL_CHECKLIST = "DEAL_CHECKLIST"
    CHAT_ROOM = "ChatRoom"
    CHAT_MESSAGE = "ChatMessage"
