"""Action permission table with metadata for UI and validation.

Action identifiers are a closed, flat namespace. Dots are a naming convention
only; nothing is resolved hierarchically at runtime.

OWNER and ADMIN share the full set. VIEWER has nothing.
Unknown roles or actions are always denied.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from crm.core.errors import Forbidden
from crm.db.enums import Role


class Action(str, Enum):
    """Gated capabilities."""

    CLIENT_UPDATE_NAME = "client.update.name"
    CLIENT_UPDATE_ALL = "client.update.all"
    CLIENT_DELETE = "client.delete"
    DEAL_UPDATE_STAGE = "deal.update.stage"
    DEAL_UPDATE_AMOUNT = "deal.update.amount"
    DEAL_UPDATE_ALL = "deal.update.all"
    DEAL_DELETE = "deal.delete"
    CHECKLIST_UPDATE = "checklist.update"
    TASK_UPDATE_ALL = "task.update.all"
    TASK_DELETE = "task.delete"


class ActionCategory(str, Enum):
    """Action categories for UI grouping."""

    CLIENTS = "Clients"
    DEALS = "Deals"
    CHECKLISTS = "Checklists"
    TASKS = "Tasks"


@dataclass(frozen=True)
class ActionDef:
    """Action definition with metadata."""

    key: Action
    label: str
    category: ActionCategory


# =============================================================================
# Action Registry
# =============================================================================

ACTION_REGISTRY: Mapping[Action, ActionDef] = MappingProxyType({
    Action.CLIENT_UPDATE_NAME: ActionDef(
        Action.CLIENT_UPDATE_NAME, "Rename clients", ActionCategory.CLIENTS
    ),
    Action.CLIENT_UPDATE_ALL: ActionDef(
        Action.CLIENT_UPDATE_ALL, "Edit all client fields", ActionCategory.CLIENTS
    ),
    Action.CLIENT_DELETE: ActionDef(
        Action.CLIENT_DELETE, "Delete clients", ActionCategory.CLIENTS
    ),
    Action.DEAL_UPDATE_STAGE: ActionDef(
        Action.DEAL_UPDATE_STAGE, "Move deals between stages", ActionCategory.DEALS
    ),
    Action.DEAL_UPDATE_AMOUNT: ActionDef(
        Action.DEAL_UPDATE_AMOUNT, "Change deal amount", ActionCategory.DEALS
    ),
    Action.DEAL_UPDATE_ALL: ActionDef(
        Action.DEAL_UPDATE_ALL, "Edit all deal fields", ActionCategory.DEALS
    ),
    Action.DEAL_DELETE: ActionDef(
        Action.DEAL_DELETE, "Delete deals", ActionCategory.DEALS
    ),
    Action.CHECKLIST_UPDATE: ActionDef(
        Action.CHECKLIST_UPDATE, "Tick deal checklist items", ActionCategory.CHECKLISTS
    ),
    Action.TASK_UPDATE_ALL: ActionDef(
        Action.TASK_UPDATE_ALL, "Edit tasks", ActionCategory.TASKS
    ),
    Action.TASK_DELETE: ActionDef(
        Action.TASK_DELETE, "Delete tasks", ActionCategory.TASKS
    ),
})


# =============================================================================
# Role -> allowed actions
# =============================================================================

_FULL_ACCESS = frozenset(Action)

_MANAGER = _FULL_ACCESS - {Action.CLIENT_DELETE, Action.DEAL_DELETE, Action.TASK_DELETE}

_AGENT = frozenset({
    Action.CLIENT_UPDATE_NAME,
    Action.DEAL_UPDATE_STAGE,
    Action.DEAL_UPDATE_AMOUNT,
    Action.CHECKLIST_UPDATE,
    Action.TASK_UPDATE_ALL,
})

ROLE_PERMISSIONS: Mapping[Role, frozenset[Action]] = MappingProxyType({
    Role.OWNER: _FULL_ACCESS,
    Role.ADMIN: _FULL_ACCESS,
    Role.MANAGER: _MANAGER,
    Role.AGENT: _AGENT,
    Role.VIEWER: frozenset(),
})


def _coerce_role(role: Role | str | None) -> Role | None:
    if isinstance(role, Role):
        return role
    if isinstance(role, str) and Role.has_value(role):
        return Role(role)
    return None


def _coerce_action(action: Action | str | None) -> Action | None:
    if isinstance(action, Action):
        return action
    try:
        return Action(action)
    except ValueError:
        return None


def can_perform_action(role: Role | str | None, action: Action | str | None) -> bool:
    """Return True if ``role`` may perform ``action``. Never raises."""
    resolved_role = _coerce_role(role)
    resolved_action = _coerce_action(action)
    if resolved_role is None or resolved_action is None:
        return False
    return resolved_action in ROLE_PERMISSIONS[resolved_role]


def get_permissions(role: Role | str | None) -> list[str]:
    """Sorted action identifiers granted to a role (empty for unknown roles)."""
    resolved_role = _coerce_role(role)
    if resolved_role is None:
        return []
    return sorted(action.value for action in ROLE_PERMISSIONS[resolved_role])


def ensure_action(role: Role | str | None, action: Action | str) -> None:
    """
    Raise Forbidden unless the role may perform the action.

    Used by mutating services for server-side enforcement of the action table.
    """
    if not can_perform_action(role, action):
        action_key = action.value if isinstance(action, Action) else action
        raise Forbidden(f"Insufficient permissions for action '{action_key}'")


def enforce_action(role: Role | str | None, action: Action | str) -> None:
    """ensure_action, honouring ENFORCE_ACTION_PERMISSIONS.

    With the flag off only the route-level role allow-lists apply.
    """
    from crm.core.config import settings

    if settings.ENFORCE_ACTION_PERMISSIONS:
        ensure_action(role, action)
