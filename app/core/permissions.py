"""
Organization permission rule.

evaluate() is a pure decision over already-fetched facts (caller role, creator
status, admin count, target role); it performs no I/O. The membership lookup
that feeds it lives in app.core.dependencies.
"""

from enum import Enum
from typing import Optional

from app.config.permissions_config import (
    ROLES, CREATOR_ONLY_ACTIONS, ADMIN_COUNT_ACTIONS, get_permission_matrix
)


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def rank(self) -> int:
        return ROLES.index(self.value)

    @property
    def is_admin(self) -> bool:
        return self in (Role.ADMIN, Role.OWNER)


class Action(str, Enum):
    VIEW_ORG = "view_org"
    UPDATE_ORG = "update_org"
    DELETE_ORG = "delete_org"
    INVITE_MEMBER = "invite_member"
    REGENERATE_INVITE_CODE = "regenerate_invite_code"
    VIEW_MEMBERS = "view_members"
    REMOVE_MEMBER = "remove_member"
    UPDATE_MEMBER_ROLE = "update_member_role"
    LEAVE_ORG = "leave_org"
    VIEW_STATS = "view_stats"
    CREATE_PROJECT = "create_project"
    VIEW_PROJECT = "view_project"
    UPDATE_PROJECT = "update_project"
    ARCHIVE_PROJECT = "archive_project"
    DELETE_PROJECT = "delete_project"
    MANAGE_PROJECT_MEMBERS = "manage_project_members"
    CREATE_BOARD = "create_board"
    UPDATE_BOARD = "update_board"
    DELETE_BOARD = "delete_board"
    MANAGE_CUSTOM_FIELDS = "manage_custom_fields"


class Denial(str, Enum):
    NOT_MEMBER = "NOT_MEMBER"
    FORBIDDEN = "FORBIDDEN"
    OWNER_ONLY = "OWNER_ONLY"
    LAST_ADMIN = "LAST_ADMIN"
    OWNER_CANNOT_LEAVE = "OWNER_CANNOT_LEAVE"
    CANNOT_REMOVE_OWNER = "CANNOT_REMOVE_OWNER"


MINIMUM_ROLE = {
    Action(action): Role(role) for action, role in get_permission_matrix()["actions"].items()
}


def minimum_role(action: Action) -> Role:
    return MINIMUM_ROLE[action]


def needs_admin_count(action: Action) -> bool:
    return action.value in ADMIN_COUNT_ACTIONS


def evaluate(
    action: Action,
    role: Optional[Role],
    *,
    is_creator: bool = False,
    admin_count: Optional[int] = None,
    target_role: Optional[Role] = None,
    target_is_creator: bool = False,
) -> Optional[Denial]:
    """Return None when the action is allowed, otherwise the reason it is denied.

    admin_count is the number of admin-or-owner memberships in the organization and
    is only consulted for actions listed in ADMIN_COUNT_ACTIONS.
    """
    if role is None:
        return Denial.NOT_MEMBER

    if action.value in CREATOR_ONLY_ACTIONS and not is_creator:
        return Denial.OWNER_ONLY

    if role.rank < minimum_role(action).rank:
        return Denial.FORBIDDEN

    if action == Action.LEAVE_ORG:
        if role.is_admin and admin_count is not None and admin_count <= 1:
            return Denial.LAST_ADMIN
        if is_creator:
            return Denial.OWNER_CANNOT_LEAVE
        return None

    if action in (Action.REMOVE_MEMBER, Action.UPDATE_MEMBER_ROLE) and target_role is not None:
        if target_is_creator:
            return Denial.CANNOT_REMOVE_OWNER
        if target_role.is_admin:
            # Admins can only be acted on by someone who outranks them
            if role.rank <= target_role.rank:
                return Denial.FORBIDDEN
            if admin_count is not None and admin_count <= 1:
                return Denial.LAST_ADMIN

    return None


def describe_access(role: Optional[Role], is_creator: bool) -> dict:
    """Flags the frontend uses to show or hide organization controls."""
    if role is None:
        return {
            "isOwner": False,
            "isAdmin": False,
            "canManageMembers": False,
            "canEditSettings": False,
        }
    return {
        "isOwner": is_creator,
        "isAdmin": role.is_admin or is_creator,
        "canManageMembers": evaluate(Action.REMOVE_MEMBER, role, is_creator=is_creator) is None or is_creator,
        "canEditSettings": evaluate(Action.UPDATE_ORG, role, is_creator=is_creator) is None or is_creator,
    }
