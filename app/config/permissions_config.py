"""
Permissions Configuration
Static matrix of organization-scoped actions and the minimum membership role
required for each. Consumed by app.core.permissions, and exposed read-only to the
frontend through GET /api/auth/me so it can hide controls the user cannot use.
"""

# Membership roles, lowest to highest
ROLES = ["member", "admin", "owner"]

# Minimum role per action, grouped by the resource it touches
MODULES = {
    "organizations": {
        "view_org": "member",
        "view_members": "member",
        "view_stats": "member",
        "leave_org": "member",
        "invite_member": "admin",
        "update_org": "admin",
        "remove_member": "admin",
        "update_member_role": "admin",
        "regenerate_invite_code": "owner",
        "delete_org": "owner",
    },
    "projects": {
        "view_project": "member",
        "create_project": "member",
        "update_project": "member",
        "archive_project": "member",
        "manage_project_members": "admin",
        "delete_project": "admin",
    },
    "boards": {
        "create_board": "member",
        "update_board": "member",
        "delete_board": "admin",
        "manage_custom_fields": "admin",
    },
}

# Actions that only the organization's creator (created_by) may perform,
# independently of the role column on the membership row
CREATOR_ONLY_ACTIONS = {"delete_org", "regenerate_invite_code"}

# Actions that must re-check how many admins/owners would remain
ADMIN_COUNT_ACTIONS = {"leave_org", "remove_member", "update_member_role"}


def get_permission_matrix():
    """
    Returns the flattened action table
    Format: {
        "roles": ["member", "admin", "owner"],
        "actions": {"view_org": "member", ...},
        "creator_only": ["delete_org", ...]
    }
    """
    actions = {}
    for module_actions in MODULES.values():
        actions.update(module_actions)

    return {
        "roles": list(ROLES),
        "actions": actions,
        "creator_only": sorted(CREATOR_ONLY_ACTIONS),
    }


def get_role_actions(role: str):
    """Return every action a role is allowed by rank alone (creator-only actions excluded)."""
    rank = ROLES.index(role)
    return sorted(
        action
        for action, minimum in get_permission_matrix()["actions"].items()
        if ROLES.index(minimum) <= rank and action not in CREATOR_ONLY_ACTIONS
    )


PERMISSION_MATRIX = get_permission_matrix()

# System project roles (roles.organization_id is null), shared by every organization.
# Project creation assigns "Admin" to the creator.
PROJECT_ROLES = [
    {"name": "Admin", "description": "Manage the project, its members and boards"},
    {"name": "Member", "description": "Work on boards and tasks"},
    {"name": "Viewer", "description": "Read-only access to the project"},
]
