"""
Permissions and Roles Configuration
Defines which capabilities each system role and each team role carries.
The two tables are independent: a system role never grants team capabilities
and a team role never grants system capabilities.
"""

from bizplan.core.roles import SystemRole, TeamRole

# System-wide capabilities, granted by SystemRole
SYSTEM_CAPABILITIES = {
    "access_admin": "Open the admin console",
    "manage_users": "Create, update, deactivate and delete user accounts",
    "view_logs": "Read, export and resolve system logs",
    "create_teams": "Create new teams",
    "create_plans": "Create business plans",
}

SYSTEM_ROLE_PERMISSIONS = {
    SystemRole.ADMINISTRATOR: frozenset(SYSTEM_CAPABILITIES),
    SystemRole.REGULAR: frozenset({"create_teams", "create_plans"}),
}

# Team-scoped capabilities, granted by TeamRole within one team
TEAM_CAPABILITIES = {
    "invite_members": "Invite people to the team",
    "manage_roles": "Change the team role of members",
    "edit_settings": "Edit team name, description and settings",
    "delete_team": "Delete the team",
    "view_activity": "Read the team activity feed",
}

TEAM_ROLE_PERMISSIONS = {
    TeamRole.OWNER: frozenset(TEAM_CAPABILITIES),
    TeamRole.ADMIN: frozenset({"invite_members", "manage_roles", "edit_settings", "view_activity"}),
    TeamRole.MEMBER: frozenset(),
    TeamRole.VIEWER: frozenset(),
}

# Roles that only a team owner may grant or revoke
OWNER_ONLY_TEAM_ROLES = frozenset({TeamRole.OWNER})


def get_permission_matrix():
    """
    Returns a dictionary describing both role tables, for clients that render UI from it.
    Format: {
        "system": {
            "capabilities": [{"name": "system:access_admin", "description": "..."}, ...],
            "roles": {"administrator": ["system:access_admin", ...], "regular": ["system:create_plans", "system:create_teams"]}
        },
        "team": {...same shape, "team:" prefix...}
    }
    """
    def render(prefix, capabilities, role_table):
        return {
            "capabilities": [
                {"name": f"{prefix}:{name}", "description": description}
                for name, description in capabilities.items()
            ],
            "roles": {
                role.value: sorted(f"{prefix}:{name}" for name in granted)
                for role, granted in role_table.items()
            },
        }

    return {
        "system": render("system", SYSTEM_CAPABILITIES, SYSTEM_ROLE_PERMISSIONS),
        "team": render("team", TEAM_CAPABILITIES, TEAM_ROLE_PERMISSIONS),
    }


# Export the matrix for the /auth/me endpoint
PERMISSION_MATRIX = get_permission_matrix()
