"""
Authorization core.

PermissionChecker answers yes/no questions about one principal and, optionally,
that principal's membership in one team. It performs no I/O and never raises:
a missing principal or membership is a normal input that yields False.
"""

from typing import Optional

from bizplan.config.permissions_config import (
    OWNER_ONLY_TEAM_ROLES,
    SYSTEM_ROLE_PERMISSIONS,
    TEAM_ROLE_PERMISSIONS,
)
from bizplan.core.roles import Principal, TeamMembership, TeamRole


class PermissionChecker:
    def __init__(self, principal: Optional[Principal], membership: Optional[TeamMembership] = None):
        self.principal = principal
        self.membership = membership

    # System-level checks

    def _has_system_capability(self, capability: str) -> bool:
        if self.principal is None or not self.principal.is_active:
            return False
        return capability in SYSTEM_ROLE_PERMISSIONS[self.principal.role]

    def can_access_admin(self) -> bool:
        return self._has_system_capability("access_admin")

    def can_manage_users(self) -> bool:
        return self._has_system_capability("manage_users")

    def can_view_logs(self) -> bool:
        return self._has_system_capability("view_logs")

    def can_create_team(self) -> bool:
        return self._has_system_capability("create_teams")

    def can_create_plan(self) -> bool:
        return self._has_system_capability("create_plans")

    # Team-level checks. System role is deliberately not consulted here.

    def _has_team_capability(self, capability: str) -> bool:
        if self.membership is None or not self.membership.is_active:
            return False
        if self.principal is not None and not self.principal.is_active:
            return False
        return capability in TEAM_ROLE_PERMISSIONS[self.membership.role]

    @property
    def is_team_owner(self) -> bool:
        return (
            self.membership is not None
            and self.membership.is_active
            and self.membership.role == TeamRole.OWNER
        )

    def can_invite_to_team(self) -> bool:
        return self._has_team_capability("invite_members")

    def can_manage_team_roles(self) -> bool:
        return self._has_team_capability("manage_roles")

    def can_edit_team_settings(self) -> bool:
        return self._has_team_capability("edit_settings")

    def can_delete_team(self) -> bool:
        return self._has_team_capability("delete_team")

    def can_view_team_activity(self) -> bool:
        return self._has_team_capability("view_activity")

    def can_assign_team_role(self, current_role: Optional[TeamRole], new_role: Optional[TeamRole]) -> bool:
        """Role change guard: only an owner may grant or revoke an owner-only role.

        ``current_role`` is the target member's role today (None for a new
        invitee), ``new_role`` the requested one (None for removal).
        """
        if not self.can_manage_team_roles():
            return False
        touched = {role for role in (current_role, new_role) if role is not None}
        if touched & OWNER_ONLY_TEAM_ROLES:
            return self.is_team_owner
        return True

    def can_remove_team_member(self, target_role: TeamRole) -> bool:
        return self.can_assign_team_role(target_role, None)

    def can_invite_with_role(self, role: TeamRole) -> bool:
        if not self.can_invite_to_team():
            return False
        if role in OWNER_ONLY_TEAM_ROLES:
            return self.is_team_owner
        return True

    # Plan-level checks, independent of team membership

    def _owns_or_administers(self, owner_id: str) -> bool:
        if self.principal is None or not self.principal.is_active:
            return False
        return self.principal.id == owner_id or self.principal.is_administrator

    def can_edit_plan(self, owner_id: str) -> bool:
        return self._owns_or_administers(owner_id)

    def can_delete_plan(self, owner_id: str) -> bool:
        return self._owns_or_administers(owner_id)

    def can_share_plan(self, owner_id: str) -> bool:
        return self._owns_or_administers(owner_id)
