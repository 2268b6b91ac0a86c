import logging
from datetime import datetime, timedelta, timezone
from pydantic import TypeAdapter
from supabase import Client
from bizplan.config.settings import settings
from bizplan.core.roles import MembershipStatus, Principal, TeamMembership, TeamRole
from bizplan.modules.teams.schemas import (
    TeamCreate, TeamUpdate, TeamResponse, TeamSettings, TeamMemberResponse,
    InvitationCreate, InvitationResponse, TeamActivityResponse
)
from typing import List, Optional, Union
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


_TIMESTAMP = TypeAdapter(datetime)


def _parse_timestamp(value: Union[str, datetime]) -> datetime:
    parsed = _TIMESTAMP.validate_python(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TeamService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    # Memberships

    def get_membership(self, team_id: str, user_id: str) -> Optional[TeamMembership]:
        """Team directory lookup: the active membership of user in team, or None"""
        try:
            result = self.supabase.table("team_members")\
                .select("*")\
                .eq("team_id", team_id)\
                .eq("user_id", user_id)\
                .eq("status", MembershipStatus.ACTIVE.value)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error loading membership team={team_id} user={user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load team membership")
        if not result.data:
            return None
        return TeamMembership.from_row(result.data[0])

    def _get_member_row(self, team_id: str, user_id: str) -> Optional[dict]:
        result = self.supabase.table("team_members")\
            .select("*")\
            .eq("team_id", team_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _count_owners(self, team_id: str) -> int:
        result = self.supabase.table("team_members")\
            .select("id")\
            .eq("team_id", team_id)\
            .eq("role", TeamRole.OWNER.value)\
            .eq("status", MembershipStatus.ACTIVE.value)\
            .execute()
        return len(result.data or [])

    # Teams

    def create_team(self, team_data: TeamCreate, owner_id: str) -> TeamResponse:
        """Create a team; the creator becomes its first active owner"""
        team_settings = TeamSettings()
        if team_data.settings:
            team_settings = team_settings.model_copy(update=team_data.settings.model_dump(exclude_none=True))
        try:
            result = self.supabase.table("teams").insert({
                "name": team_data.name,
                "description": team_data.description.strip() if team_data.description else None,
                "owner_id": owner_id,
                "settings": team_settings.model_dump(mode="json"),
                "is_active": True,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create team")
            team = result.data[0]

            self.supabase.table("team_members").insert({
                "team_id": team["id"],
                "user_id": owner_id,
                "role": TeamRole.OWNER.value,
                "status": MembershipStatus.ACTIVE.value,
                "invited_by": owner_id,
                "joined_at": _now().isoformat(),
            }).execute()

            self.log_activity(team["id"], owner_id, "team_created", "team", f'Created team "{team["name"]}"')
            return TeamResponse(**team)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating team: {e}")
            raise HTTPException(status_code=500, detail="Failed to create team")

    def get_team(self, team_id: str) -> TeamResponse:
        try:
            result = self.supabase.table("teams")\
                .select("*")\
                .eq("id", team_id)\
                .eq("is_active", True)\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Team not found")
            return TeamResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching team {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch team")

    def list_user_teams(self, user_id: str) -> List[TeamResponse]:
        """Active teams in which the user holds an active membership"""
        try:
            members_result = self.supabase.table("team_members")\
                .select("team_id")\
                .eq("user_id", user_id)\
                .eq("status", MembershipStatus.ACTIVE.value)\
                .execute()
            if not members_result.data:
                return []
            team_ids = [m["team_id"] for m in members_result.data]
            result = self.supabase.table("teams")\
                .select("*")\
                .in_("id", team_ids)\
                .eq("is_active", True)\
                .order("created_at", desc=True)\
                .execute()
            return [TeamResponse(**team) for team in result.data]
        except Exception as e:
            logger.error(f"Error listing teams for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch teams")

    def update_team(self, team_id: str, team_data: TeamUpdate, updated_by: str) -> TeamResponse:
        """Update name/description and merge settings"""
        current = self.get_team(team_id)
        update_data = {"updated_at": _now().isoformat()}
        if team_data.name:
            update_data["name"] = team_data.name
        if team_data.description is not None:
            update_data["description"] = team_data.description.strip()
        if team_data.settings is not None:
            merged = current.settings.model_copy(update=team_data.settings.model_dump(exclude_none=True))
            update_data["settings"] = merged.model_dump(mode="json")
        try:
            result = self.supabase.table("teams")\
                .update(update_data)\
                .eq("id", team_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Team not found")
            self.log_activity(team_id, updated_by, "settings_updated", "team", "Updated team settings")
            return TeamResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating team {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update team")

    def delete_team(self, team_id: str, deleted_by: str) -> None:
        """Soft delete: the team and all its memberships become inactive"""
        team = self.get_team(team_id)
        try:
            self.supabase.table("teams")\
                .update({"is_active": False, "updated_at": _now().isoformat()})\
                .eq("id", team_id)\
                .execute()
            self.supabase.table("team_members")\
                .update({"status": MembershipStatus.INACTIVE.value})\
                .eq("team_id", team_id)\
                .execute()
            self.log_activity(team_id, deleted_by, "team_deleted", "team", f'Deleted team "{team.name}"')
        except Exception as e:
            logger.error(f"Error deleting team {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete team")

    # Members

    def list_members(self, team_id: str) -> List[TeamMemberResponse]:
        try:
            result = self.supabase.table("team_members")\
                .select("*")\
                .eq("team_id", team_id)\
                .eq("status", MembershipStatus.ACTIVE.value)\
                .execute()
            return [TeamMemberResponse(**member) for member in result.data]
        except Exception as e:
            logger.error(f"Error listing members of {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch team members")

    def update_member_role(self, team_id: str, target: TeamMembership, new_role: TeamRole, updated_by: str) -> TeamMemberResponse:
        if target.role == TeamRole.OWNER and new_role != TeamRole.OWNER and self._count_owners(team_id) <= 1:
            raise HTTPException(status_code=400, detail="A team must keep at least one owner")
        try:
            result = self.supabase.table("team_members")\
                .update({"role": new_role.value})\
                .eq("team_id", team_id)\
                .eq("user_id", target.user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")
            self.log_activity(
                team_id, updated_by, "role_updated", "membership",
                f"Changed member role from {target.role.value} to {new_role.value}"
            )
            return TeamMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating role in {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update member role")

    def remove_member(self, team_id: str, target: TeamMembership, removed_by: str) -> None:
        """Soft removal: membership status becomes inactive"""
        if target.role == TeamRole.OWNER and self._count_owners(team_id) <= 1:
            raise HTTPException(status_code=400, detail="A team must keep at least one owner")
        try:
            self.supabase.table("team_members")\
                .update({"status": MembershipStatus.INACTIVE.value})\
                .eq("team_id", team_id)\
                .eq("user_id", target.user_id)\
                .execute()
            action = "member_left" if target.user_id == removed_by else "member_removed"
            self.log_activity(team_id, removed_by, action, "membership", "Removed team member")
        except Exception as e:
            logger.error(f"Error removing member from {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to remove team member")

    # Invitations

    def invite(self, team_id: str, invitation: InvitationCreate, role: TeamRole, invited_by: str) -> InvitationResponse:
        invited_email = invitation.invited_email.strip().lower()
        profile = self.supabase.table("user_profiles")\
            .select("id")\
            .eq("email", invited_email)\
            .limit(1)\
            .execute()
        if profile.data and self.get_membership(team_id, profile.data[0]["id"]):
            raise HTTPException(status_code=409, detail="User is already a member of this team")

        pending = self.supabase.table("team_invitations")\
            .select("id")\
            .eq("team_id", team_id)\
            .eq("invited_email", invited_email)\
            .eq("status", "pending")\
            .execute()
        if pending.data:
            raise HTTPException(status_code=409, detail="An invitation is already pending for this email")

        try:
            result = self.supabase.table("team_invitations").insert({
                "team_id": team_id,
                "invited_email": invited_email,
                "invited_by": invited_by,
                "role": role.value,
                "status": "pending",
                "message": invitation.message.strip() if invitation.message else None,
                "expires_at": (_now() + timedelta(days=settings.invitation_ttl_days)).isoformat(),
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send invitation")
            self.log_activity(
                team_id, invited_by, "member_invited", "invitation",
                f"Invited {invited_email} as {role.value}"
            )
            return InvitationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error inviting {invited_email} to {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to send invitation")

    def list_team_invitations(self, team_id: str) -> List[InvitationResponse]:
        try:
            result = self.supabase.table("team_invitations")\
                .select("*")\
                .eq("team_id", team_id)\
                .order("created_at", desc=True)\
                .execute()
            return [InvitationResponse(**inv) for inv in result.data]
        except Exception as e:
            logger.error(f"Error listing invitations of {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch team invitations")

    def list_user_invitations(self, email: str) -> List[InvitationResponse]:
        """Pending, unexpired invitations addressed to email"""
        try:
            result = self.supabase.table("team_invitations")\
                .select("*")\
                .eq("invited_email", email.lower())\
                .eq("status", "pending")\
                .execute()
            now = _now()
            invitations = [InvitationResponse(**inv) for inv in result.data]
            return [inv for inv in invitations if _parse_timestamp(inv.expires_at) > now]
        except Exception as e:
            logger.error(f"Error listing invitations for {email}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch invitations")

    def _get_pending_invitation(self, invitation_id: str, principal: Principal) -> dict:
        result = self.supabase.table("team_invitations")\
            .select("*")\
            .eq("id", invitation_id)\
            .limit(1)\
            .execute()
        invitation = result.data[0] if result.data else None
        # Invitations addressed to someone else are reported as missing
        if (
            invitation is None
            or not principal.email
            or invitation["invited_email"] != principal.email.lower()
        ):
            raise HTTPException(status_code=404, detail="Invitation not found")
        if invitation["status"] != "pending":
            raise HTTPException(status_code=409, detail=f"Invitation is already {invitation['status']}")
        if _parse_timestamp(invitation["expires_at"]) <= _now():
            self.supabase.table("team_invitations")\
                .update({"status": "expired"})\
                .eq("id", invitation_id)\
                .execute()
            raise HTTPException(status_code=410, detail="Invitation has expired")
        return invitation

    def accept_invitation(self, invitation_id: str, principal: Principal) -> TeamMemberResponse:
        """Turn a pending invitation into an active membership for the invited principal"""
        invitation = self._get_pending_invitation(invitation_id, principal)
        team_id = invitation["team_id"]
        self.get_team(team_id)

        existing = self._get_member_row(team_id, principal.id)
        if existing and existing["status"] == MembershipStatus.ACTIVE.value:
            raise HTTPException(status_code=409, detail="You are already a member of this team")

        membership_data = {
            "role": invitation["role"],
            "status": MembershipStatus.ACTIVE.value,
            "invited_by": invitation["invited_by"],
            "joined_at": _now().isoformat(),
        }
        try:
            # One row per (team, user): former members are reactivated
            if existing:
                result = self.supabase.table("team_members")\
                    .update(membership_data)\
                    .eq("id", existing["id"])\
                    .execute()
            else:
                result = self.supabase.table("team_members").insert({
                    "team_id": team_id,
                    "user_id": principal.id,
                    **membership_data,
                }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to accept invitation")

            self.supabase.table("team_invitations")\
                .update({"status": "accepted"})\
                .eq("id", invitation_id)\
                .execute()
            self.log_activity(
                team_id, principal.id, "member_joined", "membership",
                f"Joined team as {invitation['role']}"
            )
            return TeamMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error accepting invitation {invitation_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to accept invitation")

    def decline_invitation(self, invitation_id: str, principal: Principal) -> None:
        invitation = self._get_pending_invitation(invitation_id, principal)
        try:
            self.supabase.table("team_invitations")\
                .update({"status": "declined"})\
                .eq("id", invitation_id)\
                .execute()
            self.log_activity(
                invitation["team_id"], principal.id, "invitation_declined", "invitation",
                f"{invitation['invited_email']} declined the invitation"
            )
        except Exception as e:
            logger.error(f"Error declining invitation {invitation_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to decline invitation")

    # Activity

    def log_activity(self, team_id: str, user_id: str, action: str, resource: str, details: Optional[str] = None) -> None:
        """Append to the team activity feed. A failed write is logged, never raised."""
        try:
            self.supabase.table("team_activities").insert({
                "team_id": team_id,
                "user_id": user_id,
                "action": action,
                "resource": resource,
                "details": details,
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to record team activity {action} for {team_id}: {e}")

    def list_activity(self, team_id: str, limit: int = 50) -> List[TeamActivityResponse]:
        try:
            result = self.supabase.table("team_activities")\
                .select("*")\
                .eq("team_id", team_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
            return [TeamActivityResponse(**activity) for activity in result.data]
        except Exception as e:
            logger.error(f"Error fetching activity of {team_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch team activity")
