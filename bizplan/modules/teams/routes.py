from fastapi import APIRouter, Depends, HTTPException, Query, status
from bizplan.database.supabase_client import get_supabase
from bizplan.modules.teams.schemas import (
    TeamCreate, TeamUpdate, TeamResponse, TeamMemberResponse, MemberRoleUpdate,
    InvitationCreate, InvitationResponse, TeamActivityResponse
)
from bizplan.modules.teams.service import TeamService
from bizplan.core.dependencies import (
    deny, get_current_principal, get_permission_checker, get_team_checker,
    require_team_membership, require_team_permission
)
from bizplan.core.permissions import PermissionChecker
from bizplan.core.roles import Principal
from supabase import Client
from typing import List

router = APIRouter(prefix="/teams", tags=["teams"])
invitations_router = APIRouter(prefix="/invitations", tags=["invitations"])


def get_team_service(supabase: Client = Depends(get_supabase)) -> TeamService:
    return TeamService(supabase)


@router.get("", response_model=List[TeamResponse])
async def list_teams(
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service)
):
    """Teams the caller is an active member of"""
    return service.list_user_teams(principal.id)


@router.post("", response_model=TeamResponse, status_code=201)
async def create_team(
    team_data: TeamCreate,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: TeamService = Depends(get_team_service)
):
    """Create a team; the caller becomes its owner"""
    if not checker.can_create_team():
        raise deny(checker, "can_create_team")
    return service.create_team(team_data, checker.principal.id)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: str,
    checker: PermissionChecker = Depends(require_team_membership),
    service: TeamService = Depends(get_team_service)
):
    """Get team (active members only)"""
    return service.get_team(team_id)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    team_data: TeamUpdate,
    checker: PermissionChecker = Depends(require_team_permission("can_edit_team_settings")),
    service: TeamService = Depends(get_team_service)
):
    """Update team name, description or settings (owner/admin)"""
    return service.update_team(team_id, team_data, checker.principal.id)


@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: str,
    checker: PermissionChecker = Depends(require_team_permission("can_delete_team")),
    service: TeamService = Depends(get_team_service)
):
    """Delete team (owner only)"""
    service.delete_team(team_id, checker.principal.id)
    return None


@router.get("/{team_id}/members", response_model=List[TeamMemberResponse])
async def list_members(
    team_id: str,
    checker: PermissionChecker = Depends(require_team_membership),
    service: TeamService = Depends(get_team_service)
):
    return service.list_members(team_id)


@router.patch("/{team_id}/members/{user_id}", response_model=TeamMemberResponse)
async def update_member_role(
    team_id: str,
    user_id: str,
    body: MemberRoleUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Change a member's team role. Granting or revoking owner requires an owner."""
    checker = get_team_checker(team_id, principal, supabase)
    if not checker.can_manage_team_roles():
        raise deny(checker, "can_manage_team_roles")
    target = service.get_membership(team_id, user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    if not checker.can_assign_team_role(target.role, body.role):
        raise deny(checker, "can_assign_team_role", "Only a team owner can grant or revoke the owner role")
    return service.update_member_role(team_id, target, body.role, principal.id)


@router.delete("/{team_id}/members/{user_id}", status_code=204)
async def remove_member(
    team_id: str,
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a member, or leave the team when user_id is the caller"""
    checker = get_team_checker(team_id, principal, supabase)
    if checker.membership is None or not principal.is_active:
        raise deny(checker, "team_membership", "You must be an active member of this team")
    if user_id == principal.id:
        service.remove_member(team_id, checker.membership, principal.id)
        return None
    target = service.get_membership(team_id, user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    if not checker.can_remove_team_member(target.role):
        raise deny(checker, "can_remove_team_member")
    service.remove_member(team_id, target, principal.id)
    return None


@router.get("/{team_id}/invitations", response_model=List[InvitationResponse])
async def list_team_invitations(
    team_id: str,
    checker: PermissionChecker = Depends(require_team_permission("can_invite_to_team")),
    service: TeamService = Depends(get_team_service)
):
    return service.list_team_invitations(team_id)


@router.post("/{team_id}/invitations", response_model=InvitationResponse, status_code=201)
async def invite_to_team(
    team_id: str,
    invitation: InvitationCreate,
    checker: PermissionChecker = Depends(require_team_permission("can_invite_to_team")),
    service: TeamService = Depends(get_team_service)
):
    """Invite someone by email (owner/admin). Inviting as owner requires an owner."""
    role = invitation.role or service.get_team(team_id).settings.default_member_role
    if not checker.can_invite_with_role(role):
        raise deny(checker, "can_invite_with_role", "Only a team owner can invite new owners")
    return service.invite(team_id, invitation, role, checker.principal.id)


@router.get("/{team_id}/activity", response_model=List[TeamActivityResponse])
async def list_team_activity(
    team_id: str,
    limit: int = Query(50, ge=1, le=200),
    checker: PermissionChecker = Depends(require_team_permission("can_view_team_activity")),
    service: TeamService = Depends(get_team_service)
):
    return service.list_activity(team_id, limit)


@invitations_router.get("", response_model=List[InvitationResponse])
async def list_my_invitations(
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service)
):
    """Pending invitations addressed to the caller's email"""
    if not principal.email:
        return []
    return service.list_user_invitations(principal.email)


@invitations_router.post("/{invitation_id}/accept", response_model=TeamMemberResponse)
async def accept_invitation(
    invitation_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service)
):
    if not principal.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return service.accept_invitation(invitation_id, principal)


@invitations_router.post("/{invitation_id}/decline", status_code=204)
async def decline_invitation(
    invitation_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service)
):
    service.decline_invitation(invitation_id, principal)
    return None
