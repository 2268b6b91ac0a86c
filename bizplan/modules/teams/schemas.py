from pydantic import BaseModel, EmailStr, StringConstraints
from typing import Annotated, Optional, Literal
from datetime import datetime
from bizplan.core.roles import TeamRole, MembershipStatus

TeamName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]


class TeamSettings(BaseModel):
    visibility: Literal["private", "public", "organization"] = "private"
    allow_member_invites: bool = False
    require_approval_for_joining: bool = True
    default_member_role: TeamRole = TeamRole.MEMBER
    plan_sharing_enabled: bool = True
    activity_logging_enabled: bool = True


class TeamSettingsUpdate(BaseModel):
    visibility: Optional[Literal["private", "public", "organization"]] = None
    allow_member_invites: Optional[bool] = None
    require_approval_for_joining: Optional[bool] = None
    default_member_role: Optional[TeamRole] = None
    plan_sharing_enabled: Optional[bool] = None
    activity_logging_enabled: Optional[bool] = None


class TeamCreate(BaseModel):
    name: TeamName
    description: Optional[str] = None
    settings: Optional[TeamSettingsUpdate] = None


class TeamUpdate(BaseModel):
    name: Optional[TeamName] = None
    description: Optional[str] = None
    settings: Optional[TeamSettingsUpdate] = None


class TeamResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    settings: TeamSettings
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamMemberResponse(BaseModel):
    id: str
    team_id: str
    user_id: str
    role: TeamRole
    status: MembershipStatus
    invited_by: Optional[str] = None
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberRoleUpdate(BaseModel):
    role: TeamRole


class InvitationCreate(BaseModel):
    invited_email: EmailStr
    role: Optional[TeamRole] = None  # team's default_member_role when omitted
    message: Optional[str] = None


class InvitationResponse(BaseModel):
    id: str
    team_id: str
    invited_email: str
    invited_by: str
    role: TeamRole
    status: Literal["pending", "accepted", "declined", "expired"]
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: datetime

    class Config:
        from_attributes = True


class TeamActivityResponse(BaseModel):
    id: str
    team_id: str
    user_id: str
    action: str
    resource: str
    details: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
