"""
Principal and team membership types consumed by the permission checker.

System role and team role are separate enumerations on purpose: an
administrator holds no team role, and a team owner holds no system role.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class SystemRole(str, Enum):
    ADMINISTRATOR = "administrator"
    REGULAR = "regular"


class TeamRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Principal:
    id: str
    role: SystemRole = SystemRole.REGULAR
    is_active: bool = True
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_administrator(self) -> bool:
        return self.role == SystemRole.ADMINISTRATOR

    @classmethod
    def from_profile(cls, row: Dict[str, Any]) -> "Principal":
        """Build from a user_profiles row. Unknown role strings raise ValueError."""
        return cls(
            id=row["id"],
            role=SystemRole(row.get("role") or SystemRole.REGULAR.value),
            is_active=bool(row.get("is_active", True)),
            email=row.get("email"),
            name=row.get("full_name"),
        )


@dataclass(frozen=True)
class TeamMembership:
    team_id: str
    user_id: str
    role: TeamRole
    status: MembershipStatus = MembershipStatus.ACTIVE
    id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TeamMembership":
        return cls(
            id=row.get("id"),
            team_id=row["team_id"],
            user_id=row["user_id"],
            role=TeamRole(row["role"]),
            status=MembershipStatus(row.get("status") or MembershipStatus.ACTIVE.value),
        )
