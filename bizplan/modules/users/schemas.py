from pydantic import BaseModel, EmailStr, StringConstraints
from typing import Annotated, Optional, List, Literal
from datetime import datetime
from bizplan.core.roles import SystemRole


class UserCreate(BaseModel):
    email: EmailStr
    full_name: str
    role: SystemRole = SystemRole.REGULAR
    company: Optional[str] = None
    department: Optional[str] = None
    password: Optional[str] = None  # generated when omitted


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    company: Optional[str] = None
    department: Optional[str] = None
    role: Optional[SystemRole] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    company: Optional[str] = None
    department: Optional[str] = None
    role: SystemRole
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreateResponse(BaseModel):
    user: UserResponse
    temporary_password: Optional[str] = None


class UserStats(BaseModel):
    total: int
    active: int
    inactive: int
    admins: int
    regular: int


class BulkUserAction(BaseModel):
    action: Literal["activate", "deactivate"]
    user_ids: List[str]


class BulkUserActionResponse(BaseModel):
    message: str
    updated_count: int


class PasswordResetResponse(BaseModel):
    message: str
    temporary_password: str


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile"""
    full_name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]] = None
    company: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]] = None
    department: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]] = None

    class Config:
        extra = "forbid"
