from pydantic import BaseModel, EmailStr, StringConstraints
from typing import Annotated, Optional
from datetime import datetime

PlanName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class PlanCreate(BaseModel):
    plan_name: PlanName


class PlanRename(BaseModel):
    plan_name: PlanName


class PlanResponse(BaseModel):
    id: str
    plan_name: str
    owner_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlanPermissions(BaseModel):
    can_edit: bool
    can_delete: bool
    can_share: bool


class PlanShareCreate(BaseModel):
    email: EmailStr


class PlanShareResponse(BaseModel):
    id: str
    plan_id: str
    shared_with_email: str
    shared_by: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
