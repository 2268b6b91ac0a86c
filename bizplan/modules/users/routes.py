from fastapi import APIRouter, Depends, Query
from bizplan.database.supabase_client import get_supabase, get_service_supabase
from bizplan.modules.users.schemas import (
    UserCreate, UserUpdate, UserResponse, UserCreateResponse,
    BulkUserAction, BulkUserActionResponse, PasswordResetResponse, ProfileUpdate
)
from bizplan.modules.users.service import UserService
from bizplan.modules.logs.service import LogService
from bizplan.modules.logs.schemas import LogCategory, LogLevel
from bizplan.core.dependencies import deny, get_permission_checker, require_system_permission
from bizplan.core.permissions import PermissionChecker
from bizplan.core.roles import SystemRole
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/admin/users", tags=["admin-users"])
profile_router = APIRouter(prefix="/users", tags=["users"])

manage_users = require_system_permission("can_manage_users")


def get_user_service(
    supabase: Client = Depends(get_supabase),
    service_client: Client = Depends(get_service_supabase)
) -> UserService:
    return UserService(supabase, auth_admin_client=service_client)


def get_log_service(supabase: Client = Depends(get_supabase)) -> LogService:
    return LogService(supabase)


@router.get("")
async def list_users(
    stats: bool = False,
    search: Optional[str] = None,
    role: Optional[SystemRole] = None,
    is_active: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    checker: PermissionChecker = Depends(manage_users),
    service: UserService = Depends(get_user_service)
):
    """List users (administrators only). With stats=true returns account counts instead."""
    if stats:
        return service.get_user_stats()
    return service.list_users(limit=limit, offset=offset, search=search, role=role, is_active=is_active)


@router.post("", response_model=UserCreateResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    checker: PermissionChecker = Depends(manage_users),
    service: UserService = Depends(get_user_service),
    log_service: LogService = Depends(get_log_service)
):
    created = service.create_user(user_data)
    log_service.record(
        LogLevel.INFO, LogCategory.USER, f"User account created: {created.user.email}",
        user=checker.principal, details=f"role={created.user.role.value}"
    )
    return created


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    checker: PermissionChecker = Depends(manage_users),
    service: UserService = Depends(get_user_service)
):
    return service.get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    checker: PermissionChecker = Depends(manage_users),
    service: UserService = Depends(get_user_service),
    log_service: LogService = Depends(get_log_service)
):
    """Update profile, system role or active flag. Administrators cannot demote or deactivate themselves."""
    updated = service.update_user(user_id, user_data, acting_user_id=checker.principal.id)
    changed = ", ".join(sorted(user_data.model_dump(exclude_none=True)))
    log_service.record(
        LogLevel.INFO, LogCategory.USER, f"User account updated: {updated.email}",
        user=checker.principal, details=f"fields={changed}"
    )
    return updated


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    checker: PermissionChecker = Depends(manage_users),
    service: UserService = Depends(get_user_service),
    log_service: LogService = Depends(get_log_service)
):
    service.delete_user(user_id, acting_user_id=checker.principal.id)
    log_service.record(
        LogLevel.WARN, LogCategory.USER, "User account deleted",
        user=checker.principal, details=f"user_id={user_id}"
    )
    return None


@router.post("/bulk", response_model=BulkUserActionResponse)
async def bulk_action(
    request: BulkUserAction,
    checker: PermissionChecker = Depends(manage_users),
    service: UserService = Depends(get_user_service),
    log_service: LogService = Depends(get_log_service)
):
    """Activate or deactivate several users at once"""
    updated_count = service.bulk_update(request.user_ids, request.action, acting_user_id=checker.principal.id)
    log_service.record(
        LogLevel.INFO, LogCategory.USER, f"Bulk {request.action} of {updated_count} users",
        user=checker.principal
    )
    return BulkUserActionResponse(
        message=f"Successfully {request.action}d {updated_count} user{'' if updated_count == 1 else 's'}",
        updated_count=updated_count,
    )


@router.post("/{user_id}/reset-password", response_model=PasswordResetResponse)
async def reset_password(
    user_id: str,
    checker: PermissionChecker = Depends(manage_users),
    service: UserService = Depends(get_user_service),
    log_service: LogService = Depends(get_log_service)
):
    temporary_password = service.reset_password(user_id)
    log_service.record(
        LogLevel.WARN, LogCategory.SECURITY, "Password reset by administrator",
        user=checker.principal, details=f"user_id={user_id}"
    )
    return PasswordResetResponse(message="Password reset successfully", temporary_password=temporary_password)


def _active_principal_id(checker: PermissionChecker) -> str:
    if not checker.principal.is_active:
        raise deny(checker, "own_profile", "Your account is deactivated")
    return checker.principal.id


@profile_router.get("/me", response_model=UserResponse)
async def get_own_profile(
    checker: PermissionChecker = Depends(get_permission_checker),
    service: UserService = Depends(get_user_service)
):
    """The caller's own profile"""
    return service.get_user(_active_principal_id(checker))


@profile_router.put("/me", response_model=UserResponse)
async def update_own_profile(
    profile_data: ProfileUpdate,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: UserService = Depends(get_user_service)
):
    """Update the caller's name, company or department. Role and active flag stay admin-only."""
    return service.update_profile(_active_principal_id(checker), profile_data)
