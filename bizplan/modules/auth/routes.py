from fastapi import APIRouter, Depends, Request
from bizplan.config.settings import settings
from bizplan.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, MeResponse
)
from bizplan.modules.auth.service import AuthService
from bizplan.core.dependencies import get_current_token, get_permission_checker, get_session_auth_service
from bizplan.core.permissions import PermissionChecker
from bizplan.core.rate_limit import limiter
from bizplan.config.permissions_config import PERMISSION_MATRIX, SYSTEM_ROLE_PERMISSIONS

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_session_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,
    login_data: LoginRequest,
    service: AuthService = Depends(get_session_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_session_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_me(
    checker: PermissionChecker = Depends(get_permission_checker)
):
    """Current principal and the system permissions the frontend uses to show or hide admin UI"""
    principal = checker.principal
    granted = SYSTEM_ROLE_PERMISSIONS[principal.role] if principal.is_active else frozenset()
    return MeResponse(
        id=principal.id,
        email=principal.email,
        full_name=principal.name,
        role=principal.role.value,
        is_active=principal.is_active,
        permissions=sorted(f"system:{name}" for name in granted),
        system_permissions={
            "can_access_admin": checker.can_access_admin(),
            "can_manage_users": checker.can_manage_users(),
            "can_view_logs": checker.can_view_logs(),
            "can_create_team": checker.can_create_team(),
            "can_create_plan": checker.can_create_plan(),
        },
    )


@router.get("/permission-matrix")
async def permission_matrix(
    checker: PermissionChecker = Depends(get_permission_checker)
):
    """Which capabilities every system role and team role carries"""
    return PERMISSION_MATRIX
