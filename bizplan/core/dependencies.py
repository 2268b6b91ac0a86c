"""
Core dependencies for route protection and permission checking.

Every request resolves a fresh Principal (and, for team routes, a fresh
TeamMembership) and hands them to PermissionChecker. No identity is
resolvable -> 401. Identity resolved but the checker says no -> 403.
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from bizplan.database.supabase_client import get_service_supabase, get_session_supabase, get_supabase
from bizplan.core.permissions import PermissionChecker
from bizplan.core.roles import Principal
from bizplan.modules.auth.service import AuthService
from bizplan.modules.logs.service import LogService
from bizplan.modules.users.service import UserService
from bizplan.modules.teams.service import TeamService
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    """Token lookups only; get_user(jwt=...) leaves the shared client's session untouched"""
    return AuthService(supabase)


def get_session_auth_service(
    session_supabase: Client = Depends(get_session_supabase),
    service_supabase: Client = Depends(get_service_supabase)
) -> AuthService:
    """Sign-up, sign-in and sign-out"""
    return AuthService(session_supabase, service_supabase)


def get_current_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """Extract the bearer token; a missing header is unauthenticated, not forbidden"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_current_principal(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase)
) -> Principal:
    """Resolve token -> Supabase auth user -> user_profiles row -> Principal"""
    user_data = auth_service.get_current_user(token)
    principal = UserService(supabase).get_principal(user_data["id"])
    if principal is None:
        logger.info(f"Authenticated user {user_data['id']} has no usable profile")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User profile not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def get_permission_checker(principal: Principal = Depends(get_current_principal)) -> PermissionChecker:
    """Checker without team context, for system- and plan-level decisions"""
    return PermissionChecker(principal)


def get_team_checker(team_id: str, principal: Principal, supabase: Client) -> PermissionChecker:
    membership = TeamService(supabase).get_membership(team_id, principal.id)
    return PermissionChecker(principal, membership)


def deny(checker: PermissionChecker, action: str, detail: Optional[str] = None) -> HTTPException:
    user_id = checker.principal.id if checker.principal else None
    logger.info(f"Permission denied: user={user_id} action={action}")
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail or f"Insufficient permissions. Required: {action}"
    )


def require_system_permission(action: str):
    """Factory for a dependency enforcing a system-level PermissionChecker predicate, e.g. 'can_manage_users'"""
    def check_permission(
        request: Request,
        checker: PermissionChecker = Depends(get_permission_checker),
        supabase: Client = Depends(get_supabase)
    ) -> PermissionChecker:
        allowed = getattr(checker, action)()
        LogService(supabase).record_access(
            checker.principal,
            action=action,
            resource=f"{request.method} {request.url.path}",
            success=allowed,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        if not allowed:
            raise deny(checker, action)
        return checker
    return check_permission


def require_team_membership(
    team_id: str,
    principal: Principal = Depends(get_current_principal),
    supabase: Client = Depends(get_supabase)
) -> PermissionChecker:
    """Dependency: caller must hold an active membership in the team"""
    checker = get_team_checker(team_id, principal, supabase)
    if checker.membership is None or not checker.membership.is_active or not principal.is_active:
        raise deny(checker, "team_membership", "You must be a member of this team")
    return checker


def require_team_permission(action: str):
    """Factory for a dependency enforcing a team-level PermissionChecker predicate for the team_id path parameter"""
    def check_permission(
        team_id: str,
        principal: Principal = Depends(get_current_principal),
        supabase: Client = Depends(get_supabase)
    ) -> PermissionChecker:
        checker = get_team_checker(team_id, principal, supabase)
        if not getattr(checker, action)():
            raise deny(checker, action)
        return checker
    return check_permission
