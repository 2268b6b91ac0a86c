from fastapi import APIRouter, Depends
from bizplan.database.supabase_client import get_supabase
from bizplan.modules.plans.schemas import (
    PlanCreate, PlanRename, PlanResponse, PlanPermissions, PlanShareCreate, PlanShareResponse
)
from bizplan.modules.plans.service import PlanService
from bizplan.modules.logs.service import LogService
from bizplan.modules.logs.schemas import LogCategory, LogLevel
from bizplan.core.dependencies import deny, get_permission_checker
from bizplan.core.permissions import PermissionChecker
from supabase import Client
from typing import List

router = APIRouter(prefix="/business-plans", tags=["business-plans"])


def get_plan_service(supabase: Client = Depends(get_supabase)) -> PlanService:
    return PlanService(supabase)


def get_log_service(supabase: Client = Depends(get_supabase)) -> LogService:
    return LogService(supabase)


@router.get("", response_model=List[PlanResponse])
async def list_plans(
    checker: PermissionChecker = Depends(get_permission_checker),
    service: PlanService = Depends(get_plan_service)
):
    """Plans owned by the caller"""
    return service.list_plans(checker.principal.id)


@router.post("", response_model=PlanResponse, status_code=201)
async def create_plan(
    plan_data: PlanCreate,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: PlanService = Depends(get_plan_service)
):
    if not checker.can_create_plan():
        raise deny(checker, "can_create_plan")
    return service.create_plan(plan_data.plan_name, checker.principal.id)


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: str,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: PlanService = Depends(get_plan_service)
):
    """Owner, administrators and people the plan is shared with may read it"""
    plan = service.get_plan(plan_id)
    if checker.can_edit_plan(plan.owner_id):
        return plan
    principal = checker.principal
    if principal.is_active and principal.email and service.is_shared_with(plan_id, principal.email):
        return plan
    raise deny(checker, "view_plan", "You do not have access to this plan")


@router.get("/{plan_id}/permissions", response_model=PlanPermissions)
async def get_plan_permissions(
    plan_id: str,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: PlanService = Depends(get_plan_service)
):
    """What the caller may do with this plan, for UI rendering"""
    plan = service.get_plan(plan_id)
    return PlanPermissions(
        can_edit=checker.can_edit_plan(plan.owner_id),
        can_delete=checker.can_delete_plan(plan.owner_id),
        can_share=checker.can_share_plan(plan.owner_id),
    )


@router.patch("/{plan_id}", response_model=PlanResponse)
async def rename_plan(
    plan_id: str,
    body: PlanRename,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: PlanService = Depends(get_plan_service)
):
    plan = service.get_plan(plan_id)
    if not checker.can_edit_plan(plan.owner_id):
        raise deny(checker, "can_edit_plan")
    return service.rename_plan(plan_id, body.plan_name)


@router.delete("/{plan_id}", status_code=204)
async def delete_plan(
    plan_id: str,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: PlanService = Depends(get_plan_service),
    log_service: LogService = Depends(get_log_service)
):
    plan = service.get_plan(plan_id)
    if not checker.can_delete_plan(plan.owner_id):
        raise deny(checker, "can_delete_plan")
    service.delete_plan(plan_id)
    log_service.record(
        LogLevel.INFO, LogCategory.BUSINESS, f'Plan "{plan.plan_name}" deleted',
        user=checker.principal, details=f"plan_id={plan_id} owner_id={plan.owner_id}"
    )
    return None


@router.post("/{plan_id}/share", response_model=PlanShareResponse, status_code=201)
async def share_plan(
    plan_id: str,
    body: PlanShareCreate,
    checker: PermissionChecker = Depends(get_permission_checker),
    service: PlanService = Depends(get_plan_service)
):
    plan = service.get_plan(plan_id)
    if not checker.can_share_plan(plan.owner_id):
        raise deny(checker, "can_share_plan")
    return service.share_plan(plan_id, body.email, checker.principal.id)
