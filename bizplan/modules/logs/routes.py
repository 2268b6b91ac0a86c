from fastapi import APIRouter, Depends, HTTPException, Query, Response
from bizplan.database.supabase_client import get_supabase
from bizplan.modules.logs.schemas import (
    LogCategory, LogExportRequest, LogFilters, LogLevel, ErrorLogResponse, AccessLogListResponse
)
from bizplan.modules.logs.service import LogService
from bizplan.core.dependencies import require_system_permission
from bizplan.core.permissions import PermissionChecker
from supabase import Client
from datetime import datetime
from typing import List, Optional

router = APIRouter(prefix="/admin/logs", tags=["admin-logs"])


def get_log_service(supabase: Client = Depends(get_supabase)) -> LogService:
    return LogService(supabase)


def _split_enum(raw: Optional[str], enum_cls, label: str):
    if not raw:
        return None
    try:
        return [enum_cls(value.strip().upper()) for value in raw.split(",") if value.strip()]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label}: {raw}")


@router.get("")
async def list_logs(
    stats: bool = False,
    search: Optional[str] = None,
    levels: Optional[str] = Query(None, description="Comma separated, e.g. ERROR,CRITICAL"),
    categories: Optional[str] = Query(None, description="Comma separated, e.g. USER,SECURITY"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    checker: PermissionChecker = Depends(require_system_permission("can_view_logs")),
    service: LogService = Depends(get_log_service)
):
    """Paginated, filtered system logs. With stats=true returns aggregate counts instead."""
    if stats:
        return service.get_stats()
    filters = LogFilters(
        search=search,
        levels=_split_enum(levels, LogLevel, "levels"),
        categories=_split_enum(categories, LogCategory, "categories"),
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
    )
    return service.list_logs(filters, page=page, limit=limit)


@router.post("/export")
async def export_logs(
    request: LogExportRequest,
    checker: PermissionChecker = Depends(require_system_permission("can_view_logs")),
    service: LogService = Depends(get_log_service)
):
    """Download filtered logs as csv, json or txt"""
    content, media_type, filename = service.export_logs(request.format, request.filters, request.limit)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/access", response_model=AccessLogListResponse)
async def list_access_logs(
    limit: int = Query(100, ge=1, le=500),
    success: Optional[bool] = None,
    checker: PermissionChecker = Depends(require_system_permission("can_view_logs")),
    service: LogService = Depends(get_log_service)
):
    """Admin console access attempts, newest first"""
    logs = service.list_access_logs(limit=limit, success=success)
    return AccessLogListResponse(logs=logs, total=len(logs))


@router.get("/errors", response_model=List[ErrorLogResponse])
async def list_errors(
    resolved: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=500),
    checker: PermissionChecker = Depends(require_system_permission("can_view_logs")),
    service: LogService = Depends(get_log_service)
):
    return service.list_errors(resolved=resolved, limit=limit)


@router.post("/errors/{error_id}/resolve", response_model=ErrorLogResponse)
async def resolve_error(
    error_id: str,
    checker: PermissionChecker = Depends(require_system_permission("can_view_logs")),
    service: LogService = Depends(get_log_service)
):
    """Mark an error as resolved by the calling administrator"""
    principal = checker.principal
    return service.resolve_error(error_id, principal.email or principal.id)
