import csv
import io
import json
import logging
import math
from datetime import datetime, timedelta, timezone
from pydantic import TypeAdapter
from supabase import Client
from bizplan.config.settings import settings
from bizplan.core.roles import Principal
from bizplan.modules.logs.schemas import (
    LogCategory, LogFilters, LogLevel, LogListResponse, LogStats, Pagination,
    SystemLogResponse, ErrorLogResponse, AccessLogResponse
)
from typing import List, Optional, Tuple
from fastapi import HTTPException

logger = logging.getLogger(__name__)

_TIMESTAMP = TypeAdapter(datetime)

EXPORT_COLUMNS = ["created_at", "level", "category", "message", "details", "user_id", "user_email"]
EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
    "txt": "text/plain",
}


class LogService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def record(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        user: Optional[Principal] = None,
        details: Optional[str] = None
    ) -> None:
        """Append an audit entry to system_logs. A failed write is logged, never raised."""
        try:
            self.supabase.table("system_logs").insert({
                "level": level.value,
                "category": category.value,
                "message": message,
                "details": details,
                "user_id": user.id if user else None,
                "user_email": user.email if user else None,
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to write system log '{message}': {e}")

    def _filtered_query(self, filters: Optional[LogFilters], count: Optional[str] = None):
        query = self.supabase.table("system_logs").select("*", count=count)
        if filters is None:
            return query
        if filters.search:
            query = query.ilike("message", f"%{filters.search}%")
        if filters.levels:
            query = query.in_("level", [level.value for level in filters.levels])
        if filters.categories:
            query = query.in_("category", [category.value for category in filters.categories])
        if filters.start_date:
            query = query.gte("created_at", filters.start_date.isoformat())
        if filters.end_date:
            query = query.lte("created_at", filters.end_date.isoformat())
        if filters.user_id:
            query = query.eq("user_id", filters.user_id)
        return query

    def list_logs(self, filters: LogFilters, page: int = 1, limit: int = 50) -> LogListResponse:
        """Filtered system logs, newest first, one page at a time"""
        offset = (page - 1) * limit
        try:
            result = self._filtered_query(filters, count="exact")\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            total = result.count if result.count is not None else len(result.data)
            return LogListResponse(
                logs=[SystemLogResponse(**log) for log in result.data],
                pagination=Pagination(
                    page=page,
                    limit=limit,
                    total=total,
                    total_pages=math.ceil(total / limit) if limit else 0,
                ),
            )
        except Exception as e:
            logger.error(f"Error fetching logs: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch logs")

    def get_stats(self) -> LogStats:
        """Counts per level and category, plus entries from the last 24 hours"""
        try:
            result = self.supabase.table("system_logs")\
                .select("level, category, created_at")\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching log stats: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch log stats")

        levels = {level.value: 0 for level in LogLevel}
        categories = {}
        cutoff = datetime.now(timezone.utc) - timedelta(hours=24)
        last_24_hours = 0
        for row in result.data or []:
            levels[row["level"]] = levels.get(row["level"], 0) + 1
            categories[row["category"]] = categories.get(row["category"], 0) + 1
            created_at = _TIMESTAMP.validate_python(row["created_at"])
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            if created_at > cutoff:
                last_24_hours += 1

        return LogStats(
            total=len(result.data or []),
            debug=levels[LogLevel.DEBUG.value],
            info=levels[LogLevel.INFO.value],
            warn=levels[LogLevel.WARN.value],
            error=levels[LogLevel.ERROR.value],
            critical=levels[LogLevel.CRITICAL.value],
            categories=categories,
            last_24_hours=last_24_hours,
        )

    def export_logs(self, export_format: str, filters: Optional[LogFilters] = None, limit: Optional[int] = None) -> Tuple[str, str, str]:
        """Render filtered logs for download. Returns (content, media_type, filename)."""
        limit = min(limit or settings.log_export_max_rows, settings.log_export_max_rows)
        try:
            result = self._filtered_query(filters)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
        except Exception as e:
            logger.error(f"Error exporting logs: {e}")
            raise HTTPException(status_code=500, detail="Failed to export logs")

        rows = [{column: row.get(column) for column in EXPORT_COLUMNS} for row in result.data or []]
        if export_format == "json":
            content = json.dumps(rows, indent=2, default=str)
        elif export_format == "csv":
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)
            content = buffer.getvalue()
        elif export_format == "txt":
            content = "\n".join(
                f"[{row['created_at']}] {row['level']} {row['category']}: {row['message']}"
                + (f" ({row['user_email']})" if row.get("user_email") else "")
                for row in rows
            )
        else:
            raise HTTPException(status_code=400, detail="Invalid export format")

        filename = f"system-logs-{datetime.now(timezone.utc).date().isoformat()}.{export_format}"
        return content, EXPORT_MEDIA_TYPES[export_format], filename

    def list_errors(self, resolved: Optional[bool] = None, limit: int = 100) -> List[ErrorLogResponse]:
        try:
            query = self.supabase.table("error_logs").select("*")
            if resolved is not None:
                query = query.eq("resolved", resolved)
            result = query.order("created_at", desc=True).limit(limit).execute()
            return [ErrorLogResponse(**error) for error in result.data]
        except Exception as e:
            logger.error(f"Error fetching error logs: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch error logs")

    def resolve_error(self, error_id: str, resolved_by: str) -> ErrorLogResponse:
        try:
            result = self.supabase.table("error_logs")\
                .update({
                    "resolved": True,
                    "resolved_by": resolved_by,
                    "resolved_at": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("id", error_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Error not found")
            return ErrorLogResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error resolving error log {error_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to resolve error")

    def record_access(
        self,
        user: Optional[Principal],
        action: str,
        resource: str,
        success: bool,
        details: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> None:
        """Append an admin console access attempt to access_logs. A failed write is logged, never raised."""
        try:
            self.supabase.table("access_logs").insert({
                "user_id": user.id if user else None,
                "user_email": user.email if user else None,
                "user_name": user.name if user else None,
                "action": action,
                "resource": resource,
                "success": success,
                "details": details,
                "ip_address": ip_address,
                "user_agent": user_agent,
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to write access log {action} {resource}: {e}")

    def list_access_logs(self, limit: int = 100, success: Optional[bool] = None) -> List[AccessLogResponse]:
        try:
            query = self.supabase.table("access_logs").select("*")
            if success is not None:
                query = query.eq("success", success)
            result = query.order("created_at", desc=True).limit(limit).execute()
            return [AccessLogResponse(**log) for log in result.data]
        except Exception as e:
            logger.error(f"Error fetching access logs: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch access logs")
