from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal
from datetime import datetime


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogCategory(str, Enum):
    USER = "USER"
    SYSTEM = "SYSTEM"
    API = "API"
    DATABASE = "DATABASE"
    SECURITY = "SECURITY"
    PERFORMANCE = "PERFORMANCE"
    BUSINESS = "BUSINESS"


class LogFilters(BaseModel):
    search: Optional[str] = None
    levels: Optional[List[LogLevel]] = None
    categories: Optional[List[LogCategory]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    user_id: Optional[str] = None


class SystemLogResponse(BaseModel):
    id: str
    level: LogLevel
    category: LogCategory
    message: str
    details: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    ip_address: Optional[str] = None
    request_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class LogListResponse(BaseModel):
    logs: List[SystemLogResponse]
    pagination: Pagination


class LogStats(BaseModel):
    total: int
    debug: int
    info: int
    warn: int
    error: int
    critical: int
    categories: Dict[str, int]
    last_24_hours: int


class LogExportRequest(BaseModel):
    format: Literal["csv", "json", "txt"]
    filters: Optional[LogFilters] = None
    limit: Optional[int] = Field(default=None, ge=1)


class ErrorLogResponse(BaseModel):
    id: str
    error: str
    error_type: str
    severity: str
    url: str
    method: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    stack: Optional[str] = None
    resolved: bool = False
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AccessLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    action: str
    resource: str
    success: bool
    details: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AccessLogListResponse(BaseModel):
    logs: List[AccessLogResponse]
    total: int
