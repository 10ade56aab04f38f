from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UsageLogOut(BaseModel):
    id: int
    api_id: Optional[int] = None
    api_name: Optional[str] = None
    slug: str
    status_code: int
    latency_ms: int
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None


class ApiUsageOut(BaseModel):
    id: int
    name: str
    usage_count: int
    request_count: int


class UsageStatsOut(BaseModel):
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: float
    avg_latency_ms: int
    recent_logs: list[UsageLogOut]
    top_apis: list[ApiUsageOut]
