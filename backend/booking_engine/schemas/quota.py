# backend/booking_engine/schemas/quota.py
"""Usage quota schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UsageInfo(BaseModel):
    """Snapshot of a tenant's usage cycle, taken after any lazy reset."""

    tenant_id: str
    plan_type: str
    plan_name: str
    current_usage: int
    usage_limit: Optional[int] = Field(None, description="None when the plan is unbounded")
    remaining: Optional[int] = Field(None, description="None when the plan is unbounded")
    usage_percentage: float = Field(0.0, description="0-100; always 0 for unbounded plans")
    is_limit_reached: bool
    cycle_start: datetime
    cycle_end: datetime


class QuotaCheckResult(BaseModel):
    """Whether a tenant may be offered slots right now."""

    allowed: bool
    error: Optional[str] = None
    usage: UsageInfo
