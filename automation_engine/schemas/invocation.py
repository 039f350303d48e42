"""Invocation Schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ProcessAutomationsRequest(BaseModel):
    """Body of a manual invocation; an empty body means a scheduled sweep"""
    automation_id: Optional[str] = Field(None, description="Run only this automation")


class ProcessAutomationsResponse(BaseModel):
    """Batch result"""
    processed: int = Field(..., description="Automations whose run was created and closed")
    failed: int = Field(..., description="Automations that could not be processed")
    total: int = Field(..., description="Automations considered")


class NothingToProcessResponse(BaseModel):
    """Returned when nothing was due or the requested automation does not exist"""
    processed: int = Field(0, description="Always 0")
    message: str


class SchedulePreviewRequest(BaseModel):
    """Request schema for previewing the next fire instants of a schedule"""
    trigger_config: Dict[str, Any] = Field(
        ...,
        description="Schedule trigger_config as stored on an automation",
        examples=[{"frequency": "monthly", "time": "09:00", "timezone": "America/New_York", "day_of_month": 31}]
    )
    count: int = Field(5, ge=1, le=24, description="Number of upcoming instants")
    now: Optional[datetime] = Field(None, description="Reference instant, defaults to the current time")


class SchedulePreviewResponse(BaseModel):
    timezone: str = Field(..., description="Timezone actually used (unknown zones resolve to UTC)")
    description: str = Field(..., description="Human readable schedule")
    next_runs: List[datetime] = Field(..., description="Upcoming fire instants in UTC")
