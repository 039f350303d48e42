"""Pydantic schemas for stored configuration and API request/response validation"""

from automation_engine.schemas.automation import (
    Frequency,
    ScheduleSpec,
    ScheduleState,
    ForeverDuration,
    CountDuration,
    UntilDuration,
    ManualTrigger,
    ScheduleTrigger,
    EmailAction,
    NotificationAction,
    parse_schedule_config,
    parse_trigger,
    parse_action,
    dump_trigger_config
)
from automation_engine.schemas.invocation import (
    ProcessAutomationsRequest,
    ProcessAutomationsResponse,
    NothingToProcessResponse,
    SchedulePreviewRequest,
    SchedulePreviewResponse
)

__all__ = [
    # Stored configuration
    "Frequency",
    "ScheduleSpec",
    "ScheduleState",
    "ForeverDuration",
    "CountDuration",
    "UntilDuration",
    "ManualTrigger",
    "ScheduleTrigger",
    "EmailAction",
    "NotificationAction",
    "parse_schedule_config",
    "parse_trigger",
    "parse_action",
    "dump_trigger_config",
    # Invocation surface
    "ProcessAutomationsRequest",
    "ProcessAutomationsResponse",
    "NothingToProcessResponse",
    "SchedulePreviewRequest",
    "SchedulePreviewResponse",
]
