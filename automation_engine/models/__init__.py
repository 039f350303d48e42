"""SQLAlchemy models for the automation engine"""

from automation_engine.models.base import Base
from automation_engine.models.automation import (
    AutomationModel,
    AutomationActionModel,
    AutomationRunModel,
    NotificationModel,
    TriggerType,
    ActionType,
    RunStatus,
)

__all__ = [
    "Base",
    "AutomationModel",
    "AutomationActionModel",
    "AutomationRunModel",
    "NotificationModel",
    "TriggerType",
    "ActionType",
    "RunStatus",
]
