"""Services package"""

from automation_engine.services.run_orchestrator import (
    RunOrchestrator,
    ProcessingSummary,
    ScheduledInvocation,
    ManualInvocation
)

__all__ = [
    "RunOrchestrator",
    "ProcessingSummary",
    "ScheduledInvocation",
    "ManualInvocation",
]
