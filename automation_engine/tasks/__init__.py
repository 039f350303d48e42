"""Celery Tasks Package"""

# Import tasks to register them with Celery
from automation_engine.tasks.automation_tasks import (
    process_due_automations,
    run_automation_now,
    report_stale_runs
)

__all__ = [
    "process_due_automations",
    "run_automation_now",
    "report_stale_runs"
]
