"""Celery tasks that invoke the automation engine"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from automation_engine.core.celery_app import celery_app
from automation_engine.core.config import settings
from automation_engine.core import database
from automation_engine.core.logging_config import get_logger
from automation_engine.services.action_dispatcher import ActionDispatcher
from automation_engine.services.automation_store import AutomationStore, from_db_timestamp
from automation_engine.services.run_orchestrator import (
    Invocation,
    ManualInvocation,
    RunOrchestrator,
    ScheduledInvocation,
)

logger = get_logger(__name__)


async def run_invocation(invocation: Invocation) -> Dict[str, Any]:
    """Run one orchestrator invocation on a fresh engine and session"""
    # asyncio.run() gives every task its own event loop; the engine must not outlive it
    await database.init_db()
    try:
        async with database.async_session_factory() as session:
            store = AutomationStore(session)
            orchestrator = RunOrchestrator(store, ActionDispatcher(store))
            summary = await orchestrator.process_due_automations(invocation)
            return summary.to_response()
    finally:
        await database.close_db()


@celery_app.task(name="automations.process_due")
def process_due_automations() -> Dict[str, Any]:
    """
    Celery task that sweeps every due automation.

    Run periodically via Celery Beat (every AUTOMATION_POLL_INTERVAL_SECONDS).
    """
    return asyncio.run(run_invocation(ScheduledInvocation()))


@celery_app.task(name="automations.run_now")
def run_automation_now(automation_id: str) -> Dict[str, Any]:
    """
    Celery task that runs one automation immediately, even if it is paused.

    Args:
        automation_id: Automation to run
    """
    return asyncio.run(run_invocation(ManualInvocation(automation_id=automation_id)))


@celery_app.task(name="automations.report_stale_runs")
def report_stale_runs(threshold_minutes: Optional[int] = None) -> int:
    """
    Celery task that logs runs still marked running after the threshold.

    Runs only stay in that state after a hard process crash. They are
    reported, not modified.

    Returns:
        Number of stale runs found
    """
    return asyncio.run(_report_stale_runs_async(threshold_minutes))


async def _report_stale_runs_async(threshold_minutes: Optional[int] = None) -> int:
    threshold = threshold_minutes or settings.STALE_RUN_THRESHOLD_MINUTES
    started_before = datetime.now(timezone.utc) - timedelta(minutes=threshold)

    await database.init_db()
    try:
        async with database.async_session_factory() as session:
            stale_runs = await AutomationStore(session).fetch_stale_runs(started_before)
    finally:
        await database.close_db()

    for run in stale_runs:
        logger.warning(
            "automation_run_stale",
            run_id=run.id,
            automation_id=run.automation_id,
            started_at=from_db_timestamp(run.started_at).isoformat()
        )

    logger.info("stale_run_check_completed", stale_count=len(stale_runs), threshold_minutes=threshold)
    return len(stale_runs)
