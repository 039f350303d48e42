"""Run Orchestrator - selects due automations and drives each run to completion"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Union

from structlog.contextvars import bound_contextvars

from automation_engine.core.config import settings
from automation_engine.core.exceptions import AutomationConfigError, AutomationQueryError, ScheduleAdvanceError
from automation_engine.core.logging_config import get_logger
from automation_engine.core.monitoring import MetricsCollector
from automation_engine.models.automation import AutomationModel, RunStatus
from automation_engine.schemas.automation import ScheduleTrigger, dump_trigger_config
from automation_engine.services.action_dispatcher import ActionContext, ActionDispatcher
from automation_engine.services.automation_store import (
    ActionRecord,
    AutomationRecord,
    AutomationStore,
    to_automation_record,
)
from automation_engine.services.calendar_resolver import next_fire_instant
from automation_engine.services.duration_policy import has_expired, remaining_runs

logger = get_logger(__name__)

NO_AUTOMATIONS_DUE = "No automations due"
AUTOMATION_NOT_FOUND = "Automation not found"


@dataclass(frozen=True)
class ScheduledInvocation:
    """Sweep every due automation"""
    mode: str = "scheduled"


@dataclass(frozen=True)
class ManualInvocation:
    """Run one automation now, whatever its is_active/next_run_at"""
    automation_id: str
    mode: str = "manual"


Invocation = Union[ScheduledInvocation, ManualInvocation]


@dataclass
class RunResult:
    """What happened to one automation inside a batch"""
    automation_id: str
    run_id: Optional[str] = None
    status: Optional[RunStatus] = None
    error: Optional[str] = None
    skipped: bool = False
    closed: bool = False


@dataclass
class ProcessingSummary:
    """
    Batch result.

    processed counts automations whose run was created and closed (whatever
    the run status). failed counts automations that could not be processed
    at all. Expired automations that were skipped count as neither, so
    processed + failed can be lower than total.
    """
    processed: int = 0
    failed: int = 0
    total: int = 0
    skipped: int = 0
    message: Optional[str] = None
    results: List[RunResult] = field(default_factory=list)

    def to_response(self) -> dict:
        if self.message is not None:
            return {"processed": 0, "message": self.message}
        return {"processed": self.processed, "failed": self.failed, "total": self.total}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunOrchestrator:
    """
    Processes due automations one at a time.

    Each automation is isolated: an error while loading or running it is
    recorded against that automation only. Only a failure to select
    automations at all aborts the invocation.

    next_run_at is advanced after every run, including failed ones, so a
    failing action is not redelivered by the next sweep. Two overlapping
    invocations can both pick up the same due automation before either has
    advanced it; callers serialize invocations (a single beat entry) instead
    of this class taking locks.
    """

    def __init__(
        self,
        store: AutomationStore,
        dispatcher: ActionDispatcher,
        clock: Optional[Callable[[], datetime]] = None,
        batch_limit: Optional[int] = None
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock or _utcnow
        self.batch_limit = batch_limit or settings.AUTOMATION_BATCH_LIMIT

    async def process_due_automations(self, invocation: Optional[Invocation] = None) -> ProcessingSummary:
        """
        Process every automation selected by the invocation.

        Args:
            invocation: ScheduledInvocation (default) or ManualInvocation

        Returns:
            ProcessingSummary with processed/failed/total counts

        Raises:
            AutomationQueryError: If automations cannot be selected
        """
        invocation = invocation or ScheduledInvocation()
        started = time.time()

        automations = await self._select(invocation)
        summary = ProcessingSummary(total=len(automations))

        if not automations:
            summary.message = (
                AUTOMATION_NOT_FOUND if isinstance(invocation, ManualInvocation)
                else NO_AUTOMATIONS_DUE
            )
            logger.info("no_automations_to_process", mode=invocation.mode)
            MetricsCollector.record_batch(invocation.mode, time.time() - started)
            return summary

        logger.info("processing_automations", mode=invocation.mode, count=len(automations))

        for automation_id, record, error in self._snapshot(automations):
            with bound_contextvars(automation_id=automation_id):
                result = None
                if error is None:
                    try:
                        actions = await self.store.fetch_actions(automation_id)
                        result = await self.process_automation(record, actions)
                    except Exception as e:
                        error = e

                if error is not None:
                    self._record_failure(summary, automation_id, error)
                    continue

            summary.results.append(result)
            if result.skipped:
                summary.skipped += 1
            elif result.closed:
                summary.processed += 1
            else:
                summary.failed += 1

        duration = time.time() - started
        MetricsCollector.record_batch(invocation.mode, duration)
        logger.info(
            "automation_batch_completed",
            mode=invocation.mode,
            processed=summary.processed,
            failed=summary.failed,
            skipped=summary.skipped,
            total=summary.total,
            duration_seconds=round(duration, 3)
        )
        return summary

    @staticmethod
    def _snapshot(
        automations: List[AutomationModel]
    ) -> List[Tuple[str, Optional[AutomationRecord], Optional[Exception]]]:
        """
        Copy every selected row into a plain record before the first write.

        A failed write rolls the session back, which expires every row it
        loaded; later automations must not read from those rows.
        """
        snapshots = []
        for row in automations:
            try:
                snapshots.append((row.id, to_automation_record(row), None))
            except Exception as e:
                snapshots.append((row.id, None, e))
        return snapshots

    @staticmethod
    def _record_failure(summary: ProcessingSummary, automation_id: str, error: Exception) -> None:
        summary.failed += 1
        summary.results.append(RunResult(automation_id=automation_id, error=str(error)))

        if isinstance(error, AutomationConfigError):
            fields = error.to_dict()
        else:
            fields = {"error": str(error), "error_type": type(error).__name__}
        fields["automation_id"] = automation_id
        logger.error("automation_processing_failed", exc_info=error, **fields)

    async def _select(self, invocation: Invocation) -> List[AutomationModel]:
        try:
            if isinstance(invocation, ManualInvocation):
                row = await self.store.fetch_automation(invocation.automation_id)
                return [row] if row is not None else []
            return await self.store.fetch_due_automations(self.clock(), limit=self.batch_limit)
        except Exception as e:
            logger.error("automation_query_failed", mode=invocation.mode, error=str(e), exc_info=True)
            raise AutomationQueryError(
                str(e) or "Failed to query automations",
                automation_id=getattr(invocation, "automation_id", None),
                details={"mode": invocation.mode, "error_type": type(e).__name__}
            ) from e

    async def process_automation(
        self,
        automation: AutomationRecord,
        actions: List[ActionRecord]
    ) -> RunResult:
        """
        Run one automation's actions and advance its schedule.

        The run record is always closed once it has been created, even if
        dispatching or advancing the schedule raised.

        Returns:
            RunResult; skipped=True when the duration policy had already expired

        Raises:
            Exception: Only if the run record itself cannot be created
        """
        now = self.clock()
        trigger = automation.trigger

        if isinstance(trigger, ScheduleTrigger) and has_expired(trigger.spec, trigger.state, now):
            await self._deactivate_expired(automation)
            return RunResult(automation_id=automation.id, skipped=True)

        run_id = await self.store.insert_run(automation.id, now)
        result = RunResult(automation_id=automation.id, run_id=run_id)
        errors: List[str] = []

        logger.info(
            "automation_run_started",
            automation_id=automation.id,
            automation_name=automation.name,
            run_id=run_id,
            action_count=len(actions)
        )

        try:
            context = ActionContext(automation_id=automation.id, user_id=automation.user_id, run_id=run_id)
            for record in sorted(actions, key=lambda a: a.sort_order):
                try:
                    outcome = await self.dispatcher.execute(record.action, context)
                except Exception as e:
                    errors.append(str(e) or type(e).__name__)
                    logger.error(
                        "automation_action_crashed",
                        automation_id=automation.id,
                        run_id=run_id,
                        action_id=record.id,
                        action_type=record.action.kind,
                        error=str(e),
                        exc_info=True
                    )
                    continue
                if not outcome.ok:
                    errors.append(outcome.error or f"{record.action.kind} action failed")

            try:
                await self._advance_schedule(automation, run_id, now)
            except ScheduleAdvanceError as e:
                MetricsCollector.record_schedule_advance_failure()
                logger.critical("automation_schedule_advance_failed", **e.to_dict())
                errors.append(e.message)
        finally:
            result.status = RunStatus.FAILED if errors else RunStatus.SUCCESS
            result.error = errors[0] if errors else None
            try:
                await self.store.close_run(run_id, result.status, self.clock(), result.error)
                result.closed = True
                MetricsCollector.record_run(result.status.value)
                logger.info(
                    "automation_run_completed",
                    automation_id=automation.id,
                    run_id=run_id,
                    status=result.status.value,
                    error=result.error
                )
            except Exception as e:
                logger.critical(
                    "automation_run_close_failed",
                    automation_id=automation.id,
                    run_id=run_id,
                    intended_status=result.status.value,
                    error=str(e),
                    exc_info=True
                )

        return result

    async def _deactivate_expired(self, automation: AutomationRecord) -> None:
        # Nothing to write when an earlier sweep already deactivated it
        if automation.is_active or automation.next_run_at is not None:
            await self.store.deactivate_automation(automation.id)
        MetricsCollector.record_skipped_automation()
        logger.info(
            "automation_skipped_expired",
            automation_id=automation.id,
            automation_name=automation.name,
            already_inactive=not automation.is_active
        )

    async def _advance_schedule(self, automation: AutomationRecord, run_id: str, now: datetime) -> None:
        """
        Persist last_run_at and, for schedule triggers, the incremented
        counter together with the next fire instant or the deactivation.

        Raises:
            ScheduleAdvanceError: If the new state cannot be computed or written
        """
        trigger = automation.trigger
        values = {"last_run_at": now}

        try:
            if isinstance(trigger, ScheduleTrigger):
                state = trigger.state.incremented()
                if has_expired(trigger.spec, state, now):
                    values["is_active"] = False
                    values["next_run_at"] = None
                    logger.info(
                        "automation_duration_exhausted",
                        automation_id=automation.id,
                        runs_completed=state.runs_completed,
                        duration_type=trigger.spec.duration.duration_type
                    )
                else:
                    values["next_run_at"] = next_fire_instant(trigger.spec, now)
                    logger.debug(
                        "automation_next_run_scheduled",
                        automation_id=automation.id,
                        next_run_at=values["next_run_at"].isoformat(),
                        remaining_runs=remaining_runs(trigger.spec, state)
                    )
                values["trigger_config"] = {
                    **automation.trigger_config,
                    **dump_trigger_config(trigger.spec, state),
                }

            await self.store.update_automation(automation.id, **values)
        except Exception as e:
            raise ScheduleAdvanceError(
                f"Automation update failed: {e}",
                automation_id=automation.id,
                run_id=run_id,
                details={"error_type": type(e).__name__}
            ) from e
