"""Duration Policy - decides when a recurring schedule is retired"""

from datetime import datetime, timezone
from typing import Optional

from automation_engine.schemas.automation import (
    CountDuration,
    ForeverDuration,
    ScheduleSpec,
    ScheduleState,
    UntilDuration,
)
from automation_engine.services.calendar_resolver import ensure_utc


def has_expired(spec: ScheduleSpec, state: ScheduleState, now: Optional[datetime] = None) -> bool:
    """
    Check whether a schedule has used up its allowed lifetime.

    Called before a run with the stored counter (to skip stale records)
    and after a run with the incremented counter (to retire the schedule).

    Args:
        spec: Schedule specification carrying the duration policy
        state: Current schedule state
        now: Reference instant (defaults to the current time)

    Returns:
        True if the automation must be deactivated
    """
    duration = spec.duration

    if isinstance(duration, ForeverDuration):
        return False

    if isinstance(duration, CountDuration):
        return state.runs_completed >= duration.run_count

    if isinstance(duration, UntilDuration):
        now = ensure_utc(now or datetime.now(timezone.utc))
        return now >= duration.until_instant

    raise ValueError(f"Unsupported duration policy: {duration!r}")


def remaining_runs(spec: ScheduleSpec, state: ScheduleState) -> Optional[int]:
    """Runs left under a count policy, None when the policy is not count-based"""
    if isinstance(spec.duration, CountDuration):
        return max(0, spec.duration.run_count - state.runs_completed)
    return None
