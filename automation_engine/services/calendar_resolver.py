"""Calendar Resolver - computes the next fire instant of a schedule

Pure functions only: no I/O, no clock reads unless ``now`` is omitted.
Both the execution engine and the schedule preview endpoint call
next_fire_instant(), so there is exactly one implementation of the
recurrence rules.

All instants returned are timezone-aware UTC datetimes. Naive datetimes
passed in are taken to be UTC.
"""

import calendar
from dataclasses import dataclass
from functools import lru_cache
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import List, Optional

import pytz

from automation_engine.schemas.automation import DEFAULT_QUARTER_MONTHS, Frequency, ScheduleSpec
from automation_engine.core.logging_config import get_logger

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)

_WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


@dataclass(frozen=True)
class LocalDateParts:
    """Wall-clock fields of an instant in some timezone"""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    day_of_week: int  # 0=Sunday..6=Saturday


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    Look up an IANA timezone, falling back to UTC.

    Never raises: an unknown or empty identifier degrades to UTC.
    """
    if not name:
        return pytz.UTC
    return _lookup_timezone(name)


@lru_cache(maxsize=256)
def _lookup_timezone(name: str) -> tzinfo:
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning("invalid_timezone_fallback_to_utc", timezone=name)
        return pytz.UTC


def effective_timezone_name(name: Optional[str]) -> str:
    """Name of the zone resolve_timezone() will actually use"""
    return resolve_timezone(name).zone


def ensure_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def get_local_parts(instant: datetime, tz_name: Optional[str]) -> LocalDateParts:
    """Resolve an instant into local date/time fields within tz_name"""
    local = ensure_utc(instant).astimezone(resolve_timezone(tz_name))
    return LocalDateParts(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        # datetime.weekday() is Monday=0
        day_of_week=(local.weekday() + 1) % 7,
    )


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day(day_of_month: int, year: int, month: int) -> int:
    """Clamp a configured day to the real length of the given month"""
    return max(1, min(day_of_month, days_in_month(year, month)))


def local_to_utc(year: int, month: int, day: int, hour: int, minute: int, tz_name: Optional[str]) -> datetime:
    """
    Convert local wall-clock fields in tz_name to a UTC instant.

    Two-pass offset: read the wall-clock fields at face value as UTC, see
    what local time that instant has in the zone, and shift the face-value
    instant by the difference. The offset is measured at the candidate date
    itself, so DST changes between "now" and the candidate are honoured.
    """
    face_value = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)

    parts = get_local_parts(face_value, tz_name)
    local_as_utc = datetime(
        parts.year, parts.month, parts.day, parts.hour, parts.minute,
        tzinfo=timezone.utc
    )
    offset = face_value - local_as_utc

    return face_value + offset


def _next_quarter_month(spec: ScheduleSpec, current: LocalDateParts, time_passed: bool):
    months = sorted(spec.months) if spec.months else list(DEFAULT_QUARTER_MONTHS)

    for quarter_month in months:
        if quarter_month > current.month:
            return current.year, quarter_month
        if quarter_month == current.month:
            day_to_check = clamp_day(spec.day_of_month, current.year, quarter_month)
            if current.day < day_to_check or (current.day == day_to_check and not time_passed):
                return current.year, quarter_month

    return current.year + 1, months[0]


def next_fire_instant(spec: ScheduleSpec, now: Optional[datetime] = None) -> datetime:
    """
    Compute the next instant at which the schedule must fire.

    A time of day equal to the target counts as already passed, so calling
    this with ``now`` set to a fire instant yields the following cycle.

    Args:
        spec: Schedule specification
        now: Reference instant (defaults to the current time)

    Returns:
        Aware UTC datetime after ``now``. The one exception is a wall-clock
        time inside the repeated hour of a DST fall-back, which resolves to
        its first occurrence.
    """
    now = ensure_utc(now or datetime.now(timezone.utc))
    tz_name = spec.timezone
    current = get_local_parts(now, tz_name)

    time_passed = (current.hour, current.minute) >= (spec.hour, spec.minute)

    year, month, day = current.year, current.month, current.day

    if spec.frequency is Frequency.DAILY:
        if time_passed:
            # Local date arithmetic; now + 24h can cross a DST jump into the wrong date
            tomorrow = date(year, month, day) + ONE_DAY
            year, month, day = tomorrow.year, tomorrow.month, tomorrow.day

    elif spec.frequency is Frequency.WEEKLY:
        days_until = (spec.day_of_week - current.day_of_week) % 7
        if days_until == 0 and time_passed:
            days_until = 7
        target = date(year, month, day) + days_until * ONE_DAY
        year, month, day = target.year, target.month, target.day

    elif spec.frequency is Frequency.MONTHLY:
        day = clamp_day(spec.day_of_month, year, month)
        if current.day > day or (current.day == day and time_passed):
            month += 1
            if month > 12:
                month = 1
                year += 1
            day = clamp_day(spec.day_of_month, year, month)

    elif spec.frequency is Frequency.QUARTERLY:
        year, month = _next_quarter_month(spec, current, time_passed)
        day = clamp_day(spec.day_of_month, year, month)

    elif spec.frequency is Frequency.YEARLY:
        month = spec.month
        day = clamp_day(spec.day_of_month, year, month)
        if (
            current.month > month
            or (current.month == month and current.day > day)
            or (current.month == month and current.day == day and time_passed)
        ):
            year += 1
            day = clamp_day(spec.day_of_month, year, month)

    else:
        raise ValueError(f"Unsupported frequency: {spec.frequency}")

    return local_to_utc(year, month, day, spec.hour, spec.minute, tz_name)


def preview_fire_instants(spec: ScheduleSpec, count: int, now: Optional[datetime] = None) -> List[datetime]:
    """
    List the next ``count`` fire instants.

    Each instant is fed back in as ``now``; the boundary rule guarantees
    the sequence strictly increases.
    """
    instants: List[datetime] = []
    cursor = ensure_utc(now or datetime.now(timezone.utc))
    for _ in range(count):
        cursor = next_fire_instant(spec, cursor)
        instants.append(cursor)
    return instants


def describe_schedule(spec: ScheduleSpec) -> str:
    """Human-readable summary, e.g. 'Monthly on day 15 at 09:00 (America/New_York)'"""
    at = f"at {spec.time} ({effective_timezone_name(spec.timezone)})"

    if spec.frequency is Frequency.DAILY:
        return f"Daily {at}"
    if spec.frequency is Frequency.WEEKLY:
        return f"Weekly on {_WEEKDAY_NAMES[spec.day_of_week]} {at}"
    if spec.frequency is Frequency.MONTHLY:
        return f"Monthly on day {spec.day_of_month} {at}"
    if spec.frequency is Frequency.QUARTERLY:
        month_names = ", ".join(calendar.month_abbr[m] for m in spec.months)
        return f"Quarterly ({month_names}) on day {spec.day_of_month} {at}"
    return f"Yearly on {calendar.month_name[spec.month]} {spec.day_of_month} {at}"
