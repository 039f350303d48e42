"""Automation Schemas

Closed variants for everything an automation is configured with:

- ScheduleSpec: user-authored recurrence (frequency, local time, timezone,
  frequency-dependent fields and a duration policy)
- ScheduleState: engine-owned counters (runs_completed)
- Trigger: ManualTrigger | ScheduleTrigger
- Action: EmailAction | NotificationAction

The database keeps the schedule and its state in one flat ``trigger_config``
JSON blob; parse_trigger() and dump_trigger_config() are the only places the
two halves are split apart and merged back.
"""

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from automation_engine.core.exceptions import AutomationConfigError
from automation_engine.models.automation import ActionType, TriggerType


DEFAULT_QUARTER_MONTHS = [1, 4, 7, 10]

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")

# Keys of the flat trigger_config blob that belong to the ScheduleSpec
_SPEC_KEYS = (
    "frequency",
    "time",
    "timezone",
    "day_of_week",
    "day_of_month",
    "months",
    "month",
)


class Frequency(str, Enum):
    """Recurrence frequency of a schedule trigger"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class EmailFormat(str, Enum):
    TEXT = "text"
    HTML = "html"


# ============================================================================
# Duration policy
# ============================================================================

class ForeverDuration(BaseModel):
    """Never expires"""
    model_config = ConfigDict(frozen=True)

    duration_type: Literal["forever"] = "forever"


class CountDuration(BaseModel):
    """Expires once runs_completed reaches run_count"""
    model_config = ConfigDict(frozen=True)

    duration_type: Literal["count"] = "count"
    run_count: int = Field(..., gt=0)


class UntilDuration(BaseModel):
    """
    Expires once the current instant reaches run_until.

    A bare date means 00:00 UTC of that date; naive instants are UTC.
    """
    model_config = ConfigDict(frozen=True)

    duration_type: Literal["until"] = "until"
    run_until: datetime

    @field_validator("run_until", mode="before")
    @classmethod
    def parse_run_until(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v
        if isinstance(v, date):
            return datetime(v.year, v.month, v.day)
        if isinstance(v, str) and len(v.strip()) == 10:
            d = date.fromisoformat(v.strip())
            return datetime(d.year, d.month, d.day)
        return v

    @property
    def until_instant(self) -> datetime:
        """run_until as an aware UTC instant"""
        if self.run_until.tzinfo is None:
            return self.run_until.replace(tzinfo=timezone.utc)
        return self.run_until.astimezone(timezone.utc)


DurationPolicy = Annotated[
    Union[ForeverDuration, CountDuration, UntilDuration],
    Field(discriminator="duration_type")
]


# ============================================================================
# Schedule
# ============================================================================

class ScheduleSpec(BaseModel):
    """
    User-authored recurrence rule.

    day_of_month is not bounded here: the configuration surface only offers
    1-28, and the calendar resolver clamps anything else to the real month
    length.
    """
    model_config = ConfigDict(frozen=True)

    frequency: Frequency
    time: str = Field(..., description="Local wall-clock time, HH:MM")
    timezone: str = Field("UTC", description="IANA zone; unknown zones resolve as UTC")
    day_of_week: int = Field(0, ge=0, le=6, description="0=Sunday..6=Saturday, weekly only")
    day_of_month: int = Field(1, description="Monthly, quarterly and yearly")
    months: List[int] = Field(
        default_factory=lambda: list(DEFAULT_QUARTER_MONTHS),
        description="Quarterly only"
    )
    month: int = Field(1, ge=1, le=12, description="Yearly only")
    duration: DurationPolicy = Field(default_factory=ForeverDuration)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Normalize to HH:MM; seconds are accepted and dropped"""
        match = _TIME_PATTERN.match(v)
        if not match:
            raise ValueError(f"time must be HH:MM, got {v!r}")
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            raise ValueError(f"time out of range: {v!r}")
        return f"{hour:02d}:{minute:02d}"

    @field_validator("timezone", mode="before")
    @classmethod
    def default_timezone(cls, v: Any) -> Any:
        return v or "UTC"

    @field_validator("months")
    @classmethod
    def validate_months(cls, v: List[int]) -> List[int]:
        for m in v:
            if m < 1 or m > 12:
                raise ValueError(f"months must be between 1 and 12, got {m}")
        if not v:
            return list(DEFAULT_QUARTER_MONTHS)
        return sorted(set(v))

    @property
    def hour(self) -> int:
        return int(self.time.split(":")[0])

    @property
    def minute(self) -> int:
        return int(self.time.split(":")[1])


class ScheduleState(BaseModel):
    """Engine-owned schedule counters"""
    model_config = ConfigDict(frozen=True)

    runs_completed: int = Field(0, ge=0)

    def incremented(self) -> "ScheduleState":
        return ScheduleState(runs_completed=self.runs_completed + 1)


# ============================================================================
# Triggers
# ============================================================================

class ManualTrigger(BaseModel):
    """Runs only when explicitly requested; never scheduled"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["manual"] = "manual"


class ScheduleTrigger(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["schedule"] = "schedule"
    spec: ScheduleSpec
    state: ScheduleState = Field(default_factory=ScheduleState)


Trigger = Union[ManualTrigger, ScheduleTrigger]


def _parse_duration(config: Dict[str, Any]) -> Union[ForeverDuration, CountDuration, UntilDuration]:
    duration_type = config.get("duration_type") or "forever"

    if duration_type == "forever":
        return ForeverDuration()

    if duration_type == "count":
        run_count = config.get("run_count")
        # A count policy without a usable limit never expires
        if not run_count or (isinstance(run_count, (int, float)) and run_count <= 0):
            return ForeverDuration()
        return CountDuration(run_count=run_count)

    if duration_type == "until":
        if not config.get("run_until"):
            return ForeverDuration()
        return UntilDuration(run_until=config["run_until"])

    raise AutomationConfigError(
        f"Unknown duration_type: {duration_type!r}",
        field="duration_type"
    )


def parse_schedule_config(config: Optional[Dict[str, Any]]) -> Tuple[ScheduleSpec, ScheduleState]:
    """
    Split a flat trigger_config blob into its spec and state halves.

    Raises:
        AutomationConfigError: If the blob does not describe a valid schedule
    """
    if not isinstance(config, dict):
        raise AutomationConfigError(
            "Schedule trigger_config must be an object",
            field="trigger_config"
        )

    try:
        spec_fields = {
            key: config[key] for key in _SPEC_KEYS
            if config.get(key) is not None
        }
        spec = ScheduleSpec(duration=_parse_duration(config), **spec_fields)
        state = ScheduleState(runs_completed=config.get("runs_completed") or 0)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise AutomationConfigError(
            f"Invalid schedule configuration ({location}): {first['msg']}",
            field=location or "trigger_config",
            details={"errors": e.errors(include_url=False)}
        ) from e

    return spec, state


def parse_trigger(trigger_type: Union[TriggerType, str], config: Optional[Dict[str, Any]]) -> Trigger:
    """Build the trigger variant for a stored automation row"""
    trigger_type = TriggerType(trigger_type)
    if trigger_type is TriggerType.MANUAL:
        return ManualTrigger()
    spec, state = parse_schedule_config(config)
    return ScheduleTrigger(spec=spec, state=state)


def dump_trigger_config(spec: ScheduleSpec, state: ScheduleState) -> Dict[str, Any]:
    """Merge spec and state back into the flat storage shape"""
    blob: Dict[str, Any] = {
        "frequency": spec.frequency.value,
        "time": spec.time,
        "timezone": spec.timezone,
        "day_of_week": spec.day_of_week,
        "day_of_month": spec.day_of_month,
        "months": list(spec.months),
        "month": spec.month,
        "duration_type": spec.duration.duration_type,
        "runs_completed": state.runs_completed,
    }

    duration = spec.duration
    if isinstance(duration, CountDuration):
        blob["run_count"] = duration.run_count
    elif isinstance(duration, UntilDuration):
        until = duration.run_until
        if until.tzinfo is None and until.time() == datetime.min.time():
            blob["run_until"] = until.date().isoformat()
        else:
            blob["run_until"] = until.isoformat()

    return blob


# ============================================================================
# Actions
# ============================================================================

class EmailActionConfig(BaseModel):
    """
    Email action payload.

    to, cc and bcc hold delimiter-separated address lists as entered in the
    dashboard; lists are accepted too and joined.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: str = ""
    cc: Optional[str] = None
    bcc: Optional[str] = None
    reply_to: Optional[str] = Field(None, alias="replyTo")
    subject: str = ""
    body: str = ""
    format: EmailFormat = EmailFormat.TEXT

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def join_address_lists(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return ", ".join(str(item) for item in v)
        return v

    @field_validator("format", mode="before")
    @classmethod
    def default_format(cls, v: Any) -> Any:
        return v or EmailFormat.TEXT


class NotificationActionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    message: str = ""
    link: Optional[str] = None


class EmailAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["email"] = "email"
    config: EmailActionConfig


class NotificationAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["notification"] = "notification"
    config: NotificationActionConfig


Action = Union[EmailAction, NotificationAction]


def parse_action(action_type: Union[ActionType, str], config: Optional[Dict[str, Any]]) -> Action:
    """
    Build the action variant for a stored action row.

    Raises:
        AutomationConfigError: If the type is unknown or the payload is invalid
    """
    try:
        action_type = ActionType(action_type)
    except ValueError as e:
        raise AutomationConfigError(
            f"Unknown action_type: {action_type!r}",
            field="action_type"
        ) from e

    try:
        if action_type is ActionType.EMAIL:
            return EmailAction(config=EmailActionConfig.model_validate(config or {}))
        return NotificationAction(config=NotificationActionConfig.model_validate(config or {}))
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise AutomationConfigError(
            f"Invalid {action_type.value} action configuration ({location}): {first['msg']}",
            field=location or "action_config",
            details={"errors": e.errors(include_url=False)}
        ) from e
