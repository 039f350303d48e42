"""Unit tests for trigger and action configuration parsing"""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from automation_engine.core.exceptions import AutomationConfigError
from automation_engine.models.automation import ActionType, TriggerType
from automation_engine.schemas.automation import (
    CountDuration,
    EmailAction,
    EmailFormat,
    ForeverDuration,
    Frequency,
    ManualTrigger,
    NotificationAction,
    ScheduleSpec,
    ScheduleTrigger,
    UntilDuration,
    dump_trigger_config,
    parse_action,
    parse_schedule_config,
    parse_trigger,
)


class TestScheduleSpec:
    """Test suite for ScheduleSpec validation"""

    def test_time_is_normalized(self):
        assert ScheduleSpec(frequency="daily", time="9:05").time == "09:05"

    def test_time_seconds_are_dropped(self):
        spec = ScheduleSpec(frequency="daily", time="09:00:30")
        assert spec.time == "09:00"
        assert (spec.hour, spec.minute) == (9, 0)

    @pytest.mark.parametrize("bad_time", ["24:00", "12:60", "noon", "", "9"])
    def test_invalid_time_rejected(self, bad_time):
        with pytest.raises(ValidationError):
            ScheduleSpec(frequency="daily", time=bad_time)

    def test_empty_timezone_becomes_utc(self):
        assert ScheduleSpec(frequency="daily", time="09:00", timezone="").timezone == "UTC"

    def test_months_sorted_and_deduplicated(self):
        spec = ScheduleSpec(frequency="quarterly", time="09:00", months=[10, 1, 4, 4])
        assert spec.months == [1, 4, 10]

    def test_empty_months_use_calendar_quarters(self):
        spec = ScheduleSpec(frequency="quarterly", time="09:00", months=[])
        assert spec.months == [1, 4, 7, 10]

    def test_month_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            ScheduleSpec(frequency="quarterly", time="09:00", months=[0, 13])

    def test_day_of_week_bounds(self):
        with pytest.raises(ValidationError):
            ScheduleSpec(frequency="weekly", time="09:00", day_of_week=7)

    def test_spec_is_immutable(self):
        spec = ScheduleSpec(frequency="daily", time="09:00")
        with pytest.raises(ValidationError):
            spec.time = "10:00"


class TestParseScheduleConfig:
    """Test suite for splitting the stored trigger_config blob"""

    def test_full_blob(self):
        spec, state = parse_schedule_config({
            "frequency": "monthly",
            "time": "09:00",
            "timezone": "America/New_York",
            "day_of_month": 31,
            "duration_type": "count",
            "run_count": 3,
            "runs_completed": 2,
        })
        assert spec.frequency is Frequency.MONTHLY
        assert spec.day_of_month == 31
        assert spec.duration == CountDuration(run_count=3)
        assert state.runs_completed == 2

    def test_defaults_for_missing_fields(self):
        spec, state = parse_schedule_config({"frequency": "daily", "time": "08:00"})
        assert spec.timezone == "UTC"
        assert isinstance(spec.duration, ForeverDuration)
        assert state.runs_completed == 0

    def test_null_fields_are_ignored(self):
        spec, _ = parse_schedule_config({
            "frequency": "weekly", "time": "08:00", "day_of_week": None, "timezone": None
        })
        assert spec.day_of_week == 0
        assert spec.timezone == "UTC"

    @pytest.mark.parametrize("run_count", [None, 0, -2])
    def test_count_without_usable_limit_is_forever(self, run_count):
        spec, _ = parse_schedule_config({
            "frequency": "daily", "time": "08:00", "duration_type": "count", "run_count": run_count
        })
        assert isinstance(spec.duration, ForeverDuration)

    def test_until_date(self):
        spec, _ = parse_schedule_config({
            "frequency": "daily", "time": "08:00", "duration_type": "until", "run_until": "2024-12-31"
        })
        assert isinstance(spec.duration, UntilDuration)
        assert spec.duration.until_instant == datetime(2024, 12, 31, tzinfo=timezone.utc)

    def test_unknown_duration_type(self):
        with pytest.raises(AutomationConfigError) as exc_info:
            parse_schedule_config({"frequency": "daily", "time": "08:00", "duration_type": "sometimes"})
        assert exc_info.value.field == "duration_type"

    def test_unknown_frequency(self):
        with pytest.raises(AutomationConfigError) as exc_info:
            parse_schedule_config({"frequency": "hourly", "time": "08:00"})
        assert "frequency" in exc_info.value.field

    def test_not_a_dict(self):
        with pytest.raises(AutomationConfigError):
            parse_schedule_config(None)


class TestParseTrigger:
    """Test suite for trigger variants"""

    def test_manual_ignores_config(self):
        assert parse_trigger(TriggerType.MANUAL, {"anything": True}) == ManualTrigger()

    def test_manual_from_string(self):
        assert isinstance(parse_trigger("manual", None), ManualTrigger)

    def test_schedule(self):
        trigger = parse_trigger("schedule", {"frequency": "daily", "time": "08:00", "runs_completed": 4})
        assert isinstance(trigger, ScheduleTrigger)
        assert trigger.state.runs_completed == 4


class TestDumpTriggerConfig:
    """Test suite for merging spec and state back into storage shape"""

    def test_count_policy(self):
        spec, state = parse_schedule_config({
            "frequency": "monthly", "time": "09:00", "day_of_month": 15,
            "duration_type": "count", "run_count": 3, "runs_completed": 1
        })
        blob = dump_trigger_config(spec, state.incremented())
        assert blob["runs_completed"] == 2
        assert blob["run_count"] == 3
        assert blob["duration_type"] == "count"
        assert blob["frequency"] == "monthly"
        assert "run_until" not in blob

    def test_until_date_is_written_back_as_date(self):
        spec, state = parse_schedule_config({
            "frequency": "daily", "time": "09:00", "duration_type": "until", "run_until": "2025-01-31"
        })
        assert dump_trigger_config(spec, state)["run_until"] == "2025-01-31"

    def test_parsing_dumped_blob_gives_same_spec(self):
        original = {
            "frequency": "quarterly", "time": "07:30", "timezone": "Europe/London",
            "day_of_month": 28, "months": [3, 6, 9, 12], "duration_type": "forever"
        }
        spec, state = parse_schedule_config(original)
        assert parse_schedule_config(dump_trigger_config(spec, state)) == (spec, state)


class TestParseAction:
    """Test suite for action variants"""

    def test_email_action(self):
        action = parse_action(ActionType.EMAIL, {
            "to": "a@example.com, b@example.com",
            "subject": "Hi",
            "body": "<b>Hi</b>",
            "format": "html",
            "replyTo": "reply@example.com",
        })
        assert isinstance(action, EmailAction)
        assert action.config.format is EmailFormat.HTML
        assert action.config.reply_to == "reply@example.com"

    def test_email_address_list_is_joined(self):
        action = parse_action("email", {"to": ["a@example.com", "b@example.com"], "subject": "s", "body": "b"})
        assert action.config.to == "a@example.com, b@example.com"

    def test_email_format_defaults_to_text(self):
        action = parse_action("email", {"to": "a@example.com", "subject": "s", "body": "b", "format": None})
        assert action.config.format is EmailFormat.TEXT

    def test_notification_action(self):
        action = parse_action("notification", {"title": "Budget alert", "message": "Over budget", "link": "/budgets"})
        assert isinstance(action, NotificationAction)
        assert action.config.link == "/budgets"

    def test_notification_requires_title(self):
        with pytest.raises(AutomationConfigError):
            parse_action("notification", {"message": "no title"})

    def test_unknown_action_type(self):
        with pytest.raises(AutomationConfigError) as exc_info:
            parse_action("webhook", {})
        assert exc_info.value.field == "action_type"
