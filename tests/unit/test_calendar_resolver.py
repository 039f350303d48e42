"""Unit tests for the calendar resolver"""

import pytest
from datetime import datetime, timedelta, timezone

import pytz

from automation_engine.schemas.automation import ScheduleSpec
from automation_engine.services.calendar_resolver import (
    clamp_day,
    describe_schedule,
    effective_timezone_name,
    get_local_parts,
    local_to_utc,
    next_fire_instant,
    preview_fire_instants,
    resolve_timezone,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestTimezoneResolution:
    """Test suite for timezone lookup and fallback"""

    def test_known_zone_is_resolved(self):
        assert effective_timezone_name("America/New_York") == "America/New_York"

    def test_unknown_zone_falls_back_to_utc(self):
        assert resolve_timezone("Mars/Olympus_Mons") is pytz.UTC
        assert effective_timezone_name("Mars/Olympus_Mons") == "UTC"

    def test_empty_zone_is_utc(self):
        assert resolve_timezone("") is pytz.UTC
        assert resolve_timezone(None) is pytz.UTC

    def test_local_parts_use_sunday_zero(self):
        # 2024-03-03 is a Sunday
        parts = get_local_parts(utc(2024, 3, 3, 12, 0), "UTC")
        assert parts.day_of_week == 0

        # 2024-03-09 is a Saturday
        parts = get_local_parts(utc(2024, 3, 9, 12, 0), "UTC")
        assert parts.day_of_week == 6

    def test_local_parts_cross_the_date_line(self):
        # 03:00 UTC on March 1 is still February 29 in New York
        parts = get_local_parts(utc(2024, 3, 1, 3, 0), "America/New_York")
        assert (parts.year, parts.month, parts.day, parts.hour) == (2024, 2, 29, 22)


class TestLocalToUtc:
    """Test suite for wall-clock to UTC conversion"""

    def test_standard_time_offset(self):
        assert local_to_utc(2024, 2, 29, 9, 0, "America/New_York") == utc(2024, 2, 29, 14, 0)

    def test_daylight_time_offset(self):
        assert local_to_utc(2024, 3, 31, 9, 0, "America/New_York") == utc(2024, 3, 31, 13, 0)

    def test_positive_offset_zone(self):
        # Tokyo is UTC+9 all year
        assert local_to_utc(2024, 6, 1, 8, 30, "Asia/Tokyo") == utc(2024, 5, 31, 23, 30)

    def test_utc_is_identity(self):
        assert local_to_utc(2024, 1, 1, 0, 0, "UTC") == utc(2024, 1, 1, 0, 0)


class TestClampDay:
    """Test suite for day-of-month clamping"""

    @pytest.mark.parametrize("day_of_month,year,month,expected", [
        (31, 2024, 2, 29),
        (31, 2023, 2, 28),
        (31, 2024, 4, 30),
        (30, 2024, 2, 29),
        (31, 2024, 1, 31),
        (15, 2024, 2, 15),
        (0, 2024, 2, 1),
    ])
    def test_clamp_day(self, day_of_month, year, month, expected):
        assert clamp_day(day_of_month, year, month) == expected


class TestNextFireInstant:
    """Test suite for next_fire_instant"""

    def test_monthly_clamps_to_leap_day_in_new_york(self):
        spec = ScheduleSpec(frequency="monthly", time="09:00", timezone="America/New_York", day_of_month=31)
        result = next_fire_instant(spec, utc(2024, 2, 15, 20, 0))
        assert result == utc(2024, 2, 29, 14, 0)

    def test_monthly_rolls_over_dst_change_to_last_day_of_march(self):
        spec = ScheduleSpec(frequency="monthly", time="09:00", timezone="America/New_York", day_of_month=31)
        result = next_fire_instant(spec, utc(2024, 2, 29, 15, 0))
        assert result == utc(2024, 3, 31, 13, 0)

    def test_monthly_before_time_on_target_day_fires_same_day(self):
        spec = ScheduleSpec(frequency="monthly", time="09:00", timezone="UTC", day_of_month=15)
        assert next_fire_instant(spec, utc(2024, 5, 15, 8, 59)) == utc(2024, 5, 15, 9, 0)

    def test_monthly_december_rolls_into_next_year(self):
        spec = ScheduleSpec(frequency="monthly", time="09:00", timezone="UTC", day_of_month=10)
        assert next_fire_instant(spec, utc(2024, 12, 20, 0, 0)) == utc(2025, 1, 10, 9, 0)

    def test_daily_before_and_after_time(self):
        spec = ScheduleSpec(frequency="daily", time="18:30", timezone="UTC")
        assert next_fire_instant(spec, utc(2024, 3, 1, 12, 0)) == utc(2024, 3, 1, 18, 30)
        assert next_fire_instant(spec, utc(2024, 3, 1, 19, 0)) == utc(2024, 3, 2, 18, 30)

    def test_daily_month_end_rollover(self):
        spec = ScheduleSpec(frequency="daily", time="06:00", timezone="UTC")
        assert next_fire_instant(spec, utc(2024, 2, 29, 7, 0)) == utc(2024, 3, 1, 6, 0)

    def test_daily_uses_local_date(self):
        # 02:00 UTC March 1 is 21:00 February 29 in New York; 09:00 local has passed
        spec = ScheduleSpec(frequency="daily", time="09:00", timezone="America/New_York")
        assert next_fire_instant(spec, utc(2024, 3, 1, 2, 0)) == utc(2024, 3, 1, 14, 0)

    def test_weekly_later_this_week(self):
        # Friday 2024-03-01; target Monday
        spec = ScheduleSpec(frequency="weekly", time="09:00", timezone="UTC", day_of_week=1)
        assert next_fire_instant(spec, utc(2024, 3, 1, 12, 0)) == utc(2024, 3, 4, 9, 0)

    def test_weekly_wraparound_same_day_time_passed(self):
        # Friday 2024-03-01 is day_of_week 5
        spec = ScheduleSpec(frequency="weekly", time="09:00", timezone="UTC", day_of_week=5)
        now = utc(2024, 3, 1, 12, 0)
        result = next_fire_instant(spec, now)
        assert result == utc(2024, 3, 8, 9, 0)
        assert (result.date() - now.date()).days == 7

    def test_weekly_same_day_time_not_passed(self):
        spec = ScheduleSpec(frequency="weekly", time="18:00", timezone="UTC", day_of_week=5)
        assert next_fire_instant(spec, utc(2024, 3, 1, 12, 0)) == utc(2024, 3, 1, 18, 0)

    def test_quarterly_wraps_to_january_next_year(self):
        spec = ScheduleSpec(frequency="quarterly", time="09:00", timezone="UTC", day_of_month=1, months=[1, 4, 7, 10])
        assert next_fire_instant(spec, utc(2024, 11, 15, 0, 0)) == utc(2025, 1, 1, 9, 0)

    def test_quarterly_next_month_in_list(self):
        spec = ScheduleSpec(frequency="quarterly", time="09:00", timezone="UTC", day_of_month=15)
        assert next_fire_instant(spec, utc(2024, 2, 1, 0, 0)) == utc(2024, 4, 15, 9, 0)

    def test_quarterly_current_month_before_day(self):
        spec = ScheduleSpec(frequency="quarterly", time="09:00", timezone="UTC", day_of_month=20)
        assert next_fire_instant(spec, utc(2024, 4, 10, 0, 0)) == utc(2024, 4, 20, 9, 0)

    def test_quarterly_custom_months_clamp(self):
        spec = ScheduleSpec(frequency="quarterly", time="09:00", timezone="UTC", day_of_month=31, months=[2, 5, 8, 11])
        assert next_fire_instant(spec, utc(2023, 1, 31, 12, 0)) == utc(2023, 2, 28, 9, 0)

    def test_yearly_later_this_year(self):
        spec = ScheduleSpec(frequency="yearly", time="09:00", timezone="UTC", month=4, day_of_month=15)
        assert next_fire_instant(spec, utc(2024, 3, 1, 0, 0)) == utc(2024, 4, 15, 9, 0)

    def test_yearly_passed_rolls_to_next_year(self):
        spec = ScheduleSpec(frequency="yearly", time="09:00", timezone="UTC", month=4, day_of_month=15)
        assert next_fire_instant(spec, utc(2024, 4, 15, 9, 0)) == utc(2025, 4, 15, 9, 0)

    def test_yearly_leap_day_clamps_in_common_year(self):
        spec = ScheduleSpec(frequency="yearly", time="09:00", timezone="UTC", month=2, day_of_month=29)
        assert next_fire_instant(spec, utc(2024, 3, 1, 0, 0)) == utc(2025, 2, 28, 9, 0)

    @pytest.mark.parametrize("spec_kwargs,now", [
        ({"frequency": "daily"}, utc(2024, 3, 1, 9, 0)),
        ({"frequency": "weekly", "day_of_week": 5}, utc(2024, 3, 1, 9, 0)),
        ({"frequency": "monthly", "day_of_month": 1}, utc(2024, 3, 1, 9, 0)),
        ({"frequency": "quarterly", "day_of_month": 1, "months": [1, 4, 7, 10]}, utc(2024, 4, 1, 9, 0)),
        ({"frequency": "yearly", "month": 3, "day_of_month": 1}, utc(2024, 3, 1, 9, 0)),
    ])
    def test_boundary_equality_returns_next_cycle(self, spec_kwargs, now):
        spec = ScheduleSpec(time="09:00", timezone="UTC", **spec_kwargs)
        result = next_fire_instant(spec, now)
        assert result > now

    def test_invalid_timezone_matches_utc(self):
        now = utc(2024, 7, 4, 16, 45)
        broken = ScheduleSpec(frequency="monthly", time="09:00", timezone="Not/AZone", day_of_month=31)
        plain = ScheduleSpec(frequency="monthly", time="09:00", timezone="UTC", day_of_month=31)
        assert next_fire_instant(broken, now) == next_fire_instant(plain, now)

    def test_naive_now_is_treated_as_utc(self):
        spec = ScheduleSpec(frequency="daily", time="09:00", timezone="UTC")
        assert next_fire_instant(spec, datetime(2024, 3, 1, 8, 0)) == utc(2024, 3, 1, 9, 0)

    def test_result_is_aware_utc(self):
        spec = ScheduleSpec(frequency="daily", time="09:00", timezone="Europe/Berlin")
        result = next_fire_instant(spec, utc(2024, 3, 1, 0, 0))
        assert result.tzinfo is not None
        assert result.utcoffset() == timedelta(0)


class TestPreview:
    """Test suite for schedule preview helpers"""

    def test_preview_is_strictly_increasing(self):
        spec = ScheduleSpec(frequency="monthly", time="09:00", timezone="America/New_York", day_of_month=31)
        instants = preview_fire_instants(spec, 4, utc(2024, 1, 15, 0, 0))
        assert instants == [
            utc(2024, 1, 31, 14, 0),
            utc(2024, 2, 29, 14, 0),
            utc(2024, 3, 31, 13, 0),
            utc(2024, 4, 30, 13, 0),
        ]

    def test_preview_matches_repeated_next_fire_instant(self):
        spec = ScheduleSpec(frequency="weekly", time="07:15", timezone="Asia/Tokyo", day_of_week=3)
        now = utc(2024, 3, 1, 0, 0)
        instants = preview_fire_instants(spec, 3, now)
        first = next_fire_instant(spec, now)
        second = next_fire_instant(spec, first)
        assert instants[:2] == [first, second]
        assert instants[2] - instants[1] == timedelta(days=7)

    @pytest.mark.parametrize("spec_kwargs,expected", [
        ({"frequency": "daily"}, "Daily at 09:00 (UTC)"),
        ({"frequency": "weekly", "day_of_week": 1}, "Weekly on Monday at 09:00 (UTC)"),
        ({"frequency": "monthly", "day_of_month": 31, "timezone": "America/New_York"},
         "Monthly on day 31 at 09:00 (America/New_York)"),
        ({"frequency": "quarterly", "day_of_month": 5}, "Quarterly (Jan, Apr, Jul, Oct) on day 5 at 09:00 (UTC)"),
        ({"frequency": "yearly", "month": 12, "day_of_month": 24}, "Yearly on December 24 at 09:00 (UTC)"),
        ({"frequency": "daily", "timezone": "Bogus/Zone"}, "Daily at 09:00 (UTC)"),
    ])
    def test_describe_schedule(self, spec_kwargs, expected):
        spec = ScheduleSpec(**{"time": "09:00", "timezone": "UTC", **spec_kwargs})
        assert describe_schedule(spec) == expected
