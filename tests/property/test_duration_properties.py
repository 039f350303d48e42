"""Property-based tests for the duration policy"""

import pytest
from datetime import datetime, timedelta, timezone
from hypothesis import given, strategies as st, settings

from automation_engine.schemas.automation import (
    CountDuration,
    ForeverDuration,
    ScheduleSpec,
    ScheduleState,
    UntilDuration,
)
from automation_engine.services.duration_policy import has_expired, remaining_runs


instants = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2099, 12, 31),
    timezones=st.just(timezone.utc),
)


def spec_with(duration) -> ScheduleSpec:
    return ScheduleSpec(frequency="daily", time="09:00", duration=duration)


@pytest.mark.property
class TestForeverProperties:

    @given(runs=st.integers(min_value=0, max_value=100_000), now=instants)
    @settings(max_examples=100, deadline=None)
    def test_forever_never_expires(self, runs, now):
        spec = spec_with(ForeverDuration())
        assert not has_expired(spec, ScheduleState(runs_completed=runs), now)
        assert remaining_runs(spec, ScheduleState(runs_completed=runs)) is None


@pytest.mark.property
class TestCountProperties:

    @given(
        run_count=st.integers(min_value=1, max_value=500),
        runs=st.integers(min_value=0, max_value=1000),
        now=instants,
    )
    @settings(max_examples=200, deadline=None)
    def test_expires_exactly_at_run_count(self, run_count, runs, now):
        spec = spec_with(CountDuration(run_count=run_count))
        assert has_expired(spec, ScheduleState(runs_completed=runs), now) == (runs >= run_count)

    @given(run_count=st.integers(min_value=1, max_value=200))
    @settings(max_examples=50, deadline=None)
    def test_increments_allow_exactly_run_count_runs(self, run_count):
        """Counting from zero, the schedule fires run_count times before retiring"""
        spec = spec_with(CountDuration(run_count=run_count))
        state = ScheduleState()
        fired = 0
        while not has_expired(spec, state):
            fired += 1
            state = state.incremented()

        assert fired == run_count
        assert remaining_runs(spec, state) == 0

    @given(run_count=st.integers(min_value=1, max_value=200), runs=st.integers(min_value=0, max_value=400))
    @settings(max_examples=100, deadline=None)
    def test_remaining_runs_never_negative(self, run_count, runs):
        remaining = remaining_runs(spec_with(CountDuration(run_count=run_count)), ScheduleState(runs_completed=runs))
        assert remaining == max(0, run_count - runs)


@pytest.mark.property
class TestUntilProperties:

    @given(until=instants, offset_seconds=st.integers(min_value=-10**8, max_value=10**8))
    @settings(max_examples=200, deadline=None)
    def test_expires_once_now_reaches_until(self, until, offset_seconds):
        spec = spec_with(UntilDuration(run_until=until))
        now = until + timedelta(seconds=offset_seconds)
        assert has_expired(spec, ScheduleState(), now) == (offset_seconds >= 0)

    @given(until=instants, runs=st.integers(min_value=0, max_value=1000))
    @settings(max_examples=100, deadline=None)
    def test_counter_is_irrelevant(self, until, runs):
        spec = spec_with(UntilDuration(run_until=until))
        before = until - timedelta(seconds=1)
        assert not has_expired(spec, ScheduleState(runs_completed=runs), before)
        assert has_expired(spec, ScheduleState(runs_completed=runs), until)
