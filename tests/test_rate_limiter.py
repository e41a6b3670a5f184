from datetime import datetime

import pytest

from jobpilot.rate_limiter import RateLimiter, RateLimits


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 9, 0).timestamp())


def _limiter(clock, **kwargs):
    limits = RateLimits(**{"min_interval": 3, "max_per_hour": 50, "max_per_day": 300, **kwargs})
    return RateLimiter(limits, clock=clock)


def test_fresh_limiter_allows(clock):
    assert _limiter(clock).check_rate_limit()


def test_spacing_gate_alone(clock):
    limiter = _limiter(clock)
    limiter.record_submission()
    clock.now += 2
    assert not limiter.check_rate_limit()
    clock.now += 1
    assert limiter.check_rate_limit()


def test_hourly_gate_alone(clock):
    limiter = _limiter(clock, max_per_hour=2)
    for _ in range(2):
        limiter.record_submission()
        clock.now += 10
    assert not limiter.check_rate_limit()


def test_hourly_counter_resets_after_an_hour(clock):
    limiter = _limiter(clock, max_per_hour=1)
    limiter.record_submission()
    clock.now += 3599
    assert not limiter.check_rate_limit()
    clock.now += 1
    assert limiter.check_rate_limit()
    assert limiter.hourly_count == 0


def test_daily_gate_alone(clock):
    limiter = _limiter(clock, max_per_day=2)
    for _ in range(2):
        limiter.record_submission()
        clock.now += 3600  # new hour every time, so only the daily cap can refuse
    assert limiter.hourly_count <= 1
    assert not limiter.check_rate_limit()


def test_daily_counter_resets_on_new_calendar_day(clock):
    limiter = _limiter(clock, max_per_day=1, daily_reset="calendar")
    limiter.record_submission()
    clock.now += 3 * 3600
    assert not limiter.check_rate_limit()
    clock.now += 24 * 3600
    assert limiter.check_rate_limit()


def test_run_policy_never_resets_daily_counter(clock):
    limiter = _limiter(clock, max_per_day=1, daily_reset="run")
    limiter.record_submission()
    clock.now += 3 * 24 * 3600
    assert not limiter.check_rate_limit()


def test_record_submission_updates_counters(clock):
    limiter = _limiter(clock)
    limiter.record_submission()
    snap = limiter.snapshot()
    assert snap["hourly_count"] == 1
    assert snap["daily_count"] == 1
    assert snap["last_submission"] == clock.now


def test_unknown_reset_policy_rejected():
    with pytest.raises(ValueError):
        RateLimits(daily_reset="weekly")
