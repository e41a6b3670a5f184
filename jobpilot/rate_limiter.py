"""Submission pacing: minimum spacing plus hourly and daily ceilings."""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from jobpilot.log import get_logger

log = get_logger(__name__)

HOUR_SECONDS = 3600.0
DAILY_RESET_POLICIES = ("calendar", "run")


@dataclass(frozen=True)
class RateLimits:
    min_interval: float = 3.0
    max_per_hour: int = 50
    max_per_day: int = 300
    daily_reset: str = "calendar"

    def __post_init__(self) -> None:
        if self.daily_reset not in DAILY_RESET_POLICIES:
            raise ValueError(
                f"daily_reset must be one of {DAILY_RESET_POLICIES}, got {self.daily_reset!r}"
            )


class RateLimiter:
    """Three independent gates: spacing, hourly cap, daily cap.

    ``daily_reset="calendar"`` zeroes the daily counter the first time the
    limiter is consulted on a new local date; ``"run"`` keeps one daily budget
    for the whole lifetime of the limiter.
    """

    def __init__(
        self,
        limits: RateLimits | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limits = limits or RateLimits()
        self._clock = clock
        now = clock()
        self.hour_start = now
        self.hourly_count = 0
        self.daily_count = 0
        self.last_submission: float | None = None
        self._day = self._date_of(now)

    @staticmethod
    def _date_of(ts: float) -> date:
        return datetime.fromtimestamp(ts).date()

    def _roll_windows(self, now: float) -> None:
        if now - self.hour_start >= HOUR_SECONDS:
            self.hourly_count = 0
            self.hour_start = now
        if self.limits.daily_reset == "calendar":
            today = self._date_of(now)
            if today != self._day:
                log.info("New day %s — daily submission counter reset", today)
                self.daily_count = 0
                self._day = today

    def check_rate_limit(self) -> bool:
        now = self._clock()
        self._roll_windows(now)

        if self.last_submission is not None and now - self.last_submission < self.limits.min_interval:
            log.debug("Rate limit: %.1fs since last submission (min %.1fs)",
                      now - self.last_submission, self.limits.min_interval)
            return False
        if self.hourly_count >= self.limits.max_per_hour:
            log.info("Rate limit: hourly cap reached (%d/%d)",
                     self.hourly_count, self.limits.max_per_hour)
            return False
        if self.daily_count >= self.limits.max_per_day:
            log.info("Rate limit: daily cap reached (%d/%d)",
                     self.daily_count, self.limits.max_per_day)
            return False
        return True

    def record_submission(self) -> None:
        now = self._clock()
        self._roll_windows(now)
        self.last_submission = now
        self.hourly_count += 1
        self.daily_count += 1
        log.debug("Submission counted: hourly=%d daily=%d", self.hourly_count, self.daily_count)

    def snapshot(self) -> dict[str, float | int | None]:
        return {
            "hourly_count": self.hourly_count,
            "daily_count": self.daily_count,
            "hour_start": self.hour_start,
            "last_submission": self.last_submission,
        }
