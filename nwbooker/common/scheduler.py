"""
Scheduling primitives for the Nordic Wellness booker

The provider's local time is a fixed UTC offset year-round: no daylight
saving adjustment is ever applied.
"""
import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterator, Optional

import pytz
from apscheduler.triggers.cron import CronTrigger

from .config import ConfigurationError

logger = logging.getLogger(__name__)

CRON_FIELDS = ("second", "minute", "hour", "day", "month", "day_of_week", "year")

# Crontab day-of-week numbering: 0 and 7 are Sunday
CRONTAB_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")

NUMERIC_WEEKDAY = re.compile(r"(\*|\d+)(?:-(\d+))?(?:/(\d+))?")


def fixed_offset(minutes: int) -> tzinfo:
    """Timezone for a constant offset from UTC, in minutes"""
    return pytz.FixedOffset(minutes)


def cron_timezone(minutes: int) -> tzinfo:
    """Constant offset timezone accepted by every APScheduler 3.x release"""
    return timezone(timedelta(minutes=minutes))


def crontab_day_of_week(field: str) -> str:
    """
    Rewrite numeric day-of-week values from crontab numbering
    (0 or 7 = Sunday, 1 = Monday) to weekday names.

    APScheduler counts 0 as Monday, so numbers are never handed to it
    directly. Names (``mon-fri``) and a bare ``*`` pass through unchanged.
    """
    days = []
    for part in field.split(","):
        match = NUMERIC_WEEKDAY.fullmatch(part)
        if not match or part == "*":
            days.append(part)
            continue

        first, last, step = match.groups()
        if first == "*":
            if last is not None:
                raise ConfigurationError(f"Invalid day of week {part!r}")
            start, end = 0, 6
        else:
            start = int(first)
            end = int(last) if last is not None else (7 if step else start)
        if end > 7 or start > end or step == "0":
            raise ConfigurationError(f"Invalid day of week {part!r}")

        for day in range(start, end + 1, int(step or 1)):
            days.append(CRONTAB_WEEKDAYS[day])

    return ",".join(dict.fromkeys(days))


def parse_cron(expression: str, tz: tzinfo) -> CronTrigger:
    """
    Parse a cron expression into a trigger.

    Accepts the classic 5 field crontab form
    (``minute hour day month day_of_week``) and the 6/7 field form with a
    leading seconds field and optional trailing year
    (``second minute hour day month day_of_week [year]``).

    Day-of-week numbers use crontab numbering in both forms: 0 and 7 are
    Sunday, 1 is Monday.
    """
    fields = expression.split()
    if len(fields) == 5:
        fields = ["0"] + fields
    if len(fields) not in (6, 7):
        raise ConfigurationError(
            f"Invalid cron expression {expression!r}: expected 5, 6 or 7 fields, got {len(expression.split())}"
        )

    values = dict(zip(CRON_FIELDS, fields))
    try:
        values["day_of_week"] = crontab_day_of_week(values["day_of_week"])
        return CronTrigger(timezone=tz, **values)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid cron expression {expression!r}: {e}") from e


class ScheduleClock:
    """
    Turns a recurrence expression into future wake instants.

    The expression is parsed once, at construction; a bad expression raises
    ConfigurationError before any scheduling begins.
    """

    def __init__(self, expression: str, utc_offset_minutes: int = 120):
        self.expression = expression
        self.tz = cron_timezone(utc_offset_minutes)
        self.trigger = parse_cron(expression, self.tz)

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.tz)
        return moment.astimezone(self.tz)

    def next_wake(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """
        First fire time strictly after ``now``.

        Returns None when the expression has no future fire times left
        (for instance a year field that lies in the past).
        """
        now = self._localize(now) if now else datetime.now(self.tz)
        # The trigger treats its start as inclusive
        return self.trigger.get_next_fire_time(None, now + timedelta(microseconds=1))

    def wakes(self, now: Optional[datetime] = None) -> Iterator[datetime]:
        """Lazy, strictly increasing sequence of wake instants after ``now``"""
        current = self._localize(now) if now else datetime.now(self.tz)
        while True:
            wake = self.next_wake(current)
            if wake is None:
                return
            yield wake
            current = wake

    def __repr__(self) -> str:
        return f"ScheduleClock({self.expression!r}, {self.tz})"


class PrecisionScheduler:
    """
    Sleeps until wall-clock instants in the provider's fixed offset.

    Long waits are split into chunks so clock adjustments while sleeping
    are picked up before the target is reached.
    """

    def __init__(self, utc_offset_minutes: int = 120):
        self.tz = fixed_offset(utc_offset_minutes)

    def now(self) -> datetime:
        """Get current time in the provider's timezone"""
        return datetime.now(self.tz)

    async def wait_until(self, target: datetime) -> None:
        """
        Wait until the target time.

        A target that is already due returns immediately; the wait is never
        negative.
        """
        if target.tzinfo is None:
            target = self.tz.localize(target)

        logger.debug(f"Waiting until {target.isoformat()}")

        while True:
            remaining = (target - datetime.now(self.tz)).total_seconds()
            if remaining <= 0:
                return

            # Use different strategies based on remaining time
            if remaining > 60:
                await asyncio.sleep(min(remaining - 30, 300))
            elif remaining > 5:
                await asyncio.sleep(1)
            else:
                await asyncio.sleep(min(remaining, 0.1))

    def time_until(self, target: datetime) -> timedelta:
        """Get timedelta until target"""
        now = datetime.now(self.tz)
        if target.tzinfo is None:
            target = self.tz.localize(target)
        return target - now

    def format_countdown(self, target: datetime) -> str:
        """Format remaining time as human-readable string"""
        delta = self.time_until(target)
        total_seconds = int(delta.total_seconds())

        if total_seconds < 0:
            return "NOW!"

        days = total_seconds // 86400
        hours = (total_seconds % 86400) // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        parts.append(f"{seconds}s")

        return " ".join(parts)


class RetryStrategy:
    """
    Bounded retry budget with a fixed delay between attempts.
    """

    def __init__(self, max_attempts: int = 3, delay_seconds: float = 60.0):
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.attempts = 0

    def should_retry(self) -> bool:
        """Check if another attempt should be made"""
        return self.attempts < self.max_attempts

    def record_attempt(self):
        """Record an attempt"""
        self.attempts += 1

    @property
    def remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)

    async def wait(self):
        """Wait the fixed backoff before the next attempt"""
        await asyncio.sleep(self.delay_seconds)

    def reset(self):
        """Reset attempt counter"""
        self.attempts = 0
