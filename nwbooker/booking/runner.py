"""
Per-activity booking loop
"""
import asyncio
import logging
from typing import Optional

from ..common.config import ActivityConfig
from ..common.models import BookingRun
from ..common.notifications import NotificationManager
from ..common.scheduler import PrecisionScheduler, RetryStrategy, ScheduleClock
from .retry import RetryController

logger = logging.getLogger(__name__)


class ActivityRunner:
    """
    Drives one configured activity forever:
    wait for the next wake instant, book with retries, cool down, repeat.
    """

    def __init__(
        self,
        activity: ActivityConfig,
        clock: ScheduleClock,
        controller: RetryController,
        scheduler: PrecisionScheduler,
        max_attempts: int = 3,
        backoff_seconds: float = 60.0,
        cooldown_seconds: float = 300.0,
        notifications: Optional[NotificationManager] = None,
    ):
        self.activity = activity
        self.clock = clock
        self.controller = controller
        self.scheduler = scheduler
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.cooldown_seconds = cooldown_seconds
        self.notifications = notifications

    @property
    def name(self) -> str:
        return self.activity.label

    async def run_occurrence(self) -> BookingRun:
        """Book once, right now, within the retry budget"""
        logger.info(f"Checking activity {self.activity.name} for user {self.activity.user_name}")
        strategy = RetryStrategy(self.max_attempts, self.backoff_seconds)
        run = await self.controller.run(self.activity, strategy)

        if self.notifications:
            await self.notifications.notify(run)
        return run

    async def cooldown(self):
        # Keeps a fast trigger from entering the same booking window twice
        await asyncio.sleep(self.cooldown_seconds)

    async def run_forever(self):
        while True:
            wake = self.clock.next_wake(self.scheduler.now())
            if wake is None:
                logger.warning(f"Schedule {self.clock.expression!r} for {self.name} has no future runs")
                return

            logger.info(
                f"Next run for {self.name} at {wake.isoformat()} "
                f"(in {self.scheduler.format_countdown(wake)})"
            )
            await self.scheduler.wait_until(wake)
            await self.run_occurrence()
            await self.cooldown()
