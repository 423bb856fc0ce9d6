"""
Runs one supervised booking loop per configured activity
"""
import asyncio
import logging
from typing import Dict, List, Optional

from ..api.client import NordicWellnessClient
from ..common.config import Config, ActivityConfig, ConfigurationError
from ..common.models import BookingRun
from ..common.notifications import NotificationManager
from ..common.scheduler import PrecisionScheduler, ScheduleClock
from .retry import RetryController
from .runner import ActivityRunner

logger = logging.getLogger(__name__)


class Supervisor:
    """
    Starts every activity runner as its own task and keeps them alive.

    A runner that raises is logged at its own boundary and, if configured,
    restarted after a delay; siblings are never affected. Activities whose
    schedule cannot be parsed are skipped at startup.
    """

    def __init__(
        self,
        config: Config,
        activities: List[ActivityConfig],
        client: NordicWellnessClient,
        notifications: Optional[NotificationManager] = None,
    ):
        self.config = config
        self.client = client
        self.notifications = notifications
        self.scheduler = PrecisionScheduler(config.provider.utc_offset_minutes)
        self.controller = RetryController(client)
        self.tasks: Dict[str, asyncio.Task] = {}
        self.runners: List[ActivityRunner] = []

        for activity in activities:
            try:
                self.runners.append(self.build_runner(activity))
            except ConfigurationError as e:
                logger.error(f"Not scheduling {activity.label}: {e}")
            except Exception:
                logger.exception(f"Not scheduling {activity.label}")

    def build_runner(self, activity: ActivityConfig) -> ActivityRunner:
        clock = ScheduleClock(
            self.config.cron_for(activity),
            self.config.provider.utc_offset_minutes
        )
        return ActivityRunner(
            activity=activity,
            clock=clock,
            controller=self.controller,
            scheduler=self.scheduler,
            max_attempts=self.config.max_attempts_for(activity),
            backoff_seconds=self.config.retry.backoff_seconds,
            cooldown_seconds=self.config.retry.cooldown_seconds,
            notifications=self.notifications,
        )

    async def _supervise(self, runner: ActivityRunner):
        supervisor = self.config.supervisor
        while True:
            try:
                await runner.run_forever()
                logger.info(f"Runner for {runner.name} finished")
                return
            except Exception:
                logger.exception(f"Runner for {runner.name} crashed")
                if not supervisor.restart_failed:
                    return
            logger.info(f"Restarting {runner.name} in {supervisor.restart_delay_seconds:.0f}s")
            await asyncio.sleep(supervisor.restart_delay_seconds)

    def start(self) -> Dict[str, asyncio.Task]:
        for index, runner in enumerate(self.runners):
            key = f"{index}:{runner.name}"
            self.tasks[key] = asyncio.create_task(self._supervise(runner), name=key)
        logger.info(f"Trying to book {len(self.runners)} activities")
        return self.tasks

    @property
    def alive(self) -> List[str]:
        return [key for key, task in self.tasks.items() if not task.done()]

    async def run(self):
        """Block for as long as any runner is alive"""
        if not self.tasks:
            self.start()
        if not self.tasks:
            logger.warning("No activities to book")
            return
        await asyncio.gather(*self.tasks.values())
        logger.warning("All activity runners have stopped")

    async def run_once(self) -> List[Optional[BookingRun]]:
        """One booking pass for every activity, concurrently, without waiting for schedules"""
        async def guarded(runner: ActivityRunner) -> Optional[BookingRun]:
            try:
                return await runner.run_occurrence()
            except Exception:
                logger.exception(f"Booking {runner.name} crashed")
                return None

        return list(await asyncio.gather(*(guarded(r) for r in self.runners)))
