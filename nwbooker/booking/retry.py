"""
Bounded retry around search + reservation
"""
import logging
from typing import Optional

from ..api.client import NordicWellnessClient, APIError, TransportError
from ..common.config import ActivityConfig
from ..common.models import BookingOutcome, BookingRun
from ..common.scheduler import RetryStrategy
from .matcher import SlotMatcher

logger = logging.getLogger(__name__)


class RetryController:
    """
    Runs search + reservation until one booking succeeds or the attempt
    budget is spent.

    Every attempt searches again; a candidate slot is never reused across
    attempts. A missing slot, a remote error and a transport error all
    consume one attempt.
    """

    def __init__(self, client: NordicWellnessClient, matcher: Optional[SlotMatcher] = None):
        self.client = client
        self.matcher = matcher or SlotMatcher(client)

    async def attempt(self, activity: ActivityConfig) -> BookingOutcome:
        """One search followed by at most one reservation"""
        try:
            slot = await self.matcher.find_slot(activity)
        except TransportError as e:
            return BookingOutcome.transport_failure(str(e))
        except APIError as e:
            return BookingOutcome.remote_failure(e.status_code, e.response_body or str(e))

        if slot is None:
            return BookingOutcome.not_found(activity.criteria)

        return await self.client.book(slot.id, activity.user_id, slot_name=slot.name)

    async def run(self, activity: ActivityConfig, strategy: RetryStrategy) -> BookingRun:
        run = BookingRun(activity=activity, max_attempts=strategy.max_attempts)
        outcome = BookingOutcome.not_found(activity.criteria)

        while strategy.should_retry():
            strategy.record_attempt()
            run.attempts_made = strategy.attempts

            outcome = await self.attempt(activity)
            if outcome.succeeded:
                logger.info(f"Booked {outcome.slot_name} for {activity.user_name}")
                run.mark_succeeded(outcome)
                return run

            logger.warning(
                f"Attempt {strategy.attempts}/{strategy.max_attempts} for {activity.label} "
                f"failed: {outcome.describe()}"
            )
            if strategy.should_retry():
                await strategy.wait()

        logger.error(
            f"Giving up on {activity.label} after {run.attempts_made} attempts: "
            f"{outcome.describe()}"
        )
        run.mark_exhausted(outcome)
        return run
