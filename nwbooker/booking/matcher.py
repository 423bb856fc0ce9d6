"""
Slot matching against the provider's listing
"""
import logging
from typing import Optional

from ..api.client import NordicWellnessClient
from ..common.config import ActivityConfig, NameMatch
from ..common.models import RemoteSlot, SlotListing

logger = logging.getLogger(__name__)


def name_matches(slot: RemoteSlot, activity: ActivityConfig) -> bool:
    if activity.match == NameMatch.EXACT:
        return slot.name == activity.name
    return activity.name.lower() in slot.name.lower()


def time_matches(slot: RemoteSlot, activity: ActivityConfig) -> bool:
    # Slot times are naive provider-local wall clock, so the weekday is taken as is
    if activity.day:
        try:
            return slot.weekday == activity.weekday
        except ValueError:
            logger.warning(f"Unparseable start time {slot.start_time!r} for slot {slot.id}")
            return False
    return slot.start_time.endswith(activity.start_time)


def slot_matches(slot: RemoteSlot, activity: ActivityConfig) -> bool:
    return name_matches(slot, activity) and time_matches(slot, activity) and slot.is_bookable


def select_slot(listing: SlotListing, activity: ActivityConfig) -> Optional[RemoteSlot]:
    """
    First slot satisfying name, time and status, in provider order.

    The provider's ordering (chronological as far as observed) is trusted
    as is; the listing is never re-sorted.
    """
    return next((s for s in listing.group_activities if slot_matches(s, activity)), None)


class SlotMatcher:
    """Searches the provider and picks at most one candidate slot"""

    def __init__(self, client: NordicWellnessClient):
        self.client = client

    async def find_slot(self, activity: ActivityConfig) -> Optional[RemoteSlot]:
        """
        Query the listing and select the slot to book.

        Raises APIError / TransportError from the client when the listing
        cannot be obtained.
        """
        listing = await self.client.search_slots(activity)
        slot = select_slot(listing, activity)

        if slot is None:
            logger.info(
                f"Unable to find activity for {activity.user_name} with {activity.criteria}"
            )
            logger.info(listing.to_pretty_json())
            return None

        logger.info(f"Found {slot.name} starting at time {slot.start_time}. Attempting to book it")
        return slot
