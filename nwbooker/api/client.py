"""
Nordic Wellness API client

Two calls matter: the group activity timeslot search and the booking POST.
The client holds no per-activity state and is shared by every runner.
"""
import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import ValidationError

from .endpoints import Endpoints, BookingRequest, DEFAULT_HEADERS, search_window
from ..common.config import Config, ActivityConfig
from ..common.models import SlotListing, BookingOutcome

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Raised when the provider answers with something unusable"""
    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TransportError(APIError):
    """Raised when the request never got a response (connect, timeout, decode)"""
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class NordicWellnessClient:
    """
    Async client for the Nordic Wellness group activity API.
    """

    def __init__(self, config: Config, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.endpoints = Endpoints(config.provider.base_url.rstrip("/"))
        self.client = client or httpx.AsyncClient(
            headers={**DEFAULT_HEADERS, **config.provider.headers},
            timeout=config.provider.timeout,
            follow_redirects=True
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.client.aclose()

    # ========================================
    # Slot search
    # ========================================

    def search_url(self, activity: ActivityConfig, now: Optional[datetime] = None) -> str:
        provider = self.config.provider
        date_from, date_to = search_window(
            provider.utc_offset_minutes,
            start_days=self.config.window_start_for(activity),
            end_days=provider.window_end_days,
            now=now,
        )
        return self.endpoints.timeslot(
            club_id=provider.club_id,
            activity_id=activity.activity_id,
            date_from=date_from,
            date_to=date_to,
            times=provider.times,
            user_id=activity.user_id,
        )

    async def search_slots(self, activity: ActivityConfig, now: Optional[datetime] = None) -> SlotListing:
        """
        Fetch the slot listing for an activity's search window.

        Raises:
            TransportError: the request could not be completed
            APIError: non-200 answer or a body that is not a slot listing
        """
        url = self.search_url(activity, now)
        logger.info(
            f"Sending request to get activities with id {activity.activity_id or '*'} "
            f"for user {activity.user_name}"
        )
        logger.debug(url)

        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Search request failed: {type(e).__name__}: {e}", cause=e) from e

        if response.status_code != 200:
            raise APIError(
                f"Failed to get activities: {response.status_code}",
                response.status_code,
                response.text
            )

        try:
            return SlotListing.model_validate_json(response.text)
        except ValidationError as e:
            raise APIError(
                f"Unable to parse activities response: {e}",
                response.status_code,
                response.text
            ) from e

    # ========================================
    # Reservation
    # ========================================

    async def book(self, slot_id: int, user_id: int, slot_name: Optional[str] = None) -> BookingOutcome:
        """
        Reserve a slot for a user.

        Only HTTP 200 counts as booked. Every other status, 400 included,
        comes back as a remote failure carrying the full response body.
        """
        request = BookingRequest(activity_id=slot_id, user_id=user_id)

        try:
            response = await self.client.post(
                self.endpoints.booking(),
                data=request.to_form()
            )
        except httpx.HTTPError as e:
            return BookingOutcome.transport_failure(f"{type(e).__name__}: {e}")

        if response.status_code != 200:
            return BookingOutcome.remote_failure(response.status_code, response.text)

        logger.debug(response.text)
        return BookingOutcome.booked(slot_name or str(slot_id), body=response.text)
