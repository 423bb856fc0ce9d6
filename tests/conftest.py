import json
from unittest.mock import MagicMock

import pytest

from nwbooker.common.config import Config, ActivityConfig, RetryConfig


@pytest.fixture()
def config():
    return Config(
        retry=RetryConfig(max_attempts=3, backoff_seconds=0, cooldown_seconds=0),
    )


@pytest.fixture()
def activity():
    return ActivityConfig(
        name="Yoga",
        id="",
        user_id=42,
        user_name="Alex",
        day="Monday",
        schedule="0 0 18 * * mon",
    )


@pytest.fixture()
def make_slot():
    """Factory for one groupActivities entry as the provider sends it"""
    def _make_slot(
        id: int = 1,
        name: str = "Yoga Flow",
        start_time: str = "2030-01-07T18:00:00",
        status: str = "Bookable",
        **extra,
    ) -> dict:
        slot = {
            "Id": id,
            "Name": name,
            "ImageUrl": None,
            "Description": None,
            "Message": None,
            "Status": status,
            "StartTime": start_time,
            "EndTime": start_time[:11] + "19:00:00",
            "Location": "Sal 1",
            "Instructor": "Kim",
            "InstructorId": 7,
            "FreeSlots": 10,
            "Dropin": 0,
            "DropsAmount": 0,
            "BookingId": None,
        }
        slot.update(extra)
        return slot
    return _make_slot


@pytest.fixture()
def make_response():
    """Factory for httpx-like responses"""
    def _make_response(status_code: int = 200, body=None) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.text = body if isinstance(body, str) else json.dumps(body)
        return response
    return _make_response
