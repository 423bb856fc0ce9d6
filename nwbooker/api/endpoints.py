"""
Nordic Wellness group activity API endpoints

These are the endpoints the member web app talks to; they are not a
published API and may change without notice.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Tuple
from urllib.parse import urlencode


BASE_URL = "https://api1.nordicwellness.se"

QUEUE_TYPE_ORDINARY = "ordinary"


def provider_today(utc_offset_minutes: int, now: datetime | None = None) -> date:
    """Calendar date in the provider's fixed offset"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone(timedelta(minutes=utc_offset_minutes))).date()


def search_window(
    utc_offset_minutes: int,
    start_days: int = 0,
    end_days: int = 7,
    now: datetime | None = None,
) -> Tuple[date, date]:
    """First and last provider-local date to search"""
    today = provider_today(utc_offset_minutes, now)
    return today + timedelta(days=start_days), today + timedelta(days=end_days)


@dataclass
class Endpoints:
    """
    Collection of Nordic Wellness API endpoints.
    """

    base_url: str = BASE_URL

    def timeslot(
        self,
        club_id: str,
        activity_id: str,
        date_from: date,
        date_to: date,
        times: str,
        user_id: int,
    ) -> str:
        """
        Search group activities in a date range.

        GET /GroupActivity/timeslot?clubIds=..&activities=..&dates=FROM,TO&...

        An empty ``activities`` value means every activity type.
        Response: {"groupActivities": [{"Id": .., "Name": .., "Status": ..}, ...]}
        """
        params = {
            "clubIds": club_id,
            "activities": activity_id,
            "dates": f"{date_from.isoformat()},{date_to.isoformat()}",
            "time": "",
            "employees": "",
            "times": times,
            "datespan": "true",
            "userId": user_id,
        }
        return f"{self.base_url}/GroupActivity/timeslot?{urlencode(params)}"

    def booking(self) -> str:
        """
        Reserve a slot.

        POST /Booking
        Body (form encoded): ActivityId=..&UserId=..&QueueType=ordinary
        """
        return f"{self.base_url}/Booking"


@dataclass
class BookingRequest:
    """Form body for the booking endpoint"""
    activity_id: int
    user_id: int
    queue_type: str = QUEUE_TYPE_ORDINARY

    def to_form(self) -> dict:
        return {
            "ActivityId": str(self.activity_id),
            "UserId": str(self.user_id),
            "QueueType": self.queue_type,
        }


# Common request headers to mimic the web app
DEFAULT_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "sv-SE,sv;q=0.9,en;q=0.8",
    "Origin": "https://www.nordicwellness.se",
    "Referer": "https://www.nordicwellness.se/",
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
}
