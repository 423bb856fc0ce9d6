"""
Data models for the Nordic Wellness booker
"""
from datetime import datetime
from typing import Optional, List, Any
from pydantic import BaseModel, ConfigDict, Field
from dateutil import parser as date_parser
from enum import Enum

from .config import ActivityConfig


class SlotStatus(str, Enum):
    BOOKABLE = "Bookable"
    UNAVAILABLE = "Unavailable"
    BOOKED = "Booked"


class RemoteSlot(BaseModel):
    """One group activity occurrence as listed by the provider"""
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(alias="Id")
    name: str = Field(alias="Name")
    image_url: Optional[Any] = Field(default=None, alias="ImageUrl")
    description: Optional[Any] = Field(default=None, alias="Description")
    message: Optional[str] = Field(default=None, alias="Message")
    status: str = Field(alias="Status")
    start_time: str = Field(alias="StartTime")  # naive provider local time
    end_time: str = Field(alias="EndTime")
    location: str = Field(default="", alias="Location")
    instructor: str = Field(default="", alias="Instructor")
    instructor_id: Optional[int] = Field(default=None, alias="InstructorId")
    free_slots: int = Field(default=0, alias="FreeSlots")
    dropin: int = Field(default=0, alias="Dropin")
    drops_amount: int = Field(default=0, alias="DropsAmount")
    booking_id: Optional[Any] = Field(default=None, alias="BookingId")

    @property
    def starts_at(self) -> datetime:
        """Start time in the provider's local wall clock (naive)"""
        return date_parser.isoparse(self.start_time).replace(tzinfo=None)

    @property
    def weekday(self) -> int:
        return self.starts_at.weekday()

    @property
    def is_bookable(self) -> bool:
        return self.status == SlotStatus.BOOKABLE.value


class SlotListing(BaseModel):
    """Search response from the timeslot endpoint"""
    group_activities: List[RemoteSlot] = Field(alias="groupActivities")

    model_config = ConfigDict(populate_by_name=True)

    def to_pretty_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class OutcomeKind(str, Enum):
    BOOKED = "booked"
    NOT_FOUND = "not_found"
    REMOTE_FAILURE = "remote_failure"
    TRANSPORT_FAILURE = "transport_failure"


class BookingOutcome(BaseModel):
    """Classified result of a single search + reservation attempt"""
    kind: OutcomeKind
    slot_name: Optional[str] = None
    criteria: Optional[str] = None
    status_code: Optional[int] = None
    body: Optional[str] = None
    cause: Optional[str] = None

    @classmethod
    def booked(cls, slot_name: str, body: Optional[str] = None) -> "BookingOutcome":
        return cls(kind=OutcomeKind.BOOKED, slot_name=slot_name, status_code=200, body=body)

    @classmethod
    def not_found(cls, criteria: str) -> "BookingOutcome":
        return cls(kind=OutcomeKind.NOT_FOUND, criteria=criteria)

    @classmethod
    def remote_failure(cls, status_code: Optional[int], body: Optional[str]) -> "BookingOutcome":
        return cls(kind=OutcomeKind.REMOTE_FAILURE, status_code=status_code, body=body)

    @classmethod
    def transport_failure(cls, cause: str) -> "BookingOutcome":
        return cls(kind=OutcomeKind.TRANSPORT_FAILURE, cause=cause)

    @property
    def succeeded(self) -> bool:
        return self.kind == OutcomeKind.BOOKED

    def describe(self) -> str:
        if self.kind == OutcomeKind.BOOKED:
            return f"booked {self.slot_name}"
        if self.kind == OutcomeKind.NOT_FOUND:
            return f"no activity matching {self.criteria}"
        if self.kind == OutcomeKind.REMOTE_FAILURE:
            return f"code {self.status_code}: {self.body}"
        return f"transport failure: {self.cause}"


class RunState(str, Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class BookingRun(BaseModel):
    """Record of one retry-controlled booking run for a trigger occurrence"""
    activity: ActivityConfig
    state: RunState = RunState.ATTEMPTING
    attempts_made: int = 0
    max_attempts: int = 1
    outcome: Optional[BookingOutcome] = None
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def mark_succeeded(self, outcome: BookingOutcome):
        """Mark run as successful"""
        self.state = RunState.SUCCEEDED
        self.outcome = outcome
        self.completed_at = datetime.now()

    def mark_exhausted(self, outcome: BookingOutcome):
        """Mark run as failed after the last allowed attempt"""
        self.state = RunState.EXHAUSTED
        self.outcome = outcome
        self.completed_at = datetime.now()

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.SUCCEEDED


class NotificationPayload(BaseModel):
    """Notification content"""
    title: str
    message: str
    urgency: str = "normal"  # low, normal, high
    run: Optional[BookingRun] = None
