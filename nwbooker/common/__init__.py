"""
Common utilities for the Nordic Wellness booker
"""
from .config import (
    ActivityConfig,
    Config,
    ConfigurationError,
    NameMatch,
    load_activities,
    load_config,
)
from .models import (
    SlotStatus,
    RemoteSlot,
    SlotListing,
    OutcomeKind,
    BookingOutcome,
    RunState,
    BookingRun,
    NotificationPayload,
)
from .notifications import NotificationManager
from .scheduler import PrecisionScheduler, RetryStrategy, ScheduleClock

__all__ = [
    "ActivityConfig",
    "Config",
    "ConfigurationError",
    "NameMatch",
    "load_activities",
    "load_config",
    "SlotStatus",
    "RemoteSlot",
    "SlotListing",
    "OutcomeKind",
    "BookingOutcome",
    "RunState",
    "BookingRun",
    "NotificationPayload",
    "NotificationManager",
    "PrecisionScheduler",
    "RetryStrategy",
    "ScheduleClock",
]
