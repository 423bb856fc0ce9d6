"""
Booking engine: matching, retries, per-activity loops and their supervisor
"""
from .matcher import SlotMatcher, select_slot
from .retry import RetryController
from .runner import ActivityRunner
from .supervisor import Supervisor

__all__ = [
    "SlotMatcher",
    "select_slot",
    "RetryController",
    "ActivityRunner",
    "Supervisor",
]
