"""
Nordic Wellness Class Booker

Books recurring group-activity classes on Nordic Wellness as soon as
their booking window opens, for any number of users, each activity on
its own cron schedule.
"""
from .common.config import Config, load_config

__version__ = "1.0.0"

__all__ = [
    "Config",
    "load_config",
]
