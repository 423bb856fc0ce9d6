"""
Configuration management for the Nordic Wellness booker
"""
import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

WEEKDAYS = {
    "mon": 0, "monday": 0,
    "tue": 1, "tuesday": 1,
    "wed": 2, "wednesday": 2,
    "thu": 3, "thursday": 3,
    "fri": 4, "friday": 4,
    "sat": 5, "saturday": 5,
    "sun": 6, "sunday": 6,
}


class ConfigurationError(ValueError):
    """Raised when an activity or the process cannot be configured"""
    pass


def parse_weekday(value: str) -> int:
    """Map a weekday name or abbreviation to Python's weekday number (Monday = 0)"""
    try:
        return WEEKDAYS[value.strip().lower()]
    except KeyError:
        raise ConfigurationError(f"Invalid week day: {value!r}")


class NameMatch(str, Enum):
    CONTAINS = "contains"
    EXACT = "exact"


class ActivityConfig(BaseModel):
    """One recurring class to book for one user"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    activity_id: str = Field(default="", alias="id")
    user_id: int
    user_name: str
    schedule: Optional[str] = None
    day: Optional[str] = None
    start_time: Optional[str] = None
    match: NameMatch = NameMatch.CONTAINS
    disabled: Optional[bool] = None
    max_attempts: Optional[int] = Field(default=None, ge=1)
    window_start_days: Optional[int] = Field(default=None, ge=0)

    @field_validator("name", "user_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("activity_id", mode="before")
    @classmethod
    def _activity_id_as_str(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("day")
    @classmethod
    def _valid_day(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_weekday(value)
        return value

    @model_validator(mode="after")
    def _has_temporal_criterion(self) -> "ActivityConfig":
        if not self.day and not self.start_time:
            raise ValueError("either 'day' or 'start_time' is required")
        return self

    @property
    def enabled(self) -> bool:
        return not (self.disabled or False)

    @property
    def weekday(self) -> Optional[int]:
        return parse_weekday(self.day) if self.day else None

    @property
    def criteria(self) -> str:
        """Human readable matching criteria, used in log lines"""
        when = f"day {self.day}" if self.day else f"start time *{self.start_time}"
        return f"name {self.match.value} {self.name!r}, {when}, status Bookable"

    @property
    def label(self) -> str:
        return f"{self.name} for {self.user_name}"


class ProviderConfig(BaseModel):
    base_url: str = "https://api1.nordicwellness.se"
    club_id: str = "1"
    times: str = "09:00-11:00,17:00-22:00"
    timeout: float = 30.0
    utc_offset_hours: float = 2.0
    window_start_days: int = 0
    window_end_days: int = 7
    # Merged over nwbooker.api.endpoints.DEFAULT_HEADERS
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def utc_offset_minutes(self) -> int:
        return int(round(self.utc_offset_hours * 60))


class ScheduleConfig(BaseModel):
    default_cron: str = "0 0 18 * * *"


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = 60.0
    cooldown_seconds: float = 300.0


class SupervisorConfig(BaseModel):
    restart_failed: bool = True
    restart_delay_seconds: float = 300.0


class WebhookConfig(BaseModel):
    enabled: bool = False
    url: Optional[str] = None


class NotificationsConfig(BaseModel):
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None


class Config(BaseModel):
    """Main configuration class"""
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    activities: List[Dict[str, Any]] = Field(default_factory=list)
    activities_file: Optional[str] = None
    activities_url: Optional[str] = None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file"""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        config = cls(**data)
        # Relative activity files are resolved against the config file location
        if config.activities_file and not Path(config.activities_file).is_absolute():
            candidate = path.parent / config.activities_file
            if candidate.exists():
                config.activities_file = str(candidate)
        return config

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables"""
        activities_file = os.environ.get("NWBOOKER_ACTIVITIES_FILE")
        activities_url = os.environ.get("NWBOOKER_ACTIVITIES_URL")
        if not activities_file and not activities_url:
            raise KeyError("NWBOOKER_ACTIVITIES_FILE")

        return cls(
            provider=ProviderConfig(
                utc_offset_hours=float(os.environ.get("NWBOOKER_UTC_OFFSET_HOURS", "2")),
            ),
            logging=LoggingConfig(level=os.environ.get("NWBOOKER_LOG_LEVEL", "INFO")),
            activities_file=activities_file,
            activities_url=activities_url,
        )

    def activity_records(self) -> List[Dict[str, Any]]:
        """Raw activity records from every configured source, in order"""
        records = list(self.activities)
        if self.activities_file:
            records.extend(read_activities_file(self.activities_file))
        if self.activities_url:
            records.extend(fetch_remote_activities(
                self.activities_url,
                api_key=os.environ.get("NWBOOKER_CONFIG_API_KEY"),
                timeout=self.provider.timeout,
            ))
        return records

    def load_activities(self) -> List[ActivityConfig]:
        return load_activities(self.activity_records())

    def max_attempts_for(self, activity: ActivityConfig) -> int:
        return activity.max_attempts or self.retry.max_attempts

    def cron_for(self, activity: ActivityConfig) -> str:
        return activity.schedule or self.schedule.default_cron

    def window_start_for(self, activity: ActivityConfig) -> int:
        if activity.window_start_days is not None:
            return activity.window_start_days
        return self.provider.window_start_days


def read_activities_file(path: str | Path) -> List[Dict[str, Any]]:
    """Read a JSON list of activity records (the bookable-activities.json format)"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Activities file not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ConfigurationError(f"{path} must contain a JSON list of activities")
    return data


def fetch_remote_activities(url: str, api_key: Optional[str] = None, timeout: float = 30.0) -> List[Dict[str, Any]]:
    """Fetch the activity list from a remote config service"""
    headers = {"Accept": "application/json"}
    if api_key:
        headers["x-api-key"] = api_key

    logger.info(f"Fetching activities from {url}")
    try:
        response = httpx.get(url, headers=headers, timeout=timeout)
    except httpx.HTTPError as e:
        raise ConfigurationError(f"Unable to fetch activities from {url}: {e}") from e
    if response.status_code != 200:
        raise ConfigurationError(
            f"Unable to fetch activities: {response.status_code} - {response.text}"
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ConfigurationError(f"Remote activities are not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ConfigurationError("Remote activities must be a JSON list")
    return data


def load_activities(records: List[Dict[str, Any]]) -> List[ActivityConfig]:
    """
    Validate activity records one by one.

    Invalid records are logged and skipped so one bad entry never keeps
    the other activities from running. Disabled activities are dropped.
    """
    activities = []
    for index, record in enumerate(records):
        try:
            activity = ActivityConfig.model_validate(record)
        except (ValidationError, ConfigurationError) as e:
            label = record.get("name", f"#{index}") if isinstance(record, dict) else f"#{index}"
            logger.error(f"Skipping activity {label}: invalid configuration: {e}")
            continue
        activities.append(activity)

    enabled = [a for a in activities if a.enabled]
    logger.info(f"Found {len(activities)} bookable activities")
    if len(enabled) != len(activities):
        logger.info(f"Removed {len(activities) - len(enabled)} disabled activities")
    return enabled


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from file or environment"""
    if path:
        return Config.from_yaml(path)

    # Try default locations
    default_paths = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path.home() / ".nwbooker" / "config.yaml",
    ]

    for p in default_paths:
        if p.exists():
            return Config.from_yaml(p)

    # Fall back to environment variables
    try:
        return Config.from_env()
    except KeyError as e:
        raise RuntimeError(
            f"No config file found and missing environment variable: {e}. "
            f"Create config/config.yaml or set NWBOOKER_* environment variables."
        )
