"""User settings snapshot: feeding targets, reminder thresholds, expected intervals.

Settings live in a single SQLite row and are read fresh on every computation.
Malformed values never raise; they fall back to the documented defaults.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .db import get_connection
from .schemas import DEFAULT_INTERVAL_HOURS, DEFAULT_THRESHOLD_HOURS, ActivityCategory

logger = logging.getLogger(__name__)

DEFAULT_FEEDING_TARGET = 24.0
DEFAULT_FEEDING_TARGET_TIME = "22:00"
DEFAULT_FEEDING_WAKE_TIME = "07:00"
DEFAULT_FEEDING_AVERAGE_DAYS = 3
DEFAULT_SLEEP_TARGET_HOURS = 14.0
DEFAULT_TIMEZONE = "America/Los_Angeles"

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def is_clock_string(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    match = _CLOCK_RE.match(value)
    if not match:
        return False
    return int(match.group(1)) < 24 and int(match.group(2)) < 60


def _positive_or(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


class FeedingTargetConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_amount: float = DEFAULT_FEEDING_TARGET
    target_time: str = DEFAULT_FEEDING_TARGET_TIME
    wake_time: str = DEFAULT_FEEDING_WAKE_TIME
    average_days: int = DEFAULT_FEEDING_AVERAGE_DAYS

    @field_validator("target_amount", mode="before")
    @classmethod
    def _target_amount(cls, value: Any) -> float:
        return _positive_or(value, DEFAULT_FEEDING_TARGET)

    @field_validator("target_time", mode="before")
    @classmethod
    def _target_time(cls, value: Any) -> str:
        return value if is_clock_string(value) else DEFAULT_FEEDING_TARGET_TIME

    @field_validator("wake_time", mode="before")
    @classmethod
    def _wake_time(cls, value: Any) -> str:
        return value if is_clock_string(value) else DEFAULT_FEEDING_WAKE_TIME

    @field_validator("average_days", mode="before")
    @classmethod
    def _average_days(cls, value: Any) -> int:
        try:
            days = int(value)
        except (TypeError, ValueError):
            return DEFAULT_FEEDING_AVERAGE_DAYS
        return days if days >= 1 else DEFAULT_FEEDING_AVERAGE_DAYS


class ReminderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    threshold_hours: float = Field(default=3.0, gt=0)


class IntervalConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    interval_hours: float = Field(default=3.0, gt=0)


def _default_reminders() -> Dict[ActivityCategory, ReminderConfig]:
    return {
        category: ReminderConfig(threshold_hours=hours)
        for category, hours in DEFAULT_THRESHOLD_HOURS.items()
    }


def _default_intervals() -> Dict[ActivityCategory, IntervalConfig]:
    return {
        category: IntervalConfig(interval_hours=hours)
        for category, hours in DEFAULT_INTERVAL_HOURS.items()
    }


class UserSettings(BaseModel):
    """Immutable settings snapshot handed to every computation."""

    model_config = ConfigDict(frozen=True)

    child_id: Optional[int] = None
    child_name: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE
    feeding: FeedingTargetConfig = Field(default_factory=FeedingTargetConfig)
    sleep_target_hours: float = DEFAULT_SLEEP_TARGET_HOURS
    reminders: Dict[ActivityCategory, ReminderConfig] = Field(default_factory=_default_reminders)
    intervals: Dict[ActivityCategory, IntervalConfig] = Field(default_factory=_default_intervals)

    @field_validator("timezone", mode="before")
    @classmethod
    def _timezone(cls, value: Any) -> str:
        if not isinstance(value, str) or not value:
            return DEFAULT_TIMEZONE
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("unknown timezone, using default", extra={"timezone": value})
            return DEFAULT_TIMEZONE
        return value

    @field_validator("sleep_target_hours", mode="before")
    @classmethod
    def _sleep_target(cls, value: Any) -> float:
        return _positive_or(value, DEFAULT_SLEEP_TARGET_HOURS)

    @field_validator("reminders", mode="before")
    @classmethod
    def _reminders(cls, value: Any) -> Dict[Any, Any]:
        merged: Dict[Any, Any] = dict(_default_reminders())
        for key, raw in _entries(value):
            category = _category_or_none(key)
            if category is None:
                continue
            merged[category] = _coerce_config(
                raw, ReminderConfig, "threshold_hours", DEFAULT_THRESHOLD_HOURS[category]
            )
        return merged

    @field_validator("intervals", mode="before")
    @classmethod
    def _intervals(cls, value: Any) -> Dict[Any, Any]:
        merged: Dict[Any, Any] = dict(_default_intervals())
        for key, raw in _entries(value):
            category = _category_or_none(key)
            if category is None or category not in DEFAULT_INTERVAL_HOURS:
                continue
            merged[category] = _coerce_config(
                raw, IntervalConfig, "interval_hours", DEFAULT_INTERVAL_HOURS[category]
            )
        return merged

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def now(self) -> datetime:
        return datetime.now(self.zone)

    def reminder(self, category: ActivityCategory) -> ReminderConfig:
        return self.reminders.get(
            category, ReminderConfig(threshold_hours=DEFAULT_THRESHOLD_HOURS[category])
        )

    def interval(self, category: ActivityCategory) -> Optional[IntervalConfig]:
        return self.intervals.get(category)


def _entries(value: Any):
    if isinstance(value, dict):
        return list(value.items())
    return []


def _category_or_none(key: Any) -> Optional[ActivityCategory]:
    try:
        return ActivityCategory(key)
    except ValueError:
        return None


def _coerce_config(raw: Any, model: type, hours_field: str, default_hours: float):
    if isinstance(raw, model):
        return raw
    if not isinstance(raw, dict):
        return model(**{hours_field: default_hours})
    hours = _positive_or(raw.get(hours_field), default_hours)
    try:
        return model(enabled=raw.get("enabled", False), **{hours_field: hours})
    except ValidationError:
        logger.warning("malformed enabled flag, using default", extra={"enabled": repr(raw.get("enabled"))})
        return model(**{hours_field: default_hours})


def load_user_settings() -> UserSettings:
    """Return the stored settings, or defaults when nothing has been saved."""

    with get_connection() as conn:
        row = conn.execute("SELECT payload FROM user_settings WHERE id = 1").fetchone()
    if not row:
        return UserSettings()
    try:
        payload = json.loads(row[0])
    except ValueError:
        logger.warning("stored settings are not valid JSON; using defaults")
        return UserSettings()
    return UserSettings.model_validate(payload)


def save_user_settings(settings: UserSettings) -> UserSettings:
    payload = settings.model_dump(mode="json")
    now = datetime.utcnow().isoformat()
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO user_settings (id, payload, updated_at)
            VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
            """,
            (json.dumps(payload), now),
        )
        conn.commit()
    return settings
