"""Pydantic schemas shared across the API."""
from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

MINUTES_PER_DAY = 1440.0


class ActivityCategory(str, Enum):
    FEEDING = "feeding"
    DIAPER = "diaper"
    SLEEP = "sleep"
    PUMPING = "pumping"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def notification_id(self) -> str:
        return f"reminder_{self.value}"

    @property
    def notification_title(self) -> str:
        return f"{self.display_name} Reminder"

    def notification_body(self, threshold_hours: float) -> str:
        if threshold_hours == int(threshold_hours):
            hours_text = str(int(threshold_hours))
        else:
            hours_text = f"{threshold_hours:.1f}"
        subject = NOTIFICATION_SUBJECTS[self]
        return f"It's been over {hours_text} hours since {subject}."


NOTIFICATION_SUBJECTS = {
    ActivityCategory.FEEDING: "the last feeding",
    ActivityCategory.DIAPER: "the last diaper change",
    ActivityCategory.SLEEP: "the last sleep session ended",
    ActivityCategory.PUMPING: "the last pumping session",
}

DEFAULT_THRESHOLD_HOURS = {
    ActivityCategory.FEEDING: 3.0,
    ActivityCategory.DIAPER: 3.0,
    ActivityCategory.SLEEP: 4.0,
    ActivityCategory.PUMPING: 4.0,
}

# Sleep sessions are intermittent, so they never get an expected interval.
DEFAULT_INTERVAL_HOURS = {
    ActivityCategory.FEEDING: 3.0,
    ActivityCategory.DIAPER: 3.0,
    ActivityCategory.PUMPING: 4.0,
}


class FeedingMethod(str, Enum):
    BOTTLE = "bottle"
    LEFT_BREAST = "left breast"
    RIGHT_BREAST = "right breast"
    BOTH_BREASTS = "both breasts"
    PARENT_FED = "parent fed"
    SELF_FED = "self fed"


class FeedingType(str, Enum):
    BREAST_MILK = "breast milk"
    FORMULA = "formula"
    FORTIFIED_BREAST_MILK = "fortified breast milk"
    SOLID_FOOD = "solid food"


class MilkCategory(str, Enum):
    TO_BE_CONSUMED = "to-be-consumed"
    CONSUMED = "consumed"
    FROZEN = "frozen"

    @classmethod
    def parse(cls, notes: Optional[str]) -> "MilkCategory":
        """Read the category a pumping session was filed under from its notes JSON."""
        if not notes:
            return cls.TO_BE_CONSUMED
        try:
            payload = json.loads(notes)
        except ValueError:
            return cls.TO_BE_CONSUMED
        if not isinstance(payload, dict):
            return cls.TO_BE_CONSUMED
        try:
            return cls(payload.get("category"))
        except ValueError:
            return cls.TO_BE_CONSUMED

    def as_notes(self) -> str:
        return json.dumps({"category": self.value})


class ActivityEvent(BaseModel):
    """A logged record as returned by the event store. Never mutated."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    category: ActivityCategory
    start: datetime
    end: Optional[datetime] = None
    amount: Optional[float] = None
    method: Optional[str] = None
    type: Optional[str] = None
    notes: Optional[str] = None

    @property
    def occurred_at(self) -> datetime:
        """End time for sessions, the single timestamp for instantaneous events."""
        return self.end or self.start


class CumulativePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    minutes: float = Field(ge=0, le=MINUTES_PER_DAY)
    amount: float = Field(ge=0)


class ProgressStatus(str, Enum):
    ON_TRACK = "on_track"
    BEHIND = "behind"
    CRITICAL = "critical"
    COMPLETE = "complete"


class ProgressSnapshot(BaseModel):
    consumed: float
    target: float
    percentage: int = Field(ge=0, le=100)
    expected_by_now: float
    status: ProgressStatus


class CumulativeChartData(BaseModel):
    today_series: List[CumulativePoint]
    expected_series: List[CumulativePoint]
    average_series: List[CumulativePoint]
    target_amount: float
    current_value: float
    status: ProgressStatus
    expected_now: float
    average_now: float
    average_days: int


class Urgency(str, Enum):
    OK = "ok"
    SOON = "soon"
    OVERDUE = "overdue"


class NextExpectedItem(BaseModel):
    category: ActivityCategory
    expected_at: datetime
    urgency: Urgency
    countdown: str


class ScheduledReminder(BaseModel):
    category: ActivityCategory
    identifier: str
    fire_at: datetime
    title: str
    body: str
