"""When each activity is next due, and how surfaces should render the countdown."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .schemas import ActivityCategory, NextExpectedItem, Urgency
from .settings import IntervalConfig, UserSettings

SOON_WINDOW = timedelta(minutes=30)


def next_expected_time(
    category: ActivityCategory,
    last_event_time: Optional[datetime],
    interval: Optional[IntervalConfig],
) -> Optional[datetime]:
    if category == ActivityCategory.SLEEP:
        return None
    if last_event_time is None or interval is None or not interval.enabled:
        return None
    if interval.interval_hours <= 0:
        return None
    return last_event_time + timedelta(hours=interval.interval_hours)


def urgency_for(remaining: timedelta) -> Urgency:
    if remaining <= timedelta(0):
        return Urgency.OVERDUE
    if remaining <= SOON_WINDOW:
        return Urgency.SOON
    return Urgency.OK


def countdown_text(remaining: timedelta) -> str:
    seconds = remaining.total_seconds()
    if seconds <= 0:
        minutes = int(-seconds // 60)
        if minutes < 60:
            return f"{minutes}m overdue"
        return f"{minutes // 60}h {minutes % 60}m overdue"

    total_minutes = int(seconds // 60)
    if total_minutes < 60:
        return f"in {total_minutes}m"
    hours, mins = divmod(total_minutes, 60)
    if mins == 0:
        return f"in {hours}h"
    return f"in {hours}h {mins}m"


def build_next_expected(
    last_event_times: Dict[ActivityCategory, Optional[datetime]],
    settings: UserSettings,
    now: datetime,
) -> List[NextExpectedItem]:
    """Next-expected rows for every category with an enabled interval, soonest first."""

    items: List[NextExpectedItem] = []
    for category, last_time in last_event_times.items():
        expected_at = next_expected_time(category, last_time, settings.interval(category))
        if expected_at is None:
            continue
        remaining = expected_at - now
        items.append(
            NextExpectedItem(
                category=category,
                expected_at=expected_at,
                urgency=urgency_for(remaining),
                countdown=countdown_text(remaining),
            )
        )
    return sorted(items, key=lambda item: item.expected_at)
