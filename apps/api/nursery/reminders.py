"""Overdue-activity reminders: one pending local notification per category.

Every reschedule cancels the category's notification before deciding whether
to schedule a new one, so a failure part-way through leaves the category idle
rather than double-booked.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from enum import Enum
from functools import lru_cache
from typing import Dict, Optional, Protocol

from .event_store import EventStoreError
from .notifications import NotificationCenter, get_notification_center
from .schemas import ActivityCategory, ActivityEvent, ScheduledReminder
from .settings import UserSettings

logger = logging.getLogger(__name__)

IMMEDIATE_DELAY = timedelta(seconds=1)


class ReminderState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"


class LatestEventSource(Protocol):
    async def latest_event(self, category: ActivityCategory) -> Optional[ActivityEvent]: ...


class ReminderScheduler:
    def __init__(self, center: NotificationCenter) -> None:
        self.center = center
        self._locks: Dict[ActivityCategory, asyncio.Lock] = {
            category: asyncio.Lock() for category in ActivityCategory
        }
        self._scheduled: Dict[ActivityCategory, ScheduledReminder] = {}

    def state(self, category: ActivityCategory) -> ReminderState:
        if category in self._scheduled:
            return ReminderState.SCHEDULED
        return ReminderState.IDLE

    def scheduled(self) -> Dict[ActivityCategory, ScheduledReminder]:
        return dict(self._scheduled)

    async def _cancel(self, category: ActivityCategory) -> None:
        await self.center.cancel([category.notification_id])
        self._scheduled.pop(category, None)

    async def _schedule(
        self,
        category: ActivityCategory,
        fire_at: datetime,
        threshold_hours: float,
    ) -> ScheduledReminder:
        reminder = ScheduledReminder(
            category=category,
            identifier=category.notification_id,
            fire_at=fire_at,
            title=category.notification_title,
            body=category.notification_body(threshold_hours),
        )
        await self.center.schedule_one_shot(reminder.identifier, reminder.fire_at, reminder.title, reminder.body)
        self._scheduled[category] = reminder
        logger.info(
            "reminder scheduled",
            extra={"category": category.value, "fire_at": fire_at.isoformat()},
        )
        return reminder

    async def reschedule_all(
        self,
        store: LatestEventSource,
        settings: UserSettings,
        now: datetime,
    ) -> Dict[ActivityCategory, Optional[ScheduledReminder]]:
        """Rebuild every category's reminder from the latest logged event.

        Run on permission grant, app foreground and settings changes. Overdue
        deadlines and categories with nothing logged fire in one second.
        """

        granted = await self.center.permission_granted()
        categories = list(ActivityCategory)
        results = await asyncio.gather(
            *(self._reschedule_from_store(category, store, settings, now, granted) for category in categories)
        )
        return dict(zip(categories, results))

    async def _reschedule_from_store(
        self,
        category: ActivityCategory,
        store: LatestEventSource,
        settings: UserSettings,
        now: datetime,
        granted: bool,
    ) -> Optional[ScheduledReminder]:
        async with self._locks[category]:
            await self._cancel(category)
            config = settings.reminder(category)
            if not granted or not config.enabled:
                return None

            try:
                latest = await store.latest_event(category)
            except EventStoreError as exc:
                logger.warning(
                    "latest event fetch failed; reminder skipped",
                    extra={"category": category.value, "error": str(exc)},
                )
                return None

            fire_at = now + IMMEDIATE_DELAY
            if latest is not None:
                deadline = latest.occurred_at + timedelta(hours=config.threshold_hours)
                if deadline > now:
                    fire_at = deadline
            return await self._schedule(category, fire_at, config.threshold_hours)

    async def reschedule_category(
        self,
        category: ActivityCategory,
        last_entry_at: datetime,
        settings: UserSettings,
        now: datetime,
    ) -> Optional[ScheduledReminder]:
        """Reschedule right after a local create/update, without fetching.

        An already-overdue deadline schedules nothing; the next full
        reschedule picks it up.
        """

        async with self._locks[category]:
            await self._cancel(category)
            config = settings.reminder(category)
            if not config.enabled or not await self.center.permission_granted():
                return None
            deadline = last_entry_at + timedelta(hours=config.threshold_hours)
            if deadline <= now:
                logger.info("reminder already overdue; left idle", extra={"category": category.value})
                return None
            return await self._schedule(category, deadline, config.threshold_hours)

    async def cancel_all(self) -> None:
        for category in ActivityCategory:
            async with self._locks[category]:
                await self._cancel(category)


@lru_cache
def get_reminder_scheduler() -> ReminderScheduler:
    return ReminderScheduler(get_notification_center())
