from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..dependencies import get_now, get_settings
from ..event_store import EventStoreClient, get_event_store
from ..notifications import LocalNotificationCenter, get_notification_center
from ..reminders import ReminderScheduler, ReminderState, get_reminder_scheduler
from ..schemas import ActivityCategory, ScheduledReminder
from ..settings import UserSettings

router = APIRouter(prefix="/api/v1", tags=["reminders"])
logger = logging.getLogger(__name__)


class LoggedEventPayload(BaseModel):
    last_entry_at: datetime


class PermissionPayload(BaseModel):
    granted: bool


class PermissionState(BaseModel):
    granted: bool


class ReminderStatus(BaseModel):
    category: ActivityCategory
    state: ReminderState
    reminder: Optional[ScheduledReminder] = None


class RescheduleResult(BaseModel):
    permission_granted: bool
    reminders: List[ReminderStatus]


def _statuses(
    scheduler: ReminderScheduler,
    results: Optional[Dict[ActivityCategory, Optional[ScheduledReminder]]] = None,
) -> List[ReminderStatus]:
    scheduled = scheduler.scheduled() if results is None else results
    return [
        ReminderStatus(
            category=category,
            state=ReminderState.SCHEDULED if scheduled.get(category) else ReminderState.IDLE,
            reminder=scheduled.get(category),
        )
        for category in ActivityCategory
    ]


@router.get("/reminders", response_model=List[ScheduledReminder])
async def list_pending_reminders(
    now: datetime = Depends(get_now),
    center: LocalNotificationCenter = Depends(get_notification_center),
) -> List[ScheduledReminder]:
    """Deliver every notification whose fire time has passed, then list what is still pending."""
    center.deliver_due(now)
    return center.pending()


@router.post("/reminders/reschedule", response_model=RescheduleResult)
async def reschedule_all_endpoint(
    store: EventStoreClient = Depends(get_event_store),
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> RescheduleResult:
    results = await scheduler.reschedule_all(store, settings, now)
    granted = await scheduler.center.permission_granted()
    return RescheduleResult(permission_granted=granted, reminders=_statuses(scheduler, results))


@router.post("/reminders/{category}/logged", response_model=ReminderStatus)
async def event_logged_endpoint(
    category: ActivityCategory,
    payload: LoggedEventPayload,
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> ReminderStatus:
    if payload.last_entry_at.tzinfo is None:
        raise HTTPException(status_code=400, detail="last_entry_at must include a UTC offset.")
    reminder = await scheduler.reschedule_category(category, payload.last_entry_at, settings, now)
    return ReminderStatus(
        category=category,
        state=ReminderState.SCHEDULED if reminder else ReminderState.IDLE,
        reminder=reminder,
    )


@router.delete("/reminders", response_model=List[ReminderStatus])
async def cancel_reminders_endpoint(
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> List[ReminderStatus]:
    await scheduler.cancel_all()
    return _statuses(scheduler)


@router.get("/reminders/permission", response_model=PermissionState)
async def permission_state_endpoint(
    center: LocalNotificationCenter = Depends(get_notification_center),
) -> PermissionState:
    return PermissionState(granted=await center.permission_granted())


@router.put("/reminders/permission", response_model=RescheduleResult)
async def update_permission_endpoint(
    payload: PermissionPayload,
    store: EventStoreClient = Depends(get_event_store),
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
    center: LocalNotificationCenter = Depends(get_notification_center),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> RescheduleResult:
    await center.set_permission(payload.granted)
    logger.info("notification permission changed", extra={"granted": payload.granted})
    results = await scheduler.reschedule_all(store, settings, now)
    return RescheduleResult(permission_granted=payload.granted, reminders=_statuses(scheduler, results))
