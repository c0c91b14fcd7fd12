from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from fastapi import APIRouter, Depends

from ..dependencies import get_now, get_settings
from ..event_store import EventStoreClient, get_event_store
from ..reminders import ReminderScheduler, get_reminder_scheduler
from ..settings import UserSettings, save_user_settings

router = APIRouter(prefix="/api/v1", tags=["settings"])
logger = logging.getLogger(__name__)


@router.get("/settings", response_model=UserSettings)
async def get_settings_endpoint(settings: UserSettings = Depends(get_settings)) -> UserSettings:
    return settings


@router.put("/settings", response_model=UserSettings)
async def update_settings_endpoint(
    payload: UserSettings,
    store: EventStoreClient = Depends(get_event_store),
    now: datetime = Depends(get_now),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> UserSettings:
    """Replace the stored settings and rebuild every reminder against them."""

    saved = save_user_settings(payload)
    if store.child_id != saved.child_id:
        store = replace(store, child_id=saved.child_id)
    results = await scheduler.reschedule_all(store, saved, now)
    logger.info(
        "settings updated",
        extra={"scheduled": sorted(category.value for category, item in results.items() if item)},
    )
    return saved
