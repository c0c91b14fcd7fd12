from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException

from ..dashboard import (
    WEEK_DAYS,
    DashboardCache,
    DashboardResponse,
    GlanceState,
    get_dashboard_cache,
    glance_from_snapshot,
)
from ..dependencies import get_now, get_settings
from ..event_store import EventStoreClient, EventStoreError, get_event_store
from ..insight_engine import calculate_feeding_progress, compute_cumulative_chart_data
from ..next_expected import build_next_expected
from ..schemas import (
    ActivityCategory,
    ActivityEvent,
    CumulativeChartData,
    NextExpectedItem,
    ProgressSnapshot,
)
from ..settings import UserSettings
from ..timeseries import start_of_day

router = APIRouter(prefix="/api/v1", tags=["analytics"])
logger = logging.getLogger(__name__)


async def _fetch_feedings(
    store: EventStoreClient,
    settings: UserSettings,
    now: datetime,
) -> Tuple[List[ActivityEvent], List[ActivityEvent]]:
    today_start = start_of_day(now, settings.zone)
    window_days = max(WEEK_DAYS, settings.feeding.average_days)
    try:
        week = await store.list_events(
            ActivityCategory.FEEDING,
            today_start - timedelta(days=window_days),
            today_start + timedelta(days=1),
        )
    except EventStoreError as exc:
        logger.warning("feeding fetch failed", extra={"error": str(exc), "status_code": exc.status_code})
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    today = [event for event in week if event.start >= today_start]
    return today, week


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard_endpoint(
    store: EventStoreClient = Depends(get_event_store),
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
    cache: DashboardCache = Depends(get_dashboard_cache),
) -> DashboardResponse:
    return await cache.refresh(store, settings, now)


@router.get("/glance", response_model=GlanceState)
async def glance_endpoint(
    store: EventStoreClient = Depends(get_event_store),
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
    cache: DashboardCache = Depends(get_dashboard_cache),
) -> GlanceState:
    response = await cache.refresh(store, settings, now)
    if response.snapshot is None:
        raise HTTPException(status_code=502, detail=response.error or "No data available")
    return glance_from_snapshot(response.snapshot)


@router.get("/feeding/chart", response_model=CumulativeChartData)
async def feeding_chart_endpoint(
    store: EventStoreClient = Depends(get_event_store),
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
) -> CumulativeChartData:
    today, week = await _fetch_feedings(store, settings, now)
    return compute_cumulative_chart_data(today, week, settings.feeding, now, settings.zone)


@router.get("/feeding/progress", response_model=ProgressSnapshot)
async def feeding_progress_endpoint(
    store: EventStoreClient = Depends(get_event_store),
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
) -> ProgressSnapshot:
    today, _ = await _fetch_feedings(store, settings, now)
    feeding = settings.feeding
    return calculate_feeding_progress(today, feeding.target_amount, feeding.target_time, now, settings.zone)


async def _latest_time(store: EventStoreClient, category: ActivityCategory) -> Optional[datetime]:
    try:
        event = await store.latest_event(category)
    except EventStoreError as exc:
        logger.warning(
            "latest event fetch failed; category skipped",
            extra={"category": category.value, "error": str(exc), "status_code": exc.status_code},
        )
        return None
    return event.occurred_at if event else None


@router.get("/next-expected", response_model=List[NextExpectedItem])
async def next_expected_endpoint(
    store: EventStoreClient = Depends(get_event_store),
    settings: UserSettings = Depends(get_settings),
    now: datetime = Depends(get_now),
) -> List[NextExpectedItem]:
    categories = []
    for category in ActivityCategory:
        interval = settings.interval(category)
        if interval is not None and interval.enabled:
            categories.append(category)
    latest = await asyncio.gather(*(_latest_time(store, category) for category in categories))
    return build_next_expected(dict(zip(categories, latest)), settings, now)
