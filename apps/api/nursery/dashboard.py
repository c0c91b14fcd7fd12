"""Dashboard aggregation: parallel fetch, then every derived value in one pass."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .event_store import EventStoreClient, EventStoreError
from .insight_engine import (
    calculate_feeding_progress,
    calculate_total_consumed,
    calculate_total_pumped,
    calculate_total_sleep_minutes,
    compute_cumulative_chart_data,
)
from .next_expected import build_next_expected
from .schemas import (
    ActivityCategory,
    ActivityEvent,
    CumulativeChartData,
    NextExpectedItem,
    ProgressSnapshot,
)
from .settings import UserSettings
from .timeseries import start_of_day

logger = logging.getLogger(__name__)

WEEK_DAYS = 7


class DashboardSnapshot(BaseModel):
    computed_at: datetime
    child_name: Optional[str] = None
    progress: ProgressSnapshot
    chart: CumulativeChartData
    today_consumed: float
    today_pumped: float
    daily_surplus: float
    today_sleep_minutes: int
    sleep_target_hours: float
    last_event_times: Dict[ActivityCategory, Optional[datetime]] = Field(default_factory=dict)
    next_expected: List[NextExpectedItem] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    snapshot: Optional[DashboardSnapshot] = None
    stale: bool = False
    error: Optional[str] = None


class GlanceState(BaseModel):
    """What the live activity, the home-screen widget and the watch display."""

    child_name: Optional[str] = None
    next_feeding_time: Optional[datetime] = None
    next_pumping_time: Optional[datetime] = None
    next_diaper_time: Optional[datetime] = None
    daily_consumed: float = 0.0
    daily_target: float = 0.0


def _latest_time(event: Optional[ActivityEvent]) -> Optional[datetime]:
    return event.occurred_at if event else None


async def load_dashboard(store: EventStoreClient, settings: UserSettings, now: datetime) -> DashboardSnapshot:
    """Fetch everything the dashboard needs in parallel and compute the snapshot.

    Any failed fetch fails the whole refresh with ``EventStoreError``.
    """

    zone = settings.zone
    local_now = now.astimezone(zone)
    today_start = start_of_day(local_now)
    tomorrow = today_start + timedelta(days=1)
    window_days = max(WEEK_DAYS, settings.feeding.average_days)
    week_start = today_start - timedelta(days=window_days)

    (
        week_feedings,
        pumpings,
        sleeps,
        latest_feeding,
        latest_pumping,
        latest_diaper,
    ) = await asyncio.gather(
        store.list_events(ActivityCategory.FEEDING, week_start, tomorrow),
        store.list_events(ActivityCategory.PUMPING, today_start, tomorrow),
        store.list_events(ActivityCategory.SLEEP, today_start, tomorrow),
        store.latest_event(ActivityCategory.FEEDING),
        store.latest_event(ActivityCategory.PUMPING),
        store.latest_event(ActivityCategory.DIAPER),
    )

    today_feedings = [event for event in week_feedings if event.start >= today_start]
    feeding = settings.feeding
    progress = calculate_feeding_progress(
        today_feedings, feeding.target_amount, feeding.target_time, local_now, zone
    )
    chart = compute_cumulative_chart_data(today_feedings, week_feedings, feeding, local_now, zone)

    consumed = calculate_total_consumed(today_feedings)
    pumped = calculate_total_pumped(pumpings)
    last_event_times = {
        ActivityCategory.FEEDING: _latest_time(latest_feeding),
        ActivityCategory.PUMPING: _latest_time(latest_pumping),
        ActivityCategory.DIAPER: _latest_time(latest_diaper),
    }

    snapshot = DashboardSnapshot(
        computed_at=local_now,
        child_name=settings.child_name,
        progress=progress,
        chart=chart,
        today_consumed=consumed,
        today_pumped=pumped,
        daily_surplus=pumped - consumed,
        today_sleep_minutes=calculate_total_sleep_minutes(sleeps),
        sleep_target_hours=settings.sleep_target_hours,
        last_event_times=last_event_times,
        next_expected=build_next_expected(last_event_times, settings, local_now),
    )
    logger.info(
        "dashboard computed",
        extra={"child_id": settings.child_id, "status": progress.status.value, "consumed": consumed},
    )
    return snapshot


def glance_from_snapshot(snapshot: DashboardSnapshot) -> GlanceState:
    times = {item.category: item.expected_at for item in snapshot.next_expected}
    return GlanceState(
        child_name=snapshot.child_name,
        next_feeding_time=times.get(ActivityCategory.FEEDING),
        next_pumping_time=times.get(ActivityCategory.PUMPING),
        next_diaper_time=times.get(ActivityCategory.DIAPER),
        daily_consumed=snapshot.today_consumed,
        daily_target=snapshot.progress.target,
    )


class DashboardCache:
    """Keeps the last good snapshot so a failed refresh never blanks the screen."""

    def __init__(self) -> None:
        self.last: Optional[DashboardSnapshot] = None

    async def refresh(self, store: EventStoreClient, settings: UserSettings, now: datetime) -> DashboardResponse:
        try:
            snapshot = await load_dashboard(store, settings, now)
        except EventStoreError as exc:
            logger.warning(
                "dashboard refresh failed; serving previous snapshot",
                extra={"error": str(exc), "has_previous": self.last is not None},
            )
            return DashboardResponse(snapshot=self.last, stale=self.last is not None, error=str(exc))
        self.last = snapshot
        return DashboardResponse(snapshot=snapshot)


@lru_cache
def get_dashboard_cache() -> DashboardCache:
    return DashboardCache()
