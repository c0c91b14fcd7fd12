from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from activity_factories import FakeEventStore, diaper, feeding, pumping, sleep
from nursery.dashboard import DashboardCache, glance_from_snapshot, load_dashboard
from nursery.schemas import ActivityCategory, ProgressStatus, Urgency
from nursery.settings import UserSettings

PACIFIC = ZoneInfo("America/Los_Angeles")
NOW = datetime(2024, 6, 3, 11, 0, tzinfo=PACIFIC)


def _settings() -> UserSettings:
    return UserSettings(
        child_name="Robin",
        timezone="America/Los_Angeles",
        feeding={"target_amount": 24, "target_time": "22:00", "wake_time": "07:00", "average_days": 2},
        intervals={
            "feeding": {"enabled": True, "interval_hours": 3},
            "diaper": {"enabled": True, "interval_hours": 2},
        },
    )


def _store() -> FakeEventStore:
    return FakeEventStore(
        [
            feeding(NOW.replace(hour=8), 5),
            feeding(NOW.replace(hour=10), 4, method="left breast"),
            feeding(NOW - timedelta(days=1), 6),
            pumping(NOW.replace(hour=7), 6),
            sleep(NOW.replace(hour=1), NOW.replace(hour=4)),
            diaper(NOW.replace(hour=9, minute=15)),
        ]
    )


def test_load_dashboard_computes_every_panel() -> None:
    snapshot = asyncio.run(load_dashboard(_store(), _settings(), NOW))

    assert snapshot.today_consumed == 5
    assert snapshot.today_pumped == 6
    assert snapshot.daily_surplus == 1
    assert snapshot.today_sleep_minutes == 180
    assert snapshot.progress.status == ProgressStatus.CRITICAL
    assert snapshot.chart.current_value == 5
    assert snapshot.chart.average_now == 3
    assert snapshot.last_event_times[ActivityCategory.FEEDING] == NOW.replace(hour=10)

    categories = [item.category for item in snapshot.next_expected]
    assert categories == [ActivityCategory.DIAPER, ActivityCategory.FEEDING]
    assert snapshot.next_expected[0].urgency == Urgency.SOON
    assert snapshot.next_expected[0].countdown == "in 15m"
    assert snapshot.next_expected[1].urgency == Urgency.OK


def test_glance_state_mirrors_snapshot() -> None:
    snapshot = asyncio.run(load_dashboard(_store(), _settings(), NOW))
    glance = glance_from_snapshot(snapshot)
    assert glance.child_name == "Robin"
    assert glance.next_feeding_time == NOW.replace(hour=13)
    assert glance.next_diaper_time == NOW.replace(hour=11, minute=15)
    assert glance.next_pumping_time is None
    assert glance.daily_consumed == 5
    assert glance.daily_target == 24


def test_failed_refresh_keeps_previous_snapshot() -> None:
    cache = DashboardCache()
    store = _store()

    first = asyncio.run(cache.refresh(store, _settings(), NOW))
    assert first.snapshot is not None and first.error is None

    store.failing.add(ActivityCategory.SLEEP)
    second = asyncio.run(cache.refresh(store, _settings(), NOW + timedelta(minutes=5)))
    assert second.stale is True
    assert "sleep endpoint unavailable" in second.error
    assert second.snapshot == first.snapshot


def test_failed_first_refresh_has_nothing_to_show() -> None:
    store = FakeEventStore(failing=[ActivityCategory.DIAPER])
    response = asyncio.run(DashboardCache().refresh(store, _settings(), NOW))
    assert response.snapshot is None
    assert response.stale is False
    assert response.error
