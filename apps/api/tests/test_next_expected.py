from __future__ import annotations

from datetime import datetime, timedelta

from nursery.next_expected import build_next_expected, countdown_text, next_expected_time, urgency_for
from nursery.schemas import ActivityCategory, Urgency
from nursery.settings import IntervalConfig, UserSettings

LAST = datetime(2024, 6, 2, 9, 0)


def test_interval_added_to_last_event() -> None:
    interval = IntervalConfig(enabled=True, interval_hours=2.5)
    assert next_expected_time(ActivityCategory.FEEDING, LAST, interval) == LAST + timedelta(hours=2.5)


def test_sleep_disabled_and_unknown_never_project() -> None:
    enabled = IntervalConfig(enabled=True, interval_hours=3)
    assert next_expected_time(ActivityCategory.SLEEP, LAST, enabled) is None
    assert next_expected_time(ActivityCategory.FEEDING, None, enabled) is None
    assert next_expected_time(ActivityCategory.DIAPER, LAST, IntervalConfig(enabled=False, interval_hours=3)) is None
    assert next_expected_time(ActivityCategory.PUMPING, LAST, None) is None


def test_urgency_bands() -> None:
    assert urgency_for(timedelta(0)) == Urgency.OVERDUE
    assert urgency_for(timedelta(minutes=-5)) == Urgency.OVERDUE
    assert urgency_for(timedelta(minutes=30)) == Urgency.SOON
    assert urgency_for(timedelta(minutes=1)) == Urgency.SOON
    assert urgency_for(timedelta(minutes=31)) == Urgency.OK


def test_countdown_text() -> None:
    assert countdown_text(timedelta(minutes=45, seconds=30)) == "in 45m"
    assert countdown_text(timedelta(hours=2)) == "in 2h"
    assert countdown_text(timedelta(hours=2, minutes=5)) == "in 2h 5m"
    assert countdown_text(timedelta(minutes=-12)) == "12m overdue"
    assert countdown_text(timedelta(hours=-1, minutes=-3)) == "1h 3m overdue"


def test_build_next_expected_sorted_soonest_first() -> None:
    settings = UserSettings(
        intervals={
            "feeding": {"enabled": True, "interval_hours": 3},
            "diaper": {"enabled": True, "interval_hours": 1},
            "pumping": {"enabled": False, "interval_hours": 4},
        }
    )
    now = LAST + timedelta(minutes=50)
    items = build_next_expected(
        {
            ActivityCategory.FEEDING: LAST,
            ActivityCategory.DIAPER: LAST,
            ActivityCategory.PUMPING: LAST,
            ActivityCategory.SLEEP: LAST,
        },
        settings,
        now,
    )
    assert [item.category for item in items] == [ActivityCategory.DIAPER, ActivityCategory.FEEDING]
    assert items[0].urgency == Urgency.SOON
    assert items[0].countdown == "in 10m"
    assert items[1].urgency == Urgency.OK
