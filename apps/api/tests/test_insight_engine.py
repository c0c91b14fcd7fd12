from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from activity_factories import feeding, pumping, sleep
from nursery.insight_engine import (
    calculate_daily_surplus,
    calculate_feeding_progress,
    calculate_total_consumed,
    calculate_total_sleep_minutes,
    compute_cumulative_chart_data,
    group_by_date,
)
from nursery.schemas import ProgressStatus
from nursery.settings import FeedingTargetConfig

DAY = datetime(2024, 6, 2)


def test_complete_when_target_reached_regardless_of_expected() -> None:
    events = [feeding(DAY.replace(hour=6), 12), feeding(DAY.replace(hour=9), 12)]
    progress = calculate_feeding_progress(events, 24, "22:00", DAY.replace(hour=9, minute=30))
    assert progress.status == ProgressStatus.COMPLETE
    assert progress.percentage == 100


def test_nothing_expected_and_nothing_consumed_is_on_track() -> None:
    progress = calculate_feeding_progress([], 24, "22:00", DAY)
    assert progress.expected_by_now == 0
    assert progress.status == ProgressStatus.ON_TRACK
    assert progress.percentage == 0


def test_status_thresholds_against_midnight_ramp() -> None:
    now = DAY.replace(hour=11)  # 660 of 1320 minutes: 12 oz expected
    expectations = {11: ProgressStatus.ON_TRACK, 9: ProgressStatus.BEHIND, 8: ProgressStatus.CRITICAL}
    for consumed, status in expectations.items():
        progress = calculate_feeding_progress([feeding(DAY.replace(hour=10), consumed)], 24, "22:00", now)
        assert progress.expected_by_now == 12
        assert progress.status == status


def test_expected_is_full_target_after_target_time() -> None:
    progress = calculate_feeding_progress([feeding(DAY.replace(hour=20), 22)], 24, "21:30", DAY.replace(hour=21, minute=30))
    assert progress.expected_by_now == 24
    assert progress.status == ProgressStatus.ON_TRACK


def test_expected_rounded_only_on_output() -> None:
    progress = calculate_feeding_progress([], 24, "22:00", DAY.replace(hour=10))
    assert progress.expected_by_now == 10.9
    assert progress.status == ProgressStatus.CRITICAL


def test_percentage_rounds_and_clamps() -> None:
    progress = calculate_feeding_progress([feeding(DAY.replace(hour=8), 7)], 24, "22:00", DAY.replace(hour=9))
    assert progress.percentage == 29
    progress = calculate_feeding_progress([feeding(DAY.replace(hour=8), 40)], 24, "22:00", DAY.replace(hour=9))
    assert progress.percentage == 100


def test_malformed_target_time_uses_ten_pm() -> None:
    progress = calculate_feeding_progress([], 24, "soon", DAY.replace(hour=11))
    assert progress.expected_by_now == 12


def test_non_positive_target_falls_back_to_default() -> None:
    progress = calculate_feeding_progress([feeding(DAY.replace(hour=8), 6)], 0, "22:00", DAY.replace(hour=9))
    assert progress.target == 24
    assert progress.percentage == 25


def test_breast_feedings_do_not_count_toward_consumed() -> None:
    events = [feeding(DAY.replace(hour=8), 4), feeding(DAY.replace(hour=9), 3, method="both breasts")]
    assert calculate_total_consumed(events) == 4


def test_daily_surplus_and_sleep_totals() -> None:
    feedings = [feeding(DAY.replace(hour=8), 4)]
    pumpings = [pumping(DAY.replace(hour=7), 5), pumping(DAY.replace(hour=13), 3.5)]
    assert calculate_daily_surplus(pumpings, feedings) == 4.5

    sleeps = [
        sleep(DAY.replace(hour=1), DAY.replace(hour=3, minute=30)),
        sleep(DAY.replace(hour=13), DAY.replace(hour=13, minute=45, second=50)),
    ]
    assert calculate_total_sleep_minutes(sleeps) == 195


def test_group_by_date_newest_first() -> None:
    events = [
        feeding(datetime(2024, 6, 1, 8), 4),
        feeding(datetime(2024, 6, 2, 8), 4),
        feeding(datetime(2024, 6, 2, 12), 2),
    ]
    grouped = group_by_date(events)
    assert [day for day, _ in grouped] == [date(2024, 6, 2), date(2024, 6, 1)]
    assert len(grouped[0][1]) == 2


def test_chart_data_combines_series() -> None:
    pacific = ZoneInfo("America/Los_Angeles")
    now = datetime(2024, 6, 3, 11, 0, tzinfo=pacific)
    today = [feeding(datetime(2024, 6, 3, 8, 0, tzinfo=pacific), 4)]
    week = today + [
        feeding(datetime(2024, 6, 2, 8, 0, tzinfo=pacific), 6),
        feeding(datetime(2024, 6, 1, 9, 0, tzinfo=pacific), 3),
    ]
    config = FeedingTargetConfig(target_amount=24, target_time="22:00", wake_time="07:00", average_days=2)

    chart = compute_cumulative_chart_data(today, week, config, now)

    assert chart.current_value == 4
    assert chart.today_series[-1].minutes == 660
    assert len(chart.average_series) == 97
    assert chart.average_now == 4.5
    assert round(chart.expected_now, 4) == round(24 * 240 / 900, 4)
    assert chart.status == ProgressStatus.CRITICAL
    assert chart.average_days == 2
