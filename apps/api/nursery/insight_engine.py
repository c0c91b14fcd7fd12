"""Feeding progress classification, chart aggregation and daily totals."""
from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, time, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .projection import build_expected_line, interpolate_linear, parse_clock
from .schemas import (
    ActivityCategory,
    ActivityEvent,
    CumulativeChartData,
    ProgressSnapshot,
    ProgressStatus,
)
from .settings import DEFAULT_FEEDING_TARGET, DEFAULT_FEEDING_TARGET_TIME, FeedingTargetConfig
from .timeseries import (
    build_average_line,
    build_cumulative_steps,
    is_amount_bearing,
    minutes_since_midnight,
    start_of_day,
    to_local,
    value_at,
)

ON_TRACK_RATIO = 0.9
BEHIND_RATIO = 0.7


def _round_half_up(value: float, places: int = 0) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def calculate_total_consumed(events: Iterable[ActivityEvent]) -> float:
    return sum(
        float(event.amount)
        for event in events
        if event.category == ActivityCategory.FEEDING and is_amount_bearing(event)
    )


def calculate_total_pumped(events: Iterable[ActivityEvent]) -> float:
    return sum(
        float(event.amount or 0)
        for event in events
        if event.category == ActivityCategory.PUMPING
    )


def calculate_daily_surplus(pumpings: Iterable[ActivityEvent], feedings: Iterable[ActivityEvent]) -> float:
    return calculate_total_pumped(pumpings) - calculate_total_consumed(feedings)


def calculate_total_sleep_minutes(sleeps: Iterable[ActivityEvent]) -> int:
    """Whole minutes per session, summed. Sessions without an end are skipped."""
    total = 0
    for sleep in sleeps:
        if sleep.end is None:
            continue
        total += int((sleep.end - sleep.start).total_seconds() / 60)
    return total


def group_by_date(
    events: Iterable[ActivityEvent],
    key: Callable[[ActivityEvent], Optional[datetime]] = lambda event: event.start,
    tz: Optional[tzinfo] = None,
) -> List[Tuple[date, List[ActivityEvent]]]:
    """Group events by local calendar day, newest day first."""
    grouped: Dict[date, List[ActivityEvent]] = defaultdict(list)
    for event in events:
        stamp = key(event)
        if stamp is None:
            continue
        grouped[to_local(stamp, tz).date()].append(event)
    return sorted(grouped.items(), key=lambda item: item[0], reverse=True)


def classify_progress(consumed: float, target: float, expected_by_now: float) -> ProgressStatus:
    # Order matters: with nothing expected yet, zero consumed is still on track.
    if consumed >= target:
        return ProgressStatus.COMPLETE
    if consumed >= expected_by_now * ON_TRACK_RATIO:
        return ProgressStatus.ON_TRACK
    if consumed >= expected_by_now * BEHIND_RATIO:
        return ProgressStatus.BEHIND
    return ProgressStatus.CRITICAL


def expected_by(now: datetime, target_amount: float, target_time: str, tz: Optional[tzinfo] = None) -> float:
    """Linear ramp from midnight to the target time; the full target once it has passed.

    The chart's expected line ramps from wake time instead; this keeps the
    midnight anchor the status thresholds have always used.
    """

    local_now = to_local(now, tz)
    today = start_of_day(local_now)
    hour, minute = parse_clock(target_time, DEFAULT_FEEDING_TARGET_TIME)
    target_at = datetime.combine(today.date(), time(hour, minute), tzinfo=today.tzinfo)

    if local_now >= target_at:
        return target_amount
    minutes_to_target = (target_at - today).total_seconds() / 60
    elapsed_minutes = (local_now - today).total_seconds() / 60
    if elapsed_minutes > 0 and minutes_to_target > 0:
        return target_amount * (elapsed_minutes / minutes_to_target)
    return 0.0


def calculate_feeding_progress(
    events: Sequence[ActivityEvent],
    target_amount: float,
    target_time: str,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> ProgressSnapshot:
    if target_amount <= 0:
        target_amount = DEFAULT_FEEDING_TARGET
    consumed = calculate_total_consumed(events)
    expected = expected_by(now, target_amount, target_time, tz)
    percentage = int(_round_half_up(consumed / target_amount * 100))
    return ProgressSnapshot(
        consumed=consumed,
        target=target_amount,
        percentage=max(0, min(100, percentage)),
        expected_by_now=_round_half_up(expected, 1),
        status=classify_progress(consumed, target_amount, expected),
    )


def compute_cumulative_chart_data(
    today_events: Sequence[ActivityEvent],
    week_events: Sequence[ActivityEvent],
    config: FeedingTargetConfig,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> CumulativeChartData:
    """Today's intake against the expected line and the N-day baseline."""

    zone = tz or now.tzinfo
    now_minutes = minutes_since_midnight(now, zone)
    today_series = build_cumulative_steps(today_events, now_minutes, tz=zone)
    expected_series = build_expected_line(config.wake_time, config.target_time, config.target_amount)

    today_start = start_of_day(now, zone)
    historical = [
        event for event in week_events if event.end is not None and to_local(event.end, zone) < today_start
    ]
    average_series = build_average_line(historical, config.average_days, now, zone)

    progress = calculate_feeding_progress(today_events, config.target_amount, config.target_time, now, zone)
    return CumulativeChartData(
        today_series=today_series,
        expected_series=expected_series,
        average_series=average_series,
        target_amount=config.target_amount,
        current_value=today_series[-1].amount,
        status=progress.status,
        expected_now=interpolate_linear(expected_series, now_minutes),
        average_now=value_at(average_series, now_minutes),
        average_days=config.average_days,
    )
