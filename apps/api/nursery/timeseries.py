"""Cumulative intake series for the feeding chart.

A day's intake is a right-continuous step function over minutes since local
midnight: it jumps by an event's amount at the event's end time. Historical
days are averaged into a baseline sampled every 15 minutes.
"""
from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple

from .schemas import (
    MINUTES_PER_DAY,
    ActivityCategory,
    ActivityEvent,
    CumulativePoint,
    FeedingMethod,
)

SAMPLE_STEP_MINUTES = 15


def to_local(value: datetime, tz: Optional[tzinfo]) -> datetime:
    if tz is not None and value.tzinfo is not None:
        return value.astimezone(tz)
    return value


def minutes_since_midnight(value: datetime, tz: Optional[tzinfo] = None) -> float:
    """Minutes since local midnight, seconds included as a fraction (0 to <1440)."""
    local = to_local(value, tz)
    return local.hour * 60 + local.minute + local.second / 60.0


def start_of_day(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    local = to_local(value, tz)
    return datetime.combine(local.date(), time.min, tzinfo=local.tzinfo)


def is_amount_bearing(event: ActivityEvent) -> bool:
    """Only bottle feedings and pumping sessions have a measured amount that counts."""
    if not event.amount or event.amount <= 0:
        return False
    if event.category == ActivityCategory.PUMPING:
        return True
    return event.category == ActivityCategory.FEEDING and event.method == FeedingMethod.BOTTLE.value


def _step_inputs(
    events: Iterable[ActivityEvent],
    up_to_minutes: Optional[float],
    tz: Optional[tzinfo],
) -> List[Tuple[float, float]]:
    steps: List[Tuple[float, float]] = []
    for event in events:
        if event.end is None or not is_amount_bearing(event):
            continue
        minutes = minutes_since_midnight(event.end, tz)
        if up_to_minutes is not None and minutes > up_to_minutes:
            continue
        steps.append((minutes, float(event.amount)))
    steps.sort(key=lambda item: item[0])
    return steps


def build_cumulative_steps(
    events: Iterable[ActivityEvent],
    up_to_minutes: Optional[float] = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> List[CumulativePoint]:
    """Build the step series for one day's amount-bearing events.

    Each event contributes two points at its end minute (value before, value
    after) so the chart draws a vertical step. Events after ``up_to_minutes``
    are ignored, and the series is extended flat to the cutoff, or to ``now``
    when no cutoff is given, so the line does not stop before the present.
    """

    points = [CumulativePoint(minutes=0, amount=0)]
    cumulative = 0.0
    for minutes, amount in _step_inputs(events, up_to_minutes, tz):
        points.append(CumulativePoint(minutes=minutes, amount=cumulative))
        cumulative += amount
        points.append(CumulativePoint(minutes=minutes, amount=cumulative))

    if up_to_minutes is not None:
        end_x = up_to_minutes
    else:
        end_x = minutes_since_midnight(now or datetime.now(tz), tz)
    end_x = min(max(end_x, 0.0), MINUTES_PER_DAY)
    if points[-1].minutes < end_x:
        points.append(CumulativePoint(minutes=end_x, amount=cumulative))
    return points


def value_at(series: Sequence[CumulativePoint], minutes: float) -> float:
    """Hold-last-value lookup: the amount of the last point with x <= minutes.

    Points sharing an x resolve to the later one, so at a jump the value after
    the jump is returned.
    """

    result = 0.0
    for point in series:
        if point.minutes <= minutes:
            result = point.amount
        else:
            break
    return result


def build_average_line(
    historical_events: Sequence[ActivityEvent],
    days: int,
    reference: datetime,
    tz: Optional[tzinfo] = None,
) -> List[CumulativePoint]:
    """Average cumulative curve over the ``days`` calendar days before ``reference``.

    Callers pass events from prior days only. Each day in the window counts,
    including days with nothing logged (they contribute zero everywhere).
    """

    if days <= 0:
        return []
    zone = tz or reference.tzinfo
    today_start = start_of_day(reference, zone)

    day_series: List[List[CumulativePoint]] = []
    for offset in range(1, days + 1):
        day_start = _shift_days(today_start, -offset)
        day_end = _shift_days(day_start, 1)
        day_events = [
            event
            for event in historical_events
            if event.end is not None and day_start <= to_local(event.end, zone) < day_end
        ]
        day_series.append(build_cumulative_steps(day_events, MINUTES_PER_DAY, tz=zone))

    samples: List[CumulativePoint] = []
    for minute in range(0, int(MINUTES_PER_DAY) + 1, SAMPLE_STEP_MINUTES):
        total = sum(value_at(series, minute) for series in day_series)
        samples.append(CumulativePoint(minutes=minute, amount=total / len(day_series)))
    return samples


def _shift_days(day_start: datetime, days: int) -> datetime:
    # Wall-clock arithmetic: always lands on local midnight, DST or not.
    shifted = day_start.replace(tzinfo=None) + timedelta(days=days)
    return shifted.replace(tzinfo=day_start.tzinfo)
