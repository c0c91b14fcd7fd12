"""Expected intake trajectory for the day."""
from __future__ import annotations

from typing import List, Sequence, Tuple

from .schemas import MINUTES_PER_DAY, CumulativePoint
from .settings import DEFAULT_FEEDING_TARGET_TIME, DEFAULT_FEEDING_WAKE_TIME, is_clock_string


def parse_clock(value: str, default: str = DEFAULT_FEEDING_TARGET_TIME) -> Tuple[int, int]:
    """Parse "HH:MM" into (hour, minute); malformed input yields the default."""
    candidate = value if is_clock_string(value) else default
    hour, minute = candidate.strip().split(":")
    return int(hour), int(minute)


def clock_minutes(value: str, default: str = DEFAULT_FEEDING_TARGET_TIME) -> float:
    hour, minute = parse_clock(value, default)
    return float(hour * 60 + minute)


def build_expected_line(
    wake_time: str,
    target_time: str,
    target_amount: float,
) -> List[CumulativePoint]:
    """Flat at zero until wake, linear rise to the target at target time, flat after.

    Wake after target is passed through unchanged; the line then doubles back.
    """

    wake_minutes = clock_minutes(wake_time, DEFAULT_FEEDING_WAKE_TIME)
    target_minutes = clock_minutes(target_time, DEFAULT_FEEDING_TARGET_TIME)
    return [
        CumulativePoint(minutes=0, amount=0),
        CumulativePoint(minutes=wake_minutes, amount=0),
        CumulativePoint(minutes=target_minutes, amount=target_amount),
        CumulativePoint(minutes=MINUTES_PER_DAY, amount=target_amount),
    ]


def interpolate_linear(series: Sequence[CumulativePoint], minutes: float) -> float:
    """Value of a piecewise-linear series at ``minutes``.

    Segments are scanned in order and the first one spanning ``minutes`` wins,
    so a vertical or backwards segment never divides by zero.
    """

    if not series:
        return 0.0
    if minutes <= series[0].minutes:
        return series[0].amount
    for left, right in zip(series, series[1:]):
        if left.minutes <= minutes <= right.minutes:
            span = right.minutes - left.minutes
            if span <= 0:
                return right.amount
            ratio = (minutes - left.minutes) / span
            return left.amount + (right.amount - left.amount) * ratio
    return series[-1].amount
