"""Scales, axis ticks and label formatting for the replay timeline chart."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Sequence

from skale.report import format_seconds
from skale.result import RecommendationEvent

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_CLOCK_LAYOUT = "%H:%M"
_MICROSECOND = timedelta(microseconds=1)


@dataclass(frozen=True)
class EvalPoint:
    """One replay evaluation placed on the chart's time axis."""

    at: datetime
    demand: float = 0.0
    baseline_replicas: int = 0
    replay_replicas: int = 0
    suppressed: bool = False
    suppression_label: str = ""


@dataclass(frozen=True)
class ChartEvent:
    """A surfaced recommendation placed on the chart's time axis."""

    evaluated_at: datetime
    activation: datetime | None = None
    from_replicas: int = 0
    to_replicas: int = 0
    predicted_demand: float = 0.0
    confidence: float = 0.0


@dataclass(frozen=True)
class TimeTickSpec:
    """Spacing between time-axis ticks and the clock format of their labels."""

    step: timedelta
    layout: str = _CLOCK_LAYOUT


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate(value: datetime, step: timedelta) -> datetime:
    """Round a time down to a multiple of `step` counted from UTC midnight."""
    value = _utc(value)
    midnight = value.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + ((value - midnight) // step) * step


def time_scale(
    start: datetime, end: datetime, left: float, right: float
) -> Callable[[datetime], float]:
    """Map times in [start, end] linearly onto [left, right], clamping outside values."""
    duration = end - start
    if duration <= timedelta(0):
        return lambda _value: left

    def scale(value: datetime) -> float:
        if value < start:
            return left
        if value > end:
            return right
        ratio = (value - start) / duration
        return left + ratio * (right - left)

    return scale


def value_scale(
    min_value: float, max_value: float, bottom: float, top: float
) -> Callable[[float], float]:
    """Map values in [min_value, max_value] onto screen y from bottom to top."""
    if max_value <= min_value:
        return lambda _value: bottom

    def scale(value: float) -> float:
        value = min(max(value, min_value), max_value)
        ratio = (value - min_value) / (max_value - min_value)
        return bottom - ratio * (bottom - top)

    return scale


def max_demand_value(
    points: Iterable[EvalPoint], events: Iterable[RecommendationEvent]
) -> float:
    """Top of the demand axis: the largest demand rounded up to a multiple of 20."""
    peak = 0.0
    for point in points:
        peak = max(peak, point.demand)
    for event in events:
        peak = max(peak, event.forecast.predicted_demand)
    if peak <= 0:
        return 1.0
    return float(math.ceil(peak / 20) * 20)


def max_replica_value(
    points: Iterable[EvalPoint], events: Iterable[RecommendationEvent]
) -> int:
    """Top of the replica axis: one more than the largest replica count seen."""
    peak = 1
    for point in points:
        peak = max(peak, point.baseline_replicas, point.replay_replicas)
    for event in events:
        peak = max(peak, event.recommendation.recommended_replicas)
    return peak + 1


def _duration_text(value: timedelta) -> str:
    micros = value // _MICROSECOND
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1000:
        return f"{sign}{micros}\u00b5s"
    if micros < 1_000_000:
        whole, frac = divmod(micros, 1000)
        text = str(whole)
        if frac:
            text += "." + f"{frac:03d}".rstrip("0")
        return f"{sign}{text}ms"
    total_seconds, frac = divmod(micros, 1_000_000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    secs = str(seconds)
    if frac:
        secs += "." + f"{frac:06d}".rstrip("0")
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def trimmed_duration(value: timedelta) -> str:
    """Format a duration without zero-valued trailing units, such as 4m or 1h30m."""
    if value <= timedelta(0):
        return "0s"
    hour = timedelta(hours=1)
    minute = timedelta(minutes=1)
    second = timedelta(seconds=1)
    if value % hour == timedelta(0):
        return f"{value // hour}h"
    if value % minute == timedelta(0):
        hours = value // hour
        minutes = (value % hour) // minute
        return f"{hours}h{minutes}m" if hours > 0 else f"{minutes}m"
    if value % second == timedelta(0):
        minutes = value // minute
        seconds = (value % minute) // second
        return f"{minutes}m{seconds}s" if minutes > 0 else f"{seconds}s"
    return _duration_text(value)


def format_signed_float(value: float) -> str:
    """Format a value with an explicit sign and two decimals."""
    return f"{value:+.2f}"


def format_optional_seconds(seconds: int, zero_label: str) -> str:
    """Format positive seconds as a duration, otherwise return `zero_label`."""
    if seconds <= 0:
        return zero_label
    return format_seconds(seconds)


def clock_label(value: datetime | None) -> str:
    """Format a time as HH:MM:SS in UTC, or 'unknown' when missing."""
    if value is None:
        return "unknown"
    return _utc(value).strftime("%H:%M:%S")


def clamp_float(value: float, minimum: float, maximum: float) -> float:
    """Limit a value to the range [minimum, maximum]."""
    if value < minimum:
        return minimum
    if value > maximum:
        return maximum
    return value


_TICK_STEPS: Sequence[tuple[timedelta, timedelta]] = (
    (timedelta(minutes=45), timedelta(minutes=5)),
    (timedelta(hours=3), timedelta(minutes=15)),
    (timedelta(hours=8), timedelta(minutes=30)),
    (timedelta(hours=18), timedelta(hours=1)),
    (timedelta(hours=36), timedelta(hours=2)),
    (timedelta(hours=72), timedelta(hours=4)),
)


def select_time_tick_spec(start: datetime, end: datetime) -> TimeTickSpec:
    """Choose tick spacing so the chart carries a readable number of time labels."""
    span = end - start
    for limit, step in _TICK_STEPS:
        if span <= limit:
            return TimeTickSpec(step=step)
    return TimeTickSpec(step=timedelta(hours=6))


def format_time_tick_label(
    tick: datetime, start: datetime, end: datetime, layout: str
) -> str:
    """Label a tick, adding the date at the first tick and at midnight on long spans."""
    layout = layout or _CLOCK_LAYOUT
    tick = _utc(tick)
    if end - start >= timedelta(hours=18):
        first = _truncate(start, select_time_tick_spec(start, end).step)
        if tick == first or tick.hour == 0:
            return f"{_MONTHS[tick.month - 1]} {tick.day} {tick:%H:%M}"
    return tick.strftime(layout)