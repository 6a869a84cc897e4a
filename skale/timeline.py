"""Focus-window selection and chart data for the replay timeline."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Sequence

from skale.result import Evaluation, RecommendationEvent, ReplayResult, SuppressionReason
from skale.scales import (
    ChartEvent,
    EvalPoint,
    clock_label,
    max_demand_value,
    max_replica_value,
    time_scale,
    trimmed_duration,
    value_scale,
)

DEFAULT_FOCUS_WINDOW = timedelta(minutes=10)

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_LEFT_MARGIN = 172.0
_RIGHT_MARGIN = 40.0
_CHART_WIDTH = 1280.0
_DEMAND_TOP, _DEMAND_BOTTOM = 122.0, 280.0
_REPLICA_PANEL_BOTTOM = 666.0
_REPLICA_LINE_TOP, _REPLICA_LINE_BOTTOM = 490.0, 582.0

_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


@dataclass(frozen=True)
class FocusWindow:
    """Time range the main chart shows; `full` when it is the whole replay window."""

    start: datetime
    end: datetime
    full: bool = False


def _instant(value: datetime | None) -> datetime:
    """Normalize to an aware UTC time; a missing time sorts before every real one."""
    if value is None:
        return _ZERO_TIME
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _clock(value: datetime) -> str:
    return clock_label(None if value == _ZERO_TIME else value)


def normalized_focus_window(width: timedelta | None) -> timedelta:
    """Return `width`, or the default focus width when it is unset or not positive."""
    if width is None or width <= timedelta(0):
        return DEFAULT_FOCUS_WINDOW
    return width


def select_focus_window(result: ReplayResult, width: timedelta | None) -> FocusWindow:
    """Choose the chart window around predictive activity inside the replay window."""
    start = _instant(result.window.start)
    end = _instant(result.window.end)
    if start == _ZERO_TIME or end == _ZERO_TIME or end <= start:
        return FocusWindow(start=start, end=end, full=True)
    if (
        width is None
        or width <= timedelta(0)
        or end - start <= width
        or not result.evaluations
    ):
        return FocusWindow(start=start, end=end, full=True)

    if result.recommendation_events:
        anchor_start = _instant(result.recommendation_events[0].evaluated_at)
        anchor_end = anchor_start
        for event in result.recommendation_events:
            evaluated = _instant(event.evaluated_at)
            anchor_start = min(anchor_start, evaluated)
            anchor_end = max(anchor_end, evaluated)
            if event.activation_time is not None:
                anchor_end = max(anchor_end, _instant(event.activation_time))
    else:
        anchor_start = anchor_end = start + (end - start) / 2

    span = anchor_end - anchor_start
    if span >= width:
        window_start = clamp_window_start(anchor_start, start, end, width)
    else:
        padding = (width - span) / 2
        window_start = clamp_window_start(anchor_start - padding, start, end, width)
    return FocusWindow(start=window_start, end=window_start + width)


def clamp_window_start(
    candidate: datetime, minimum: datetime, maximum: datetime, width: timedelta
) -> datetime:
    """Shift a window start so that [start, start + width] stays inside [minimum, maximum]."""
    if candidate < minimum:
        return minimum
    if candidate + width > maximum:
        return maximum - width
    return candidate


def _reasons(evaluation: Evaluation) -> list[SuppressionReason]:
    if evaluation.suppression_reasons:
        return evaluation.suppression_reasons
    if evaluation.decision is not None:
        return evaluation.decision.outcome.suppression_reasons
    return []


def filter_eval_points(
    evaluations: Iterable[Evaluation], start: datetime | None, end: datetime | None
) -> list[EvalPoint]:
    """Evaluations inside [start, end] as chart points, ordered by time."""
    lower, upper = _instant(start), _instant(end)
    points = []
    for evaluation in evaluations:
        at = _instant(evaluation.evaluated_at)
        if at < lower or at > upper:
            continue
        points.append(
            EvalPoint(
                at=at,
                demand=evaluation.current_demand,
                baseline_replicas=evaluation.baseline_replicas,
                replay_replicas=evaluation.simulated_replicas,
                suppressed=bool(_reasons(evaluation)),
                suppression_label=suppression_label(evaluation),
            )
        )
    points.sort(key=lambda point: point.at)
    return points


def suppression_label(evaluation: Evaluation) -> str:
    """Short human label for why an evaluation was held, or '' when it was not."""
    reasons = _reasons(evaluation)
    if not reasons:
        return ""
    if any(reason.code.strip() == "cooldown_active" for reason in reasons):
        return "held by cooldown"
    first = reasons[0]
    code = first.code.strip()
    if code:
        return code.replace("_", " ")
    message = first.message.strip()
    if message:
        return message
    return "suppressed check"


def filter_events(
    events: Iterable[RecommendationEvent], start: datetime | None, end: datetime | None
) -> list[ChartEvent]:
    """Recommendation events whose evaluation-to-ready span touches [start, end]."""
    lower, upper = _instant(start), _instant(end)
    out = []
    for event in events:
        evaluated = _instant(event.evaluated_at)
        activation = (
            _instant(event.activation_time) if event.activation_time is not None else None
        )
        if activation is None:
            if evaluated < lower or evaluated > upper:
                continue
        elif activation < lower or evaluated > upper:
            continue
        out.append(
            ChartEvent(
                evaluated_at=evaluated,
                activation=activation,
                from_replicas=event.recommendation.current_replicas,
                to_replicas=event.recommendation.recommended_replicas,
                predicted_demand=max(event.forecast.predicted_demand, 0.0),
                confidence=event.forecast.confidence,
            )
        )
    out.sort(key=lambda item: item.evaluated_at)
    return out


def suppression_marks(points: Iterable[EvalPoint]) -> list[datetime]:
    """Times of the suppressed points."""
    return [point.at for point in points if point.suppressed]


def nearest_point_index(points: Sequence[Mapping[str, Any]], x: float) -> int:
    """Index of the chart point whose 'x' lies closest to `x`; the first wins ties."""
    if not points:
        return 0
    return min(range(len(points)), key=lambda index: abs(points[index]["x"] - x))


def _number(value: float) -> float | int:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def build_chart_data(result: ReplayResult, focus: FocusWindow) -> str:
    """JSON scene for the interactive cursor, or 'null' when nothing can be plotted."""
    if not result.evaluations:
        return "null"

    focus_points = filter_eval_points(result.evaluations, focus.start, focus.end)
    if not focus_points:
        return "null"

    start, end = _instant(focus.start), _instant(focus.end)
    plot_right = _CHART_WIDTH - _RIGHT_MARGIN
    main_x = time_scale(start, end, _LEFT_MARGIN, plot_right)
    demand_max = max_demand_value(focus_points, result.recommendation_events)
    replica_max = max_replica_value(focus_points, result.recommendation_events)
    demand_y = value_scale(0, demand_max, _DEMAND_BOTTOM, _DEMAND_TOP)
    replica_y = value_scale(0, float(replica_max), _REPLICA_LINE_BOTTOM, _REPLICA_LINE_TOP)

    points: list[dict[str, Any]] = []
    for index, point in enumerate(focus_points):
        entry: dict[str, Any] = {
            "index": index,
            "x": _number(main_x(point.at)),
            "timeLabel": _clock(point.at),
            "demand": _number(float(point.demand)),
            "demandY": _number(demand_y(point.demand)),
            "baselineReplicas": point.baseline_replicas,
            "baselineY": _number(replica_y(float(point.baseline_replicas))),
            "replayReplicas": point.replay_replicas,
            "replayY": _number(replica_y(float(point.replay_replicas))),
            "suppressed": point.suppressed,
        }
        if point.suppression_label:
            entry["suppressionLabel"] = point.suppression_label
        points.append(entry)

    events = filter_events(result.recommendation_events, start, end)
    initial_index = len(points) // 2
    if events:
        initial_index = nearest_point_index(points, main_x(events[0].evaluated_at))

    event_data = []
    for event in events:
        eval_x = main_x(event.evaluated_at)
        ready_x = eval_x
        ready_time = "pending"
        if event.activation is not None:
            ready_x = main_x(event.activation)
            ready_time = _clock(event.activation)
        event_data.append(
            {
                "evalIndex": nearest_point_index(points, eval_x),
                "evalX": _number(eval_x),
                "evalTimeLabel": _clock(event.evaluated_at),
                "readyX": _number(ready_x),
                "readyTimeLabel": ready_time,
                "fromReplicas": event.from_replicas,
                "toReplicas": event.to_replicas,
                "predictedDemand": _number(float(event.predicted_demand)),
                "confidence": _number(float(event.confidence)),
            }
        )

    scene = {
        "plotLeft": _number(_LEFT_MARGIN),
        "plotRight": _number(plot_right),
        "plotTop": _number(_DEMAND_TOP),
        "plotBottom": _number(_REPLICA_PANEL_BOTTOM),
        "focusWindow": trimmed_duration(end - start),
        "points": points,
        "events": event_data,
        "initialIndex": initial_index,
    }
    encoded = json.dumps(scene, separators=(",", ":"), ensure_ascii=False)
    return encoded.translate(_JSON_ESCAPES)