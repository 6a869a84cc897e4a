"""Static SVG rendering of the replay demand and replica timeline."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, NamedTuple, Sequence

from skale.result import ReplayResult
from skale.scales import (
    ChartEvent,
    EvalPoint,
    format_time_tick_label,
    max_demand_value,
    max_replica_value,
    select_time_tick_spec,
    time_scale,
    trimmed_duration,
    value_scale,
)
from skale.timeline import FocusWindow, filter_eval_points, filter_events, suppression_marks

_WIDTH = 1280.0
_HEIGHT = 760.0
_LEFT_MARGIN = 172.0
_RIGHT_MARGIN = 40.0
_PLOT_WIDTH = _WIDTH - _LEFT_MARGIN - _RIGHT_MARGIN
_SERIF = "Iowan Old Style, Palatino Linotype, Georgia, serif"

_ESCAPES = str.maketrans(
    {"&": "&amp;", "'": "&#39;", "<": "&lt;", ">": "&gt;", '"': "&#34;"}
)

XScale = Callable[[datetime], float]
YScale = Callable[[float], float]


class _Band(NamedTuple):
    top: float
    bottom: float

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def middle(self) -> float:
        return self.top + self.height / 2


_DEMAND_PANEL = _Band(122, 280)
_REPLICA_PANEL = _Band(340, 666)
_WARMUP_TRACK = _Band(430, 462)
_REPLICA_LINE_BAND = _Band(490, 582)
_HELD_TRACK = _Band(610, 640)


def _escape(text: str) -> str:
    return text.translate(_ESCAPES)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _truncate(value: datetime, step: timedelta) -> datetime:
    midnight = value.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + ((value - midnight) // step) * step


def build_timeline_svg(result: ReplayResult, focus: FocusWindow) -> str:
    """Render the focused demand and replica timeline, or a placeholder when empty."""
    if not result.evaluations:
        return build_placeholder_svg(
            result, "No replay evaluations were available for timeline rendering."
        )

    start, end = _utc(focus.start), _utc(focus.end)
    points = filter_eval_points(result.evaluations, start, end)
    if not points:
        return build_placeholder_svg(
            result,
            "Replay evaluations exist, but none were available in the selected focus window.",
        )

    right = _WIDTH - _RIGHT_MARGIN
    main_x = time_scale(start, end, _LEFT_MARGIN, _LEFT_MARGIN + _PLOT_WIDTH)
    demand_max = max_demand_value(points, result.recommendation_events)
    replica_max = max_replica_value(points, result.recommendation_events)
    demand_y = value_scale(0, demand_max, _DEMAND_PANEL.bottom, _DEMAND_PANEL.top)
    replica_y = value_scale(
        0, float(replica_max), _REPLICA_LINE_BAND.bottom, _REPLICA_LINE_BAND.top
    )
    marks = suppression_marks(points)
    events = filter_events(result.recommendation_events, start, end)
    window_label = (trimmed_duration(end - start) + " WINDOW").upper()

    out: list[str] = [
        f'<svg id="replay-timeline" class="timeline-svg" viewBox="0 0 {_WIDTH:.0f} '
        f'{_HEIGHT:.0f}" role="img" aria-label="Replay lifecycle timeline">',
        "<defs>",
        '<linearGradient id="demand-fill" x1="0" y1="0" x2="0" y2="1">'
        '<stop offset="0%" stop-color="rgba(38,112,176,0.22)"/>'
        '<stop offset="100%" stop-color="rgba(38,112,176,0.02)"/></linearGradient>',
        '<filter id="soft-shadow" x="-20%" y="-20%" width="140%" height="140%">'
        '<feDropShadow dx="0" dy="22" stdDeviation="18" flood-color="rgba(0,0,0,0.18)"/>'
        "</filter>",
        "</defs>",
        '<rect x="10" y="10" width="1260" height="740" rx="30" fill="#f6f2ea" '
        'stroke="rgba(10,27,34,0.14)" filter="url(#soft-shadow)"/>',
        f'<text x="{_LEFT_MARGIN:.1f}" y="56" fill="#13252c" font-size="30" '
        f'font-family="{_SERIF}">Demand and replica path</text>',
        f'<text x="{_LEFT_MARGIN:.1f}" y="84" fill="rgba(19,37,44,0.72)" font-size="14">'
        "Top: observed demand. Bottom: actual replicas, predictive ready replicas, and "
        "separate timing rows for warmup and held checks.</text>",
        f'<text x="{_LEFT_MARGIN:.1f}" y="104" fill="rgba(19,37,44,0.58)" font-size="12" '
        f'letter-spacing="1.4">MAIN CHART {_escape(window_label)}</text>',
    ]

    out += _lane_label_card(24, _DEMAND_PANEL, "Demand", "Observed load")
    out += _lane_label_card(24, _REPLICA_PANEL, "Replicas", "Actual vs predictive")
    out += _panel_frame(_LEFT_MARGIN, right, _DEMAND_PANEL, "Observed demand")
    out += _panel_frame(
        _LEFT_MARGIN, right, _REPLICA_PANEL, "Actual replicas vs predictive ready replicas"
    )
    out += _replica_panel_key(_LEFT_MARGIN, _REPLICA_PANEL)
    out += _timing_track(_LEFT_MARGIN, right, _WARMUP_TRACK, "warmup", "#138a7e")
    out += _timing_track(_LEFT_MARGIN, right, _HELD_TRACK, "held check", "#d99139")

    out += _axis_grid(
        _LEFT_MARGIN,
        right,
        4,
        lambda index: f"{demand_max * index / 4:.0f}",
        lambda index: demand_y(demand_max * index / 4),
    )
    out += _axis_grid(
        _LEFT_MARGIN,
        right,
        replica_max,
        str,
        lambda index: replica_y(float(index)),
    )
    out += _time_ticks(start, end, main_x, _DEMAND_PANEL.top, _REPLICA_PANEL.bottom, _HEIGHT - 28)

    out += _event_guides(events, main_x, _DEMAND_PANEL.top, _REPLICA_PANEL.bottom)
    out += _demand_series(points, main_x, demand_y, _DEMAND_PANEL)
    out += _warmup_bands(events, main_x, _WARMUP_TRACK)
    out += _replica_series(points, main_x, replica_y, end)
    out += _replica_end_labels(points, main_x, replica_y, end)
    out += _forecast_markers(events, main_x, demand_y)
    out += _suppression_row(marks, main_x, _HELD_TRACK)
    out += _interactive_cursor(_LEFT_MARGIN, right, _DEMAND_PANEL.top, _REPLICA_PANEL.bottom)

    out.append("</svg>")
    return "".join(out)


def build_placeholder_svg(result: ReplayResult, message: str) -> str:
    """Render a card explaining why no timeline could be drawn."""
    out = [
        '<svg viewBox="0 0 1240 320" role="img" '
        'aria-label="Replay lifecycle timeline unavailable">',
        '<rect x="10" y="10" width="1220" height="300" rx="28" fill="#f6f2ea" '
        'stroke="rgba(10,27,34,0.10)"/>',
        f'<text x="72" y="92" fill="#13252c" font-size="28" font-family="{_SERIF}">'
        "Replay timeline unavailable</text>",
        f'<text x="72" y="130" fill="rgba(19,37,44,0.76)" font-size="15">'
        f"{_escape(message)}</text>",
    ]
    for index, reason in enumerate(result.unsupported_reasons):
        out.append(
            f'<text x="72" y="{168 + index * 24}" fill="rgba(19,37,44,0.74)" '
            f'font-size="13">- {_escape(reason)}</text>'
        )
    out.append("</svg>")
    return "".join(out)


def step_path(
    points: Sequence[EvalPoint],
    x: XScale,
    y: Callable[[EvalPoint], float],
    end: datetime,
) -> str:
    """SVG path data for a step line through the points, extended to `end`."""
    if not points:
        return ""
    first = points[0]
    parts = [f"M {x(first.at):.1f} {y(first):.1f}"]
    parts += [f" H {x(point.at):.1f} V {y(point):.1f}" for point in points[1:]]
    if not end < points[-1].at:
        parts.append(f" H {x(end):.1f}")
    return "".join(parts)


def _panel_frame(left: float, right: float, band: _Band, label: str) -> list[str]:
    return [
        f'<rect x="{left - 12:.1f}" y="{band.top - 26:.1f}" width="{right - left + 24:.1f}" '
        f'height="{band.height + 40:.1f}" rx="20" fill="rgba(255,255,255,0.74)" '
        'stroke="rgba(19,37,44,0.08)"/>',
        f'<text x="{left:.1f}" y="{band.top - 8:.1f}" fill="rgba(19,37,44,0.82)" '
        f'font-size="12" letter-spacing="1.6">{_escape(label.upper())}</text>',
    ]


def _lane_label_card(x: float, band: _Band, title: str, detail: str) -> list[str]:
    width = 124.0
    height = max(78.0, band.height - 18)
    y = band.top + (band.height - height) / 2
    return [
        f'<rect x="{x:.1f}" y="{y:.1f}" width="{width:.1f}" height="{height:.1f}" '
        'rx="18" fill="#13252c" opacity="0.96"/>',
        f'<text x="{x + 16:.1f}" y="{y + 30:.1f}" fill="#f6f2ea" font-size="16" '
        f'font-weight="650">{_escape(title)}</text>',
        f'<text x="{x + 16:.1f}" y="{y + 52:.1f}" fill="rgba(246,242,234,0.72)" '
        f'font-size="12">{_escape(detail)}</text>',
    ]


def _replica_panel_key(left: float, band: _Band) -> list[str]:
    return [
        f'<text x="{left:.1f}" y="{band.top + 28:.1f}" fill="rgba(19,37,44,0.72)" '
        'font-size="12">orange = actual recorded replicas. green = predictive ready '
        "replicas. timing rows below make warmup and held checks explicit.</text>",
        f'<text x="{left:.1f}" y="{band.top + 62:.1f}" fill="rgba(19,37,44,0.68)" '
        'font-size="11">green row = evaluation to ready. amber row = checks that did not '
        "surface; hover for the reason such as cooldown.</text>",
    ]


def _timing_track(left: float, right: float, band: _Band, label: str, color: str) -> list[str]:
    mid = band.middle
    return [
        f'<rect x="{left:.1f}" y="{band.top:.1f}" width="{right - left:.1f}" '
        f'height="{band.height:.1f}" rx="12" fill="rgba(19,37,44,0.04)" '
        'stroke="rgba(19,37,44,0.08)"/>',
        f'<line x1="{left + 6:.1f}" y1="{mid:.1f}" x2="{right - 6:.1f}" y2="{mid:.1f}" '
        f'stroke="{color}" stroke-opacity="0.28" stroke-width="2"/>',
        f'<text x="{left + 10:.1f}" y="{band.top - 6:.1f}" fill="rgba(19,37,44,0.62)" '
        f'font-size="10.5" letter-spacing="1.1">{_escape(label.upper())}</text>',
    ]


def _event_guides(
    events: Iterable[ChartEvent], x: XScale, top: float, bottom: float
) -> list[str]:
    out = []
    for event in events:
        eval_x = x(event.evaluated_at)
        out.append(
            f'<line class="event-guide" x1="{eval_x:.1f}" y1="{top:.1f}" x2="{eval_x:.1f}" '
            f'y2="{bottom:.1f}" stroke="rgba(19,138,126,0.28)" stroke-width="1.5" '
            'stroke-dasharray="8 7"/>'
        )
        if event.activation is not None:
            ready_x = x(event.activation)
            out.append(
                f'<line class="event-guide" x1="{ready_x:.1f}" y1="{top:.1f}" '
                f'x2="{ready_x:.1f}" y2="{bottom:.1f}" stroke="rgba(19,138,126,0.18)" '
                'stroke-width="2"/>'
            )
    return out


def _axis_grid(
    left: float,
    right: float,
    ticks: int,
    label: Callable[[int], str],
    position: Callable[[int], float],
) -> list[str]:
    out = []
    for index in range(ticks + 1):
        y = position(index)
        out.append(
            f'<line x1="{left:.1f}" y1="{y:.1f}" x2="{right:.1f}" y2="{y:.1f}" '
            'stroke="rgba(19,37,44,0.10)" stroke-width="1"/>'
        )
        out.append(
            f'<text x="{left - 12:.1f}" y="{y + 4:.1f}" text-anchor="end" '
            f'fill="rgba(19,37,44,0.66)" font-size="11">{_escape(label(index))}</text>'
        )
    return out


def _time_ticks(
    start: datetime, end: datetime, scale: XScale, top: float, bottom: float, y: float
) -> list[str]:
    spec = select_time_tick_spec(start, end)
    tick = _truncate(start, spec.step)
    if tick < start:
        tick += spec.step
    out = []
    while not tick > end:
        x = scale(tick)
        label = format_time_tick_label(tick, start, end, spec.layout)
        out.append(
            f'<line x1="{x:.1f}" y1="{top:.1f}" x2="{x:.1f}" y2="{bottom:.1f}" '
            'stroke="rgba(19,37,44,0.08)" stroke-width="1"/>'
        )
        out.append(
            f'<text x="{x:.1f}" y="{y:.1f}" text-anchor="middle" '
            f'fill="rgba(19,37,44,0.66)" font-size="11">{_escape(label)}</text>'
        )
        tick += spec.step
    return out


def _demand_series(
    points: Sequence[EvalPoint], x: XScale, y: YScale, band: _Band
) -> list[str]:
    if not points:
        return []
    line = []
    first_x = x(points[0].at)
    area = [f"M {first_x:.1f} {band.bottom:.1f}"]
    for index, point in enumerate(points):
        px, py = x(point.at), y(point.demand)
        line.append(f"{'M' if index == 0 else 'L'} {px:.1f} {py:.1f}")
        area.append(f"L {px:.1f} {py:.1f}")
    area.append(f"L {x(points[-1].at):.1f} {band.bottom:.1f} Z")
    return [
        f'<path class="series-area" d="{" ".join(area)}" fill="url(#demand-fill)"/>',
        f'<path class="series-line demand-line" d="{" ".join(line)}" fill="none" '
        'stroke="#2670b0" stroke-width="4" stroke-linecap="round" stroke-linejoin="round"/>',
    ]


def _replica_series(
    points: Sequence[EvalPoint], x: XScale, y: YScale, end: datetime
) -> list[str]:
    if not points:
        return []
    baseline = step_path(points, x, lambda point: y(float(point.baseline_replicas)), end)
    replay = step_path(points, x, lambda point: y(float(point.replay_replicas)), end)
    return [
        f'<path class="series-line baseline-line" d="{baseline}" fill="none" '
        'stroke="#d99139" stroke-width="4.5" stroke-dasharray="12 8" '
        'stroke-linecap="round" stroke-linejoin="round"/>',
        f'<path class="series-line replay-line" d="{replay}" fill="none" '
        'stroke="#138a7e" stroke-width="5" stroke-linecap="round" stroke-linejoin="round"/>',
    ]


def _replica_end_labels(
    points: Sequence[EvalPoint], x: XScale, y: YScale, end: datetime
) -> list[str]:
    if not points:
        return []
    last = points[-1]
    label_x = x(end) + 10
    actual_y = y(float(last.baseline_replicas)) + 4
    predictive_y = y(float(last.replay_replicas)) + 4
    if math.fabs(actual_y - predictive_y) < 16:
        actual_y -= 10
        predictive_y += 14
    return [
        f'<text x="{label_x:.1f}" y="{actual_y:.1f}" fill="#d99139" font-size="12" '
        f'font-weight="650">actual {last.baseline_replicas}</text>',
        f'<text x="{label_x:.1f}" y="{predictive_y:.1f}" fill="#138a7e" font-size="12" '
        f'font-weight="650">predictive ready {last.replay_replicas}</text>',
    ]


def _forecast_markers(events: Iterable[ChartEvent], x: XScale, y: YScale) -> list[str]:
    return [
        f'<circle class="forecast-point" cx="{x(event.activation):.1f}" '
        f'cy="{y(event.predicted_demand):.1f}" r="7" fill="#f6f2ea" stroke="#138a7e" '
        'stroke-width="3"/>'
        for event in events
        if event.activation is not None
    ]


def _warmup_bands(events: Iterable[ChartEvent], x: XScale, band: _Band) -> list[str]:
    line_y = band.middle
    out = []
    for event in events:
        if event.activation is None:
            continue
        start_x = x(event.evaluated_at)
        end_x = x(event.activation)
        width = end_x - start_x
        if width <= 0:
            continue
        out.append(
            f'<rect class="warmup-band" x="{start_x:.1f}" y="{band.top + 4:.1f}" '
            f'width="{width:.1f}" height="{band.height - 8:.1f}" rx="12" '
            'fill="rgba(19,138,126,0.16)" stroke="rgba(19,138,126,0.26)"/>'
        )
        out.append(
            f'<circle class="warmup-band" cx="{start_x:.1f}" cy="{line_y:.1f}" r="4.5" '
            'fill="#138a7e"/>'
        )
        out.append(
            f'<circle class="warmup-band" cx="{end_x:.1f}" cy="{line_y:.1f}" r="5" '
            'fill="#f6f2ea" stroke="#138a7e" stroke-width="2"/>'
        )
    return out


def _suppression_row(marks: Iterable[datetime], x: XScale, band: _Band) -> list[str]:
    row_y = band.middle
    size = 12.0
    return [
        f'<rect class="suppression-mark" x="{x(mark) - 6:.1f}" y="{row_y - 6:.1f}" '
        f'width="{size:.1f}" height="{size:.1f}" rx="6" fill="rgba(217,145,57,0.22)" '
        'stroke="#d99139" stroke-width="1.5"/>'
        for mark in marks
    ]


def _interactive_cursor(left: float, right: float, top: float, bottom: float) -> list[str]:
    return [
        '<g id="interactive-cursor" aria-hidden="true">',
        f'<rect id="timeline-hitbox" x="{left:.1f}" y="{top:.1f}" width="{right - left:.1f}" '
        f'height="{bottom - top:.1f}" fill="transparent" pointer-events="all"/>',
        '<line id="cursor-line" x1="0" y1="0" x2="0" y2="0" stroke="rgba(19,37,44,0.55)" '
        'stroke-width="1.5" stroke-dasharray="7 6"/>',
        '<circle id="cursor-demand" cx="0" cy="0" r="7" fill="#f6f2ea" stroke="#2670b0" '
        'stroke-width="3"/>',
        '<circle id="cursor-baseline" cx="0" cy="0" r="7" fill="#f6f2ea" stroke="#d99139" '
        'stroke-width="3"/>',
        '<circle id="cursor-replay" cx="0" cy="0" r="7" fill="#f6f2ea" stroke="#138a7e" '
        'stroke-width="3"/>',
        "</g>",
    ]