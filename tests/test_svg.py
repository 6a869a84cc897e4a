from datetime import datetime, timedelta, timezone

import pytest

from skale.result import (
    ForecastSummary,
    RecommendationEvent,
    RecommendationSurface,
    ReplayResult,
    ReplayStatus,
    SuppressionReason,
    TargetRef,
    WindowSummary,
    Evaluation,
)
from skale.scales import EvalPoint, max_replica_value
from skale.svg import build_placeholder_svg, build_timeline_svg, step_path
from skale.timeline import FocusWindow, filter_eval_points, select_focus_window

NOW = datetime(2026, 4, 2, 12, 0, 0, tzinfo=timezone.utc)


def sample_result() -> ReplayResult:
    return ReplayResult(
        status=ReplayStatus.COMPLETE,
        generated_at=NOW,
        target=TargetRef(namespace="payments", name="checkout-api"),
        window=WindowSummary(start=NOW - timedelta(minutes=10), end=NOW),
        recommendation_events=[
            RecommendationEvent(
                evaluated_at=NOW - timedelta(minutes=5),
                activation_time=NOW - timedelta(minutes=3),
                forecast=ForecastSummary(predicted_demand=320, confidence=0.92),
                recommendation=RecommendationSurface(
                    current_replicas=2, recommended_replicas=4
                ),
            )
        ],
        evaluations=[
            Evaluation(
                evaluated_at=NOW - timedelta(minutes=7),
                current_demand=160,
                baseline_replicas=2,
                simulated_replicas=2,
                suppression_reasons=[
                    SuppressionReason(
                        code="blackout_window_active", message="blackout window is active"
                    )
                ],
            ),
            Evaluation(
                evaluated_at=NOW - timedelta(minutes=5),
                current_demand=160,
                baseline_replicas=2,
                simulated_replicas=2,
            ),
            Evaluation(
                evaluated_at=NOW - timedelta(minutes=3),
                current_demand=320,
                baseline_replicas=2,
                simulated_replicas=4,
            ),
        ],
    )


@pytest.fixture
def full_svg() -> str:
    result = sample_result()
    focus = select_focus_window(result, timedelta(minutes=20))
    return build_timeline_svg(result, focus)


def test_timeline_is_a_single_svg_document(full_svg):
    assert full_svg.startswith('<svg id="replay-timeline" class="timeline-svg"')
    assert full_svg.endswith("</svg>")
    assert full_svg.count("<svg") == 1
    assert "Demand and replica path" in full_svg


def test_timeline_uses_fixed_view_box(full_svg):
    assert 'viewBox="0 0 1280 760"' in full_svg


def test_focused_timeline_names_window_width():
    result = sample_result()
    focus = select_focus_window(result, timedelta(minutes=4))
    svg = build_timeline_svg(result, focus)
    assert "MAIN CHART 4M WINDOW" in svg


def test_full_window_draws_suppression_mark_per_suppressed_point(full_svg):
    result = sample_result()
    focus = select_focus_window(result, timedelta(minutes=20))
    points = filter_eval_points(result.evaluations, focus.start, focus.end)
    suppressed = sum(1 for point in points if point.suppressed)
    assert full_svg.count('class="suppression-mark"') == suppressed


def test_forecast_marker_and_warmup_band_per_activated_event(full_svg):
    assert full_svg.count('class="forecast-point"') == 1
    assert full_svg.count('<rect class="warmup-band"') == 1
    assert full_svg.count('<circle class="warmup-band"') == 2


def test_end_labels_show_last_point_replicas(full_svg):
    assert ">actual 2</text>" in full_svg
    assert ">predictive ready 4</text>" in full_svg


def test_axis_grid_labels_cover_demand_and_replica_ticks(full_svg):
    result = sample_result()
    focus = select_focus_window(result, timedelta(minutes=20))
    points = filter_eval_points(result.evaluations, focus.start, focus.end)
    replica_ticks = max_replica_value(points, result.recommendation_events) + 1
    assert full_svg.count('text-anchor="end"') == 5 + replica_ticks


def test_time_ticks_are_labelled_in_clock_form(full_svg):
    assert ">11:55</text>" in full_svg
    assert ">12:00</text>" in full_svg


def test_interactive_cursor_is_present(full_svg):
    assert 'id="timeline-hitbox"' in full_svg
    assert full_svg.index('id="interactive-cursor"') < full_svg.index('id="cursor-replay"')


def test_no_evaluations_renders_placeholder_with_reasons():
    result = sample_result()
    result.evaluations = []
    result.unsupported_reasons = ["replay produced no usable historical evaluations"]
    svg = build_timeline_svg(result, select_focus_window(result, timedelta(minutes=10)))
    assert "Replay timeline unavailable" in svg
    assert "No replay evaluations were available for timeline rendering." in svg
    assert "- replay produced no usable historical evaluations" in svg


def test_focus_without_points_renders_placeholder():
    result = sample_result()
    focus = FocusWindow(start=NOW + timedelta(hours=1), end=NOW + timedelta(hours=2))
    svg = build_timeline_svg(result, focus)
    assert (
        "Replay evaluations exist, but none were available in the selected focus window."
        in svg
    )


def test_placeholder_stacks_reasons_and_escapes_markup():
    result = ReplayResult(unsupported_reasons=["first <reason>", "it's \"quoted\" & more"])
    svg = build_placeholder_svg(result, "a < b")
    assert "a &lt; b" in svg
    assert 'y="168"' in svg
    assert "- first &lt;reason&gt;" in svg
    assert "- it&#39;s &#34;quoted&#34; &amp; more" in svg
    assert svg.index("first &lt;reason&gt;") < svg.index("it&#39;s")


def test_step_path_extends_to_end():
    t0 = NOW
    points = [
        EvalPoint(at=t0, baseline_replicas=2),
        EvalPoint(at=t0 + timedelta(seconds=60), baseline_replicas=4),
    ]

    def x(value):
        return (value - t0).total_seconds()

    def y(point):
        return float(point.baseline_replicas)

    path = step_path(points, x, y, t0 + timedelta(seconds=120))
    assert path == "M 0.0 2.0 H 60.0 V 4.0 H 120.0"


def test_step_path_stops_when_end_precedes_last_point():
    t0 = NOW
    points = [EvalPoint(at=t0, baseline_replicas=1), EvalPoint(at=t0 + timedelta(seconds=30))]
    path = step_path(
        points,
        lambda value: (value - t0).total_seconds(),
        lambda point: float(point.baseline_replicas),
        t0 + timedelta(seconds=10),
    )
    assert path == "M 0.0 1.0 H 30.0 V 0.0"


def test_step_path_empty_points():
    assert step_path([], lambda value: 0.0, lambda point: 0.0, NOW) == ""