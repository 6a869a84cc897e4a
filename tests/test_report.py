import json
from datetime import datetime, timedelta, timezone

from skale.report import (
    JSONWriter,
    MarkdownWriter,
    SummaryWriter,
    fallback_text,
    format_seconds,
    format_timestamp,
    outcome_delta,
    render_counts_inline,
    render_inline_state,
    render_target,
    sorted_counts,
)
from skale.result import (
    BaselineSummary,
    Evaluation,
    ForecastSummary,
    PolicySummary,
    RecommendationEvent,
    RecommendationSurface,
    ReplayResult,
    ReplayStatus,
    ReplaySummary,
    Summary,
    SuppressionReason,
    TargetRef,
    TelemetryReadinessSummary,
    TelemetrySignalSummary,
    WindowSummary,
)

NOW = datetime(2026, 4, 2, 12, 0, 0, tzinfo=timezone.utc)
MESSAGE = (
    "seasonal_naive forecast 320.00 for readiness at 2026-04-02T11:57:00Z "
    "implied 4 raw replicas; final recommendation 4 replicas."
)


def sample_result() -> ReplayResult:
    return ReplayResult(
        status=ReplayStatus.COMPLETE,
        generated_at=NOW,
        target=TargetRef(namespace="payments", name="checkout-api"),
        window=WindowSummary(start=NOW - timedelta(minutes=10), end=NOW),
        step_seconds=60,
        lookback_seconds=1200,
        policy=PolicySummary(
            workload="payments/checkout-api",
            forecast_horizon_seconds=300,
            warmup_seconds=120,
            node_headroom_mode="requireForScaleUp",
        ),
        telemetry_readiness=TelemetryReadinessSummary(
            checked_at=NOW,
            state="ready",
            message="telemetry readiness is sufficient for replay",
            signals=[
                TelemetrySignalSummary(
                    name="demand",
                    state="ready",
                    required=True,
                    message="demand signal coverage is sufficient",
                ),
                TelemetrySignalSummary(
                    name="replicas",
                    state="ready",
                    required=True,
                    message="replica signal coverage is sufficient",
                ),
            ],
        ),
        baseline=BaselineSummary(
            mode="observedReplicas",
            summary=Summary(
                start_replicas=2,
                end_replicas=4,
                min_replicas=2,
                max_replicas=4,
                mean_replicas=2.8,
                scale_up_events=1,
                overload_minutes_proxy=3,
                excess_headroom_minutes_proxy=1,
                scored_minutes=9,
            ),
        ),
        replay=ReplaySummary(
            mode="simulatedReplay",
            summary=Summary(
                start_replicas=2,
                end_replicas=4,
                min_replicas=2,
                max_replicas=4,
                mean_replicas=3.4,
                scale_up_events=1,
                overload_minutes_proxy=1,
                excess_headroom_minutes_proxy=2,
                scored_minutes=9,
            ),
            evaluation_count=3,
            available_count=2,
            suppressed_count=1,
            recommendation_event_count=1,
            suppression_reason_counts={"blackout_window_active": 1},
            forecast_model_counts={"seasonal_naive": 3},
            reliability_counts={"high": 3},
        ),
        recommendation_events=[
            RecommendationEvent(
                workload=TargetRef(namespace="payments", name="checkout-api"),
                evaluated_at=NOW - timedelta(minutes=5),
                activation_time=NOW - timedelta(minutes=3),
                baseline_replicas=2,
                replay_replicas=2,
                forecast=ForecastSummary(
                    evaluated_at=NOW - timedelta(minutes=5),
                    method="seasonal_naive",
                    forecast_for=NOW - timedelta(minutes=3),
                    predicted_demand=320,
                    confidence=0.92,
                ),
                recommendation=RecommendationSurface(
                    state="available",
                    current_replicas=2,
                    recommended_replicas=4,
                    delta=2,
                    message=MESSAGE,
                ),
                summary=MESSAGE,
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
                state="available",
                activation_time=NOW - timedelta(minutes=3),
            ),
            Evaluation(
                evaluated_at=NOW - timedelta(minutes=3),
                current_demand=320,
                baseline_replicas=2,
                simulated_replicas=4,
                baseline_overloaded=True,
                required_replicas_proxy=4,
                state="available",
            ),
        ],
        caveats=[
            "Replay uses observed replica behavior as the baseline; "
            "it does not reconstruct HPA internals."
        ],
        confidence_notes=["Replay forecasts were high reliability for the scored window."],
    )


def test_json_writer_serializes_replay_result():
    text = JSONWriter().write(sample_result())
    assert '"status": "complete"' in text
    assert '"recommendationEvents"' in text
    assert json.loads(text)["replay"]["recommendationEventCount"] == 1


def test_json_writer_escapes_html_characters():
    result = sample_result()
    result.caveats = ["a < b & c"]
    text = JSONWriter().write(result)
    assert "<" not in text and "&" not in text
    assert json.loads(text)["caveats"] == ["a < b & c"]


def test_summary_writer_renders_concise_operator_summary():
    text = SummaryWriter().write(sample_result())
    for expected in [
        "Replay summary for payments/checkout-api",
        "telemetry: ready - telemetry readiness is sufficient for replay",
        "recommendations: 1 events, 2 available, 1 suppressed, 0 unavailable",
        "outcome deltas (replay - baseline): overload -2.00, excess +1.00",
        "caveats and limitations:",
    ]:
        assert expected in text


def test_summary_writer_window_line():
    text = SummaryWriter().write(sample_result())
    assert (
        "window: 2026-04-02T11:50:00Z to 2026-04-02T12:00:00Z (step 1m0s, lookback 20m0s)"
        in text
    )


def test_markdown_writer_renders_partner_facing_sections():
    text = MarkdownWriter().write(sample_result())
    for expected in [
        "# Replay Report",
        "## Workload Summary",
        "## Telemetry Readiness",
        "## Replay Window",
        "## Baseline Summary",
        "## Recommendation Summary",
        "## Suppression Summary",
        "## Outcome Deltas",
        "## Caveats and Limitations",
        "## Recommendation Events",
        "blackout_window_active",
    ]:
        assert expected in text


def test_summary_writer_renders_unsupported_reasons_and_deterministic_ordering():
    result = sample_result()
    result.status = ReplayStatus.UNSUPPORTED
    result.replay.suppression_reason_counts = {
        "low_confidence": 1,
        "telemetry_not_ready": 2,
        "blackout_window_active": 2,
    }
    result.unsupported_reasons = [
        "replay could not estimate required-replica proxy anywhere in the requested window"
    ]
    text = SummaryWriter().write(result)
    for expected in [
        "status: unsupported",
        "suppression: blackout_window_active=2, telemetry_not_ready=2, low_confidence=1",
        "unsupported reasons:",
        "- replay could not estimate required-replica proxy anywhere in the requested window",
    ]:
        assert expected in text


def test_markdown_writer_renders_unsupported_fallback_sections_without_events():
    result = sample_result()
    result.status = ReplayStatus.UNSUPPORTED
    result.recommendation_events = []
    result.caveats = []
    result.confidence_notes = []
    result.unsupported_reasons = ["replay produced no usable historical evaluations"]
    text = MarkdownWriter().write(result)
    for expected in [
        "## Confidence Notes",
        "## Caveats and Limitations",
        "## Recommendation Events",
        "## Unsupported Reasons",
        "- none",
        "- replay produced no usable historical evaluations",
    ]:
        assert expected in text


def test_markdown_writer_event_and_signal_lines():
    text = MarkdownWriter().write(sample_result())
    assert (
        "- `2026-04-02T11:55:00Z`: `2` -> `4` replicas, activation "
        "`2026-04-02T11:57:00Z`, confidence `0.92`, summary: " + MESSAGE
    ) in text
    assert "- signal `demand`: `ready` required - demand signal coverage is sufficient" in text
    assert "- overload-minute proxy delta (replay - baseline): `-2.00`" in text


def test_render_target_variants():
    assert render_target(TargetRef(namespace="payments", name="checkout-api")) == (
        "payments/checkout-api"
    )
    assert render_target(TargetRef(name="checkout-api")) == "checkout-api"
    assert render_target(TargetRef(namespace="payments")) == "unknown"


def test_render_inline_state_variants():
    assert render_inline_state("ready", "") == "ready"
    assert render_inline_state("", "  ") == "unknown"
    assert render_inline_state("", "msg") == "msg"
    assert render_inline_state("ready", "msg") == "ready - msg"


def test_sorted_counts_and_inline_rendering():
    counts = {"b": 2, "a": 2, "c": 5}
    assert sorted_counts(counts) == [("c", 5), ("a", 2), ("b", 2)]
    assert render_counts_inline(counts) == "c=5, a=2, b=2"
    assert render_counts_inline({}) == "none"


def test_format_helpers():
    assert format_timestamp(None) == "unknown"
    assert format_timestamp(NOW) == "2026-04-02T12:00:00Z"
    assert format_seconds(0) == "0s"
    assert format_seconds(120) == "2m0s"
    assert format_seconds(1200) == "20m0s"
    assert fallback_text("  ", "fallback") == "fallback"
    assert fallback_text(" x ", "fallback") == "x"
    assert outcome_delta(3.0, 1.0) == -2.0