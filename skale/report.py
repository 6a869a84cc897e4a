"""Text, Markdown and JSON renderings of replay results."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Sequence

from skale.result import ReplayResult, Summary, TargetRef

_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


class JSONWriter:
    """Renders the structured replay result as indented JSON."""

    def write(self, result: ReplayResult) -> str:
        text = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
        return text.translate(_JSON_ESCAPES)


class SummaryWriter:
    """Renders a concise operator-facing replay summary for the command line."""

    def write(self, result: ReplayResult) -> str:
        baseline = result.baseline.summary
        replay = result.replay.summary
        readiness = result.telemetry_readiness
        lines = [
            f"Replay summary for {render_target(result.target)}",
            f"status: {_text(result.status)}",
            f"window: {format_timestamp(result.window.start)} to "
            f"{format_timestamp(result.window.end)} "
            f"(step {format_seconds(result.step_seconds)}, "
            f"lookback {format_seconds(result.lookback_seconds)})",
        ]
        telemetry = f"telemetry: {render_inline_state(readiness.state, readiness.message)}"
        if readiness.blocking_reasons:
            telemetry += f" [{'; '.join(readiness.blocking_reasons)}]"
        lines.append(telemetry)
        lines.append(
            f"baseline: replicas {baseline.start_replicas} -> {baseline.end_replicas}, "
            f"overload {baseline.overload_minutes_proxy:.2f}, "
            f"excess {baseline.excess_headroom_minutes_proxy:.2f}"
        )
        lines.append(
            f"replay: replicas {replay.start_replicas} -> {replay.end_replicas}, "
            f"overload {replay.overload_minutes_proxy:.2f}, "
            f"excess {replay.excess_headroom_minutes_proxy:.2f}"
        )
        lines.append(
            f"recommendations: {result.replay.recommendation_event_count} events, "
            f"{result.replay.available_count} available, "
            f"{result.replay.suppressed_count} suppressed, "
            f"{result.replay.unavailable_count} unavailable"
        )
        if result.replay.suppression_reason_counts:
            lines.append(
                f"suppression: {render_counts_inline(result.replay.suppression_reason_counts)}"
            )
        else:
            lines.append("suppression: none")
        overload = outcome_delta(baseline.overload_minutes_proxy, replay.overload_minutes_proxy)
        excess = outcome_delta(
            baseline.excess_headroom_minutes_proxy, replay.excess_headroom_minutes_proxy
        )
        lines.append(
            f"outcome deltas (replay - baseline): overload {overload:+.2f}, excess {excess:+.2f}"
        )

        if result.confidence_notes:
            lines.append("confidence notes:")
            lines.extend(f"- {note}" for note in result.confidence_notes)

        lines.append("caveats and limitations:")
        if result.caveats:
            lines.extend(f"- {caveat}" for caveat in result.caveats)
        else:
            lines.append("- none")

        if result.unsupported_reasons:
            lines.append("unsupported reasons:")
            lines.extend(f"- {reason}" for reason in result.unsupported_reasons)

        return "\n".join(lines) + "\n"


class MarkdownWriter:
    """Renders a concise operator-facing replay report in Markdown."""

    def write(self, result: ReplayResult) -> str:
        baseline = result.baseline.summary
        replay = result.replay.summary
        readiness = result.telemetry_readiness
        out: list[str] = ["# Replay Report", "", "## Workload Summary", ""]

        out.append(f"- workload: `{render_target(result.target)}`")
        if result.policy.workload.strip():
            out.append(f"- policy workload: `{result.policy.workload}`")
        out.append(f"- status: `{_text(result.status)}`")
        out.append(f"- generated at: `{format_timestamp(result.generated_at)}`")
        if result.policy.node_headroom_mode:
            out.append(f"- node headroom mode: `{result.policy.node_headroom_mode}`")

        out += ["", "## Telemetry Readiness", ""]
        out.append(f"- state: `{readiness.state}`")
        out.append(
            "- message: "
            + fallback_text(readiness.message, "no telemetry readiness summary was recorded")
        )
        out += _string_list("reasons", readiness.reasons)
        out += _string_list("blocking reasons", readiness.blocking_reasons)
        if not readiness.signals:
            out.append("- signals: none")
        for signal in readiness.signals:
            line = f"- signal `{signal.name}`: `{signal.state}`"
            if signal.required:
                line += " required"
            if signal.message.strip():
                line += f" - {signal.message}"
            out.append(line)

        out += ["", "## Replay Window", ""]
        out.append(f"- start: `{format_timestamp(result.window.start)}`")
        out.append(f"- end: `{format_timestamp(result.window.end)}`")
        out.append(f"- step: `{format_seconds(result.step_seconds)}`")
        out.append(f"- lookback: `{format_seconds(result.lookback_seconds)}`")
        out.append(
            f"- forecast horizon: `{format_seconds(result.policy.forecast_horizon_seconds)}`"
        )
        out.append(f"- warmup assumption: `{format_seconds(result.policy.warmup_seconds)}`")

        out += ["", "## Baseline Summary", ""]
        out += _summary_lines(baseline)

        out += ["", "## Recommendation Summary", ""]
        out.append(f"- evaluations: `{result.replay.evaluation_count}`")
        out.append(f"- available evaluations: `{result.replay.available_count}`")
        out.append(f"- suppressed evaluations: `{result.replay.suppressed_count}`")
        out.append(f"- unavailable evaluations: `{result.replay.unavailable_count}`")
        out.append(
            f"- surfaced recommendation events: `{result.replay.recommendation_event_count}`"
        )
        out += _counts_section("forecast models", result.replay.forecast_model_counts)
        out += _counts_section("forecast reliability", result.replay.reliability_counts)

        out += ["", "## Suppression Summary", ""]
        out += _counts_section("suppression reasons", result.replay.suppression_reason_counts)

        out += ["", "## Outcome Deltas", ""]
        out.append(f"- baseline overload-minute proxy: `{baseline.overload_minutes_proxy:.2f}`")
        out.append(f"- replay overload-minute proxy: `{replay.overload_minutes_proxy:.2f}`")
        overload = outcome_delta(baseline.overload_minutes_proxy, replay.overload_minutes_proxy)
        out.append(f"- overload-minute proxy delta (replay - baseline): `{overload:+.2f}`")
        out.append(
            f"- baseline excess-headroom proxy: `{baseline.excess_headroom_minutes_proxy:.2f}`"
        )
        out.append(
            f"- replay excess-headroom proxy: `{replay.excess_headroom_minutes_proxy:.2f}`"
        )
        excess = outcome_delta(
            baseline.excess_headroom_minutes_proxy, replay.excess_headroom_minutes_proxy
        )
        out.append(f"- excess-headroom proxy delta (replay - baseline): `{excess:+.2f}`")

        out += ["", "## Confidence Notes", ""]
        out += _section_list(result.confidence_notes)

        out += ["", "## Caveats and Limitations", ""]
        out += _section_list(result.caveats)

        out += ["", "## Recommendation Events", ""]
        if not result.recommendation_events:
            out.append("- none")
        for event in result.recommendation_events:
            activation = (
                format_timestamp(event.activation_time)
                if event.activation_time is not None
                else "unknown"
            )
            out.append(
                f"- `{format_timestamp(event.evaluated_at)}`: "
                f"`{event.recommendation.current_replicas}` -> "
                f"`{event.recommendation.recommended_replicas}` replicas, "
                f"activation `{activation}`, "
                f"confidence `{event.forecast.confidence:.2f}`, "
                f"summary: {fallback_text(event.summary, 'no summary')}"
            )

        if result.unsupported_reasons:
            out += ["", "## Unsupported Reasons", ""]
            out += _section_list(result.unsupported_reasons)

        return "\n".join(out) + "\n"


def render_target(target: TargetRef) -> str:
    """Render a workload reference as namespace/name."""
    if target.namespace and target.name:
        return f"{target.namespace}/{target.name}"
    if target.name:
        return target.name
    return "unknown"


def render_inline_state(state: str, message: str) -> str:
    """Join a state and message for one-line display."""
    if not message.strip():
        return fallback_text(state, "unknown")
    if not state.strip():
        return message
    return f"{state} - {message}"


def render_counts_inline(counts: Mapping[str, int]) -> str:
    """Render counts as comma-separated key=value pairs, largest first."""
    if not counts:
        return "none"
    return ", ".join(f"{key}={value}" for key, value in sorted_counts(counts))


def format_timestamp(value: datetime | None) -> str:
    """Format a time as RFC 3339 in UTC, or 'unknown' when missing."""
    if value is None:
        return "unknown"
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_seconds(seconds: int) -> str:
    """Format whole seconds as a compact duration such as 1h2m3s."""
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    hours, remainder = divmod(abs(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def fallback_text(value: str, fallback: str) -> str:
    """Return the stripped value, or the fallback when it is blank."""
    value = value.strip()
    return value or fallback


def outcome_delta(baseline: float, replay_value: float) -> float:
    """Replay minus baseline."""
    return replay_value - baseline


def sorted_counts(counts: Mapping[str, int]) -> list[tuple[str, int]]:
    """Order count entries by descending value, then ascending key."""
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def _text(value: object) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _summary_lines(summary: Summary) -> list[str]:
    return [
        f"- start replicas: `{summary.start_replicas}`",
        f"- end replicas: `{summary.end_replicas}`",
        f"- min replicas: `{summary.min_replicas}`",
        f"- max replicas: `{summary.max_replicas}`",
        f"- mean replicas: `{summary.mean_replicas:.2f}`",
        f"- scale-up events: `{summary.scale_up_events}`",
        f"- scale-down events: `{summary.scale_down_events}`",
        f"- overload-minute proxy: `{summary.overload_minutes_proxy:.2f}`",
        f"- excess-headroom proxy: `{summary.excess_headroom_minutes_proxy:.2f}`",
        f"- scored minutes: `{summary.scored_minutes:.2f}`",
        f"- unscored minutes: `{summary.unscored_minutes:.2f}`",
    ]


def _counts_section(label: str, counts: Mapping[str, int]) -> list[str]:
    if not counts:
        return [f"- {label}: none"]
    return [f"- {label} `{key}`: `{value}`" for key, value in sorted_counts(counts)]


def _string_list(label: str, values: Sequence[str]) -> list[str]:
    if not values:
        return [f"- {label}: none"]
    return [f"- {label}: {value}" for value in values]


def _section_list(values: Sequence[str]) -> list[str]:
    if not values:
        return ["- none"]
    return [f"- {value}" for value in values]