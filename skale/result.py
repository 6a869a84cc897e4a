"""Structured replay results consumed by the report writers."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ReplayStatus(str, Enum):
    """Overall outcome of a replay run."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    UNSUPPORTED = "unsupported"


@dataclass
class TargetRef:
    """Namespaced workload reference."""

    namespace: str = ""
    name: str = ""


@dataclass
class WindowSummary:
    """Time range covered by the replay."""

    start: datetime | None = None
    end: datetime | None = None


@dataclass
class PolicySummary:
    """Policy settings the replay was run with."""

    workload: str = ""
    forecast_horizon_seconds: int = 0
    warmup_seconds: int = 0
    cooldown_seconds: int = 0
    node_headroom_mode: str = ""


@dataclass
class TelemetrySignalSummary:
    """Readiness of a single telemetry signal."""

    name: str = ""
    state: str = ""
    required: bool = False
    message: str = ""


@dataclass
class TelemetryReadinessSummary:
    """Readiness of telemetry as a whole."""

    checked_at: datetime | None = None
    state: str = ""
    message: str = ""
    reasons: list[str] = field(default_factory=list)
    blocking_reasons: list[str] = field(default_factory=list)
    signals: list[TelemetrySignalSummary] = field(default_factory=list)


@dataclass
class Summary:
    """Replica path and outcome proxies over the replay window."""

    start_replicas: int = 0
    end_replicas: int = 0
    min_replicas: int = 0
    max_replicas: int = 0
    mean_replicas: float = 0.0
    scale_up_events: int = 0
    scale_down_events: int = 0
    overload_minutes_proxy: float = 0.0
    excess_headroom_minutes_proxy: float = 0.0
    scored_minutes: float = 0.0
    unscored_minutes: float = 0.0


@dataclass
class BaselineSummary:
    """Outcome of the observed (baseline) replica path."""

    mode: str = ""
    summary: Summary = field(default_factory=Summary, metadata={"inline": True})


@dataclass
class ReplaySummary:
    """Outcome of the simulated predictive replica path."""

    mode: str = ""
    summary: Summary = field(default_factory=Summary, metadata={"inline": True})
    evaluation_count: int = 0
    available_count: int = 0
    suppressed_count: int = 0
    unavailable_count: int = 0
    recommendation_event_count: int = 0
    suppression_reason_counts: dict[str, int] = field(default_factory=dict)
    forecast_model_counts: dict[str, int] = field(default_factory=dict)
    reliability_counts: dict[str, int] = field(default_factory=dict)


@dataclass
class ForecastSummary:
    """Forecast that backed a recommendation."""

    evaluated_at: datetime | None = None
    method: str = ""
    forecast_for: datetime | None = None
    predicted_demand: float = 0.0
    confidence: float = 0.0


@dataclass
class RecommendationSurface:
    """Recommendation as it was surfaced."""

    state: str = ""
    current_replicas: int = 0
    recommended_replicas: int = 0
    delta: int = 0
    message: str = ""


@dataclass
class RecommendationEvent:
    """A surfaced recommendation during replay."""

    workload: TargetRef = field(default_factory=TargetRef)
    evaluated_at: datetime | None = None
    activation_time: datetime | None = None
    baseline_replicas: int = 0
    replay_replicas: int = 0
    forecast: ForecastSummary = field(default_factory=ForecastSummary)
    recommendation: RecommendationSurface = field(default_factory=RecommendationSurface)
    summary: str = ""


@dataclass
class SuppressionReason:
    """Why a recommendation was held back."""

    code: str = ""
    category: str = ""
    severity: str = ""
    message: str = ""


@dataclass
class DecisionOutcome:
    """Outcome of a recommendation decision."""

    suppression_reasons: list[SuppressionReason] = field(default_factory=list)


@dataclass
class Decision:
    """Recommendation decision recorded for an evaluation."""

    outcome: DecisionOutcome = field(default_factory=DecisionOutcome)


@dataclass
class Evaluation:
    """One replay evaluation step."""

    evaluated_at: datetime | None = None
    current_demand: float = 0.0
    baseline_replicas: int = 0
    simulated_replicas: int = 0
    baseline_overloaded: bool = False
    replay_overloaded: bool = False
    required_replicas_proxy: int | None = None
    state: str = ""
    activation_time: datetime | None = None
    suppression_reasons: list[SuppressionReason] = field(default_factory=list)
    decision: Decision | None = None


@dataclass
class ReplayResult:
    """Complete result of a replay run."""

    status: ReplayStatus | str = ReplayStatus.COMPLETE
    generated_at: datetime | None = None
    target: TargetRef = field(default_factory=TargetRef)
    window: WindowSummary = field(default_factory=WindowSummary)
    step_seconds: int = 0
    lookback_seconds: int = 0
    policy: PolicySummary = field(default_factory=PolicySummary)
    telemetry_readiness: TelemetryReadinessSummary = field(
        default_factory=TelemetryReadinessSummary
    )
    baseline: BaselineSummary = field(default_factory=BaselineSummary)
    replay: ReplaySummary = field(default_factory=ReplaySummary)
    recommendation_events: list[RecommendationEvent] = field(default_factory=list)
    evaluations: list[Evaluation] = field(default_factory=list)
    caveats: list[str] = field(default_factory=list)
    confidence_notes: list[str] = field(default_factory=list)
    unsupported_reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping with camelCase keys."""
        return _to_jsonable(self)


def _camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part.capitalize() for part in rest)


def _timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    return text + "Z"


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        for item in fields(value):
            converted = _to_jsonable(getattr(value, item.name))
            if item.metadata.get("inline") and isinstance(converted, dict):
                out.update(converted)
            else:
                out[_camel(item.name)] = converted
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _timestamp(value)
    if isinstance(value, dict):
        return {str(key): _to_jsonable(value[key]) for key in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value