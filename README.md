# skale

Tools for examining a replay of predictive autoscaling recommendations
against the replica counts that a workload actually ran with. The package
uses only the standard library.

## What is in the package

- `skale.headroom` holds a conservative, request-based check of whether a
  scale-up could plausibly be scheduled. It compares per-pod CPU and memory
  requests with the allocatable and requested summaries for the cluster and
  for each node. The result is one of `sufficient`, `uncertain` or
  `insufficient`. It is a plausibility check and does not simulate the
  scheduler.
- `skale.result` holds dataclasses that describe one replay run
  (`ReplayResult` and the types it contains). These cover the target, the
  window, telemetry readiness, the baseline and replay summaries,
  recommendation events and per-step evaluations.
  `ReplayResult.to_dict()` returns a JSON-ready mapping with camelCase keys.
- `skale.report` holds three text writers: `JSONWriter` writes indented
  JSON, `SummaryWriter` writes a short operator summary, and `MarkdownWriter`
  writes a report to share.
- `skale.timeline` chooses a focus window around the predictive activity
  with `select_focus_window`, filters evaluations and events into that
  window, and builds the JSON scene for an interactive cursor with
  `build_chart_data`.
- `skale.svg` renders the focused demand and replica timeline as a static
  SVG with `build_timeline_svg`. The timeline has rows for warmup and held
  checks. When there is nothing to plot, the function returns a placeholder
  card instead.
- `skale.scales` holds the time and value scales, the axis tick selection and
  the label formatting that the chart uses.
- `skale.version` holds `version_string()`, which returns a short build
  identifier such as `development` or `1.2.0 (abc1234)`.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Checking node headroom

```python
from skale.headroom import (
    AllocatableSummary,
    ConservativeNodeHeadroomEstimator,
    NodeAllocatableSummary,
    NodeHeadroomSignal,
    NodeHeadroomState,
    Resources,
)

signal = NodeHeadroomSignal(
    state=NodeHeadroomState.READY,
    pod_requests=Resources(cpu_milli=500, memory_bytes=512 * 1024**2),
    cluster_summary=AllocatableSummary(
        allocatable=Resources(cpu_milli=8000, memory_bytes=16 * 1024**3),
        requested=Resources(cpu_milli=4000, memory_bytes=8 * 1024**3),
    ),
    nodes=[
        NodeAllocatableSummary(
            name="node-a",
            schedulable=True,
            summary=AllocatableSummary(
                allocatable=Resources(cpu_milli=4000, memory_bytes=8 * 1024**3),
                requested=Resources(cpu_milli=2000, memory_bytes=4 * 1024**3),
            ),
        ),
    ],
)

assessment = ConservativeNodeHeadroomEstimator().assess(signal, 3)
print(assessment.status.value, assessment.message)
```

A malformed signal raises `InvalidInputError`, a subclass of `ValueError`.
A signal is malformed if it has negative resource values or an unknown
state. A negative pod count also raises `InvalidInputError`. A signal that
is absent, missing, stale or unsupported raises no error. The estimator
returns an `uncertain` assessment for it.

## Writing reports

Build a `ReplayResult` and pass it to a writer. Each writer's
`write(result)` returns the rendered document as a `str`.

```python
from datetime import datetime, timedelta, timezone

from skale.report import JSONWriter, MarkdownWriter, SummaryWriter
from skale.result import ReplayResult, TargetRef, WindowSummary

end = datetime(2026, 4, 2, 12, 0, tzinfo=timezone.utc)
result = ReplayResult(
    generated_at=end,
    target=TargetRef(namespace="payments", name="checkout-api"),
    window=WindowSummary(start=end - timedelta(minutes=30), end=end),
    step_seconds=60,
)

print(SummaryWriter().write(result))
markdown = MarkdownWriter().write(result)
document = JSONWriter().write(result)
```

## Rendering the timeline

```python
from datetime import timedelta

from skale.svg import build_timeline_svg
from skale.timeline import build_chart_data, normalized_focus_window, select_focus_window

focus = select_focus_window(result, normalized_focus_window(timedelta(minutes=4)))
svg_markup = build_timeline_svg(result, focus)
scene_json = build_chart_data(result, focus)  # "null" when nothing can be plotted
```

`normalized_focus_window(None)` returns the default focus width of ten
minutes. The focus window is centred on the surfaced recommendation events
and their activation times, and it is kept inside the replay window. When
the replay window is no longer than the focus width, `focus.full` is true
and the whole window is shown. When a replay has no evaluations, the SVG is
a placeholder card that lists any unsupported reasons.

## What the package does not do

- It does not write a complete HTML page. It gives you the SVG markup and
  the JSON chart scene, and you must put them into a page yourself.
- It does not run replays and does not read metrics from a cluster. Results
  must be built by the caller.
- It has no command-line program.