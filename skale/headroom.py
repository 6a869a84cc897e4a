"""Conservative, request-based node headroom sanity check for scale-up candidates.

The estimate compares pod CPU and memory requests against allocatable resources.
It does not model taints, affinity, topology, pod count limits, extended
resources or node provisioning, and never claims the scheduler will succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

MAX_INT32 = 2**31 - 1


class InvalidInputError(ValueError):
    """Raised when safety input violates its invariants."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"invalid safety input: {detail}")
        self.detail = detail


class HeadroomStatus(str, Enum):
    """Schedulability estimate for a scale-up candidate."""

    SUFFICIENT = "sufficient"
    UNCERTAIN = "uncertain"
    INSUFFICIENT = "insufficient"


class NodeHeadroomState(str, Enum):
    """Freshness of the supplied headroom snapshot."""

    READY = "ready"
    MISSING = "missing"
    STALE = "stale"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class Resources:
    """Resource amounts in milliCPU and bytes."""

    cpu_milli: int = 0
    memory_bytes: int = 0


@dataclass(frozen=True)
class AllocatableSummary:
    """Allocatable resources and the sum of current pod requests."""

    allocatable: Resources = field(default_factory=Resources)
    requested: Resources = field(default_factory=Resources)

    def available(self) -> Resources:
        """Allocatable minus requested, clamped at zero."""
        return Resources(
            cpu_milli=max(0, self.allocatable.cpu_milli - self.requested.cpu_milli),
            memory_bytes=max(0, self.allocatable.memory_bytes - self.requested.memory_bytes),
        )


@dataclass(frozen=True)
class NodeAllocatableSummary:
    """Request-based snapshot of a single node."""

    name: str = ""
    schedulable: bool = False
    summary: AllocatableSummary = field(default_factory=AllocatableSummary)


@dataclass
class NodeHeadroomSignal:
    """Raw request-based headroom input: pod requests plus cluster and node summaries."""

    state: NodeHeadroomState | str | None = None
    observed_at: datetime | None = None
    pod_requests: Resources = field(default_factory=Resources)
    cluster_summary: AllocatableSummary = field(default_factory=AllocatableSummary)
    nodes: list[NodeAllocatableSummary] = field(default_factory=list)

    def validate(self) -> None:
        """Raise InvalidInputError if the snapshot is malformed."""
        _normalized_state(self.state)
        _validate_resources("pod requests", self.pod_requests)
        _validate_summary("cluster summary", self.cluster_summary)
        for node in self.nodes:
            label = f'node "{node.name}" summary' if node.name else "node summary"
            _validate_summary(label, node.summary)


@dataclass
class NodeHeadroomAssessment:
    """Structured outcome of the headroom sanity check."""

    status: HeadroomStatus = HeadroomStatus.UNCERTAIN
    message: str = ""
    observed_at: datetime | None = None
    additional_pods_needed: int = 0
    estimated_additional_pods: int = 0
    estimated_by_cluster_resources: int = 0
    estimated_by_node_summaries: int | None = None
    schedulable_node_count: int | None = None
    fitting_node_count: int | None = None
    pod_requests: Resources = field(default_factory=Resources)
    cluster_available: Resources = field(default_factory=Resources)
    limiting_resource: str = ""


class ConservativeNodeHeadroomEstimator:
    """Default request-based headroom check that fails closed on missing inputs."""

    def assess(
        self, signal: NodeHeadroomSignal | None, additional_pods_needed: int
    ) -> NodeHeadroomAssessment:
        """Classify whether `additional_pods_needed` more pods look plausibly schedulable."""
        if additional_pods_needed < 0:
            raise InvalidInputError("additional pods needed must be non-negative")

        if signal is None:
            return NodeHeadroomAssessment(
                status=HeadroomStatus.UNCERTAIN,
                message="node headroom summary is missing",
                additional_pods_needed=additional_pods_needed,
            )
        signal.validate()

        cluster_available = signal.cluster_summary.available()
        assessment = NodeHeadroomAssessment(
            status=HeadroomStatus.UNCERTAIN,
            observed_at=signal.observed_at,
            additional_pods_needed=additional_pods_needed,
            pod_requests=signal.pod_requests,
            cluster_available=cluster_available,
        )

        state = _normalized_state(signal.state)
        if state is not NodeHeadroomState.READY:
            assessment.message = f"node headroom summary is {state.value}"
            return assessment

        if additional_pods_needed == 0:
            assessment.status = HeadroomStatus.SUFFICIENT
            assessment.message = "no additional pods are required"
            return assessment

        pod = signal.pod_requests
        cpu_known = pod.cpu_milli > 0
        memory_known = pod.memory_bytes > 0
        if not cpu_known and not memory_known:
            assessment.message = "workload CPU and memory requests are both missing"
            return assessment

        cluster_capacity, cluster_limiter = _capacity_by_resources(cluster_available, pod)
        assessment.estimated_by_cluster_resources = cluster_capacity
        assessment.limiting_resource = cluster_limiter
        if cluster_capacity < additional_pods_needed:
            assessment.status = HeadroomStatus.INSUFFICIENT
            assessment.estimated_additional_pods = cluster_capacity
            assessment.message = (
                f"cluster request-based headroom fits at most {cluster_capacity} "
                f"additional pods but {additional_pods_needed} are needed"
            )
            return assessment

        if not signal.nodes:
            assessment.estimated_additional_pods = cluster_capacity
            assessment.message = (
                f"cluster aggregate request-based headroom fits about {cluster_capacity} "
                "additional pods, but node-level summaries are missing"
            )
            if not cpu_known or not memory_known:
                assessment.message += _missing_request_suffix(pod)
            return assessment

        schedulable_nodes = 0
        fitting_nodes = 0
        node_capacity = 0
        for node in signal.nodes:
            if not node.schedulable:
                continue
            schedulable_nodes += 1
            capacity, _ = _capacity_by_resources(node.summary.available(), pod)
            if capacity > 0:
                fitting_nodes += 1
            node_capacity = min(MAX_INT32, node_capacity + capacity)

        assessment.schedulable_node_count = schedulable_nodes
        assessment.fitting_node_count = fitting_nodes
        assessment.estimated_by_node_summaries = node_capacity
        assessment.estimated_additional_pods = min(cluster_capacity, node_capacity)

        if node_capacity < additional_pods_needed:
            assessment.status = HeadroomStatus.INSUFFICIENT
            assessment.limiting_resource = "node_packing"
            if fitting_nodes == 0:
                assessment.message = (
                    "no schedulable node has enough free requested CPU and memory "
                    "for one additional pod"
                )
            else:
                assessment.message = (
                    f"schedulable node summaries fit at most {node_capacity} "
                    f"additional pods but {additional_pods_needed} are needed"
                )
            return assessment

        if not cpu_known or not memory_known:
            assessment.message = (
                f"request-based headroom could fit about {assessment.estimated_additional_pods} "
                f"additional pods, but {_missing_request_dimensions(pod)} request is missing"
            )
            return assessment

        assessment.status = HeadroomStatus.SUFFICIENT
        assessment.message = (
            f"request-based headroom could fit about {assessment.estimated_additional_pods} "
            f"additional pods across {schedulable_nodes} schedulable nodes; "
            f"{additional_pods_needed} are needed"
        )
        return assessment


def _normalized_state(state: NodeHeadroomState | str | None) -> NodeHeadroomState:
    if state is None or state == "":
        return NodeHeadroomState.MISSING
    try:
        return NodeHeadroomState(state)
    except ValueError:
        raise InvalidInputError(f'unsupported node headroom state "{state}"') from None


def _validate_summary(label: str, summary: AllocatableSummary) -> None:
    _validate_resources(f"{label} allocatable", summary.allocatable)
    _validate_resources(f"{label} requested", summary.requested)


def _validate_resources(label: str, resources: Resources) -> None:
    if resources.cpu_milli < 0:
        raise InvalidInputError(f"{label} CPU must be non-negative")
    if resources.memory_bytes < 0:
        raise InvalidInputError(f"{label} memory must be non-negative")


def _capacity_by_resources(available: Resources, pod: Resources) -> tuple[int, str]:
    limits: list[tuple[str, int]] = []
    if pod.cpu_milli > 0:
        limits.append(("cpu", _capacity_by_dimension(available.cpu_milli, pod.cpu_milli)))
    if pod.memory_bytes > 0:
        limits.append(
            ("memory", _capacity_by_dimension(available.memory_bytes, pod.memory_bytes))
        )
    if not limits:
        return 0, ""
    # First dimension wins ties, matching a strict less-than scan.
    name, capacity = min(limits, key=lambda item: item[1])
    return capacity, name


def _capacity_by_dimension(available: int, request: int) -> int:
    if request <= 0 or available <= 0:
        return 0
    return min(MAX_INT32, available // request)


def _missing_request_suffix(requests: Resources) -> str:
    dimensions = _missing_request_dimensions(requests)
    return f"; {dimensions} request is missing" if dimensions else ""


def _missing_request_dimensions(requests: Resources) -> str:
    missing = []
    if requests.cpu_milli <= 0:
        missing.append("CPU")
    if requests.memory_bytes <= 0:
        missing.append("memory")
    return " and ".join(missing)