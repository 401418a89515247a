"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation of invariants (elapsed >= 0, best <= worst, error kind
  only on failures) at construction time.
- Frozen models give the presentation layer read-only snapshots for free,
  and `model_dump(mode="json")` gives a stable export format.

Note:
- These models describe *what* was observed, not *how* it was probed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from core.domain.tristate import TriState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EndpointRole(str, Enum):
    PRIMARY_A = "primary-a"
    PRIMARY_B = "primary-b"
    PRIMARY_C = "primary-c"
    CAPTIVE_PROBE = "captive-probe"
    RESOLUTION_PROBE = "resolution-probe"

    @property
    def is_primary(self) -> bool:
        return self in (EndpointRole.PRIMARY_A, EndpointRole.PRIMARY_B, EndpointRole.PRIMARY_C)


class Transparency(str, Enum):
    """Whether the response of a completed probe was observable.

    `opaque` is not a failure: the round-trip finished, we just chose not to
    read the response. Only `error` marks a probe that did not complete.
    """

    TRANSPARENT = "transparent"
    OPAQUE = "opaque"
    ERROR = "error"


class ProbeErrorKind(str, Enum):
    TIMEOUT = "ProbeTimeout"
    NETWORK = "ProbeNetworkError"
    ABORTED = "ProbeAborted"


class LatencyTier(str, Enum):
    NORMAL = "normal"
    ELEVATED = "elevated"
    SEVERE = "severe"


class Severity(str, Enum):
    RED = "red"
    AMBER = "amber"
    GREEN = "green"


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScanLabel(str, Enum):
    BASELINE = "baseline"
    AFTER_RESET = "after-reset"

    def display(self) -> str:
        return "Baseline" if self is ScanLabel.BASELINE else "After Reset"


class ScanPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    BASELINE_READY = "baseline-ready"
    RUNNING_AFTER = "running-after"
    COMPLETE = "complete"

    @property
    def is_running(self) -> bool:
        return self in (ScanPhase.RUNNING, ScanPhase.RUNNING_AFTER)


class Endpoint(BaseModel):
    """A probe target from the static endpoint table."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, max_length=64, description="Stable identifier (e.g. 'google204').")
    url: str = Field(..., min_length=8, description="Absolute http(s) URL to request.")
    role: EndpointRole = Field(..., description="Position of the endpoint in the probe plan.")
    domain_bearing: bool = Field(
        default=True,
        description="True when a completed probe proves a human-readable domain resolved.",
    )
    observe: bool = Field(
        default=True,
        description="Inspect the response status. When False the response is left unread (opaque).",
    )
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers.")


class ProbeOutcome(BaseModel):
    """Result of one timed probe. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    endpoint_key: str = Field(..., min_length=1)
    role: EndpointRole
    completed: bool = Field(..., description="The round-trip finished without being aborted.")
    elapsed_ms: int = Field(..., ge=0, description="Time from issue to resolution or abort.")
    transparency: Transparency
    error_kind: ProbeErrorKind | None = Field(default=None, description="Set only when completed=False.")
    error_detail: str | None = Field(default=None, max_length=200, description="Underlying exception name.")
    status_code: int | None = Field(default=None, ge=100, le=599, description="Observed HTTP status, if any.")

    @model_validator(mode="after")
    def _check_completion_invariant(self) -> "ProbeOutcome":
        if self.completed:
            if self.error_kind is not None or self.transparency is Transparency.ERROR:
                raise ValueError("completed probes carry no error kind and are never 'error'")
        else:
            if self.error_kind is None or self.transparency is not Transparency.ERROR:
                raise ValueError("failed probes need an error kind and 'error' transparency")
        return self


class LatencyStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    best_ms: int | None = Field(default=None, ge=0)
    worst_ms: int | None = Field(default=None, ge=0)
    tier: LatencyTier | None = Field(default=None, description="None when nothing was measured.")
    note: str = ""

    @model_validator(mode="after")
    def _check_order(self) -> "LatencyStats":
        if self.best_ms is not None and self.worst_ms is not None and self.best_ms > self.worst_ms:
            raise ValueError("best_ms must be <= worst_ms")
        return self


class DnsVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: TriState = TriState.UNKNOWN
    note: str = ""


class CaptiveVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    suspected: TriState = TriState.UNKNOWN
    note: str = ""


class NetworkHint(BaseModel):
    """Optional connection-type hint supplied by the environment."""

    model_config = ConfigDict(frozen=True)

    supported: bool = False
    effective_type: str = "unknown"
    downlink_mbps: float | None = Field(default=None, ge=0)
    rtt_ms: int | None = Field(default=None, ge=0)
    save_data: bool | None = None


class ScanResult(BaseModel):
    """One completed scan phase. Owned by the session that created it."""

    model_config = ConfigDict(frozen=True)

    label: ScanLabel
    timestamp: datetime = Field(default_factory=_utcnow)
    device_online: bool
    probing_enabled: bool
    latency: LatencyStats
    dns: DnsVerdict
    captive: CaptiveVerdict
    outcomes: tuple[ProbeOutcome, ...] = ()
    resolution: ProbeOutcome | None = None
    network_hint: NetworkHint = Field(default_factory=NetworkHint)
    busy_ms: int | None = Field(default=None, ge=0, description="Cumulative device-busy time during the scan.")

    def outcome_for(self, role: EndpointRole) -> ProbeOutcome | None:
        if role is EndpointRole.RESOLUTION_PROBE:
            return self.resolution
        for outcome in self.outcomes:
            if outcome.role is role:
                return outcome
        return None


class Diagnosis(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: Severity
    title: str
    detail: str
    label: str
    rule: str = Field(default="", description="Name of the decision rule that produced it.")


class ConfidenceScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: ConfidenceLevel
    label: str
    note: str


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    reason: str
    bullets: tuple[str, ...] = ()


class Comparison(BaseModel):
    """Baseline vs after-reset deltas."""

    model_config = ConfigDict(frozen=True)

    latency_delta_ms: int | None = None
    dns_changed: bool | None = None
    captive_changed: bool | None = None
    suggestion: Suggestion


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: ScanPhase
    baseline: ScanResult | None = None
    after: ScanResult | None = None
    ab_enabled: bool
    probing_enabled: bool

    @property
    def latest(self) -> ScanResult | None:
        return self.after or self.baseline


class DiagnosticReport(BaseModel):
    """Everything the presentation layer needs, as one read-only snapshot."""

    model_config = ConfigDict(frozen=True)

    session: SessionSnapshot
    diagnosis: Diagnosis | None = None
    confidence: ConfidenceScore
    suggestion: Suggestion
    comparison: Comparison | None = None
    generated_at: datetime = Field(default_factory=_utcnow)
