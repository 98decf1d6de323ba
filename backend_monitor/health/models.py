"""Health data model — probe results, round reports, endpoint targets."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .errors import ConfigurationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ────────────────────────────────────────────────────────────────────


class FailureReason(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"
    HTTP_ERROR = "http_error"


class OverallStatus(str, Enum):
    ALL_ONLINE = "all_online"
    ALL_OFFLINE = "all_offline"
    PARTIAL = "partial"


# ── Targets ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Endpoint:
    """A URL to probe plus the label shown next to it."""

    url: str
    name: str = ""

    @property
    def label(self) -> str:
        return self.name or self.url


def as_endpoint(target: str | Endpoint) -> Endpoint:
    if isinstance(target, Endpoint):
        return target
    return Endpoint(url=target)


# ── Results ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EndpointProbeResult:
    """Outcome of one probe against one endpoint."""

    endpoint: str
    reachable: bool
    latency_ms: int
    status_code: int | None = None
    failure_reason: FailureReason | None = None
    observed_at: datetime = field(default_factory=utcnow)
    name: str = ""
    message: str = ""

    def __post_init__(self) -> None:
        if self.reachable == (self.failure_reason is not None):
            raise ValueError("failure_reason must be set iff the endpoint is unreachable")
        if self.failure_reason in (FailureReason.TIMEOUT, FailureReason.TRANSPORT_ERROR):
            if self.status_code is not None:
                raise ValueError(f"status_code cannot be set on a {self.failure_reason.value} result")
        if self.latency_ms < 0:
            raise ValueError("latency_ms must be non-negative")

    @property
    def label(self) -> str:
        return self.name or self.endpoint


@dataclass(frozen=True)
class HealthReport:
    """Aggregate over one probing round. Never mutated; each round builds a new one."""

    results: tuple[EndpointProbeResult, ...]
    success_rate_percent: float
    average_latency_ms: float
    overall_status: OverallStatus
    generated_at: datetime = field(default_factory=utcnow)
    error: str | None = None

    @classmethod
    def from_results(
        cls,
        results: Sequence[EndpointProbeResult],
        generated_at: datetime | None = None,
    ) -> HealthReport:
        """Build a report, computing statistics over this round only."""
        total = len(results)
        if total == 0:
            raise ConfigurationError("Cannot build a health report from zero probe results")

        reachable = sum(1 for r in results if r.reachable)
        if reachable == total:
            status = OverallStatus.ALL_ONLINE
        elif reachable == 0:
            status = OverallStatus.ALL_OFFLINE
        else:
            status = OverallStatus.PARTIAL

        return cls(
            results=tuple(results),
            success_rate_percent=100 * reachable / total,
            average_latency_ms=sum(r.latency_ms for r in results) / total,
            overall_status=status,
            generated_at=generated_at or utcnow(),
        )

    @classmethod
    def failed(cls, message: str) -> HealthReport:
        """Designated error report for a round that could not run at all."""
        return cls(
            results=(),
            success_rate_percent=0.0,
            average_latency_ms=0.0,
            overall_status=OverallStatus.ALL_OFFLINE,
            error=message,
        )

    @property
    def reachable_count(self) -> int:
        return sum(1 for r in self.results if r.reachable)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def any_reachable(self) -> bool:
        """Lenient view: the backend counts as up if any endpoint answered."""
        return self.reachable_count > 0
