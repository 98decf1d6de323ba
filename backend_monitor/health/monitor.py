"""Health monitor facade — one shared session plus on-demand checks for every consumer.

Several surfaces (API routes, SSE stream, CLI) subscribe to the same monitor,
so at most one scheduling session runs per monitor at a time: a restart waits
for a stopping session to drain first. Manual checks go through
the aggregator directly and are never gated by the interval.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from .aggregator import HealthAggregator
from .errors import ConfigurationError
from .models import Endpoint, EndpointProbeResult, HealthReport, OverallStatus
from .scheduler import MonitorHandle, MonitorScheduler

logger = logging.getLogger(__name__)

Subscriber = Callable[[HealthReport], Any]


class MonitorState:
    """Latest report plus transition bookkeeping."""

    def __init__(self) -> None:
        self.latest: HealthReport | None = None
        self.rounds: int = 0
        self.last_transition: str | None = None  # "all_online→partial @ <ts>"

    def to_dict(self) -> dict[str, Any]:
        latest = self.latest
        return {
            "status": latest.overall_status.value if latest else None,
            "last_check": latest.generated_at.isoformat() if latest else None,
            "rounds": self.rounds,
            "last_transition": self.last_transition,
        }


class HealthMonitor:
    """Owns the endpoint list, the aggregator and at most one scheduler session."""

    def __init__(
        self,
        endpoints: Sequence[str | Endpoint],
        timeout: float,
        interval: float,
        aggregator: HealthAggregator | None = None,
        scheduler: MonitorScheduler | None = None,
    ) -> None:
        if timeout <= 0:
            raise ConfigurationError(f"Probe timeout must be positive, got {timeout}")
        if interval <= 0:
            raise ConfigurationError(f"Monitor interval must be positive, got {interval}")
        self.endpoints = list(endpoints)
        self.timeout = timeout
        self.interval = interval
        self.aggregator = aggregator or HealthAggregator()
        self.scheduler = scheduler or MonitorScheduler()
        self.state = MonitorState()
        self._subscribers: list[Subscriber] = []
        self._handle: MonitorHandle | None = None

    @property
    def latest(self) -> HealthReport | None:
        return self.state.latest

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.stopped and not self._handle.done

    # ── Subscriptions ────────────────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def start(self) -> MonitorHandle:
        """Start the periodic session, or return the one already running.

        A session that was stopped but is still finishing its last round is
        awaited first, so two sessions never run side by side.
        """
        if self.running:
            assert self._handle is not None
            return self._handle
        if self._handle is not None and not self._handle.done:
            await self._handle.wait()
            if self.running:
                return self._handle
        self._handle = self.scheduler.start(self._run_round, self.interval, self._record)
        return self._handle

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.stop()

    async def wait_stopped(self) -> None:
        if self._handle is not None:
            await self._handle.wait()

    # ── On-demand checks ─────────────────────────────────────────────────────

    async def check_now(self) -> HealthReport:
        """Run one round immediately, outside the schedule."""
        report = await self.aggregator.run(self.endpoints, self.timeout)
        self._record(report)
        return report

    async def test_endpoint(self, url: str, name: str = "") -> EndpointProbeResult:
        """Probe a single endpoint; does not touch the cached report."""
        report = await self.aggregator.run([Endpoint(url=url, name=name)], self.timeout)
        return report.results[0]

    async def is_online(self) -> bool:
        """True if ANY configured endpoint answers (lenient, single-endpoint-fallback view)."""
        return await self.aggregator.is_online(self.endpoints, self.timeout)

    # ── Internals ────────────────────────────────────────────────────────────

    async def _run_round(self) -> HealthReport:
        return await self.aggregator.run(self.endpoints, self.timeout)

    def _record(self, report: HealthReport) -> None:
        previous = self.state.latest
        self.state.latest = report
        self.state.rounds += 1

        if previous is not None and previous.overall_status != report.overall_status:
            self.state.last_transition = (
                f"{previous.overall_status.value}→{report.overall_status.value} "
                f"@ {report.generated_at.isoformat()}"
            )
            if report.overall_status == OverallStatus.ALL_ONLINE:
                logger.info("Backend recovered: %s", self.state.last_transition)
            else:
                logger.warning(
                    "Backend health changed: %s (%d/%d reachable)",
                    self.state.last_transition, report.reachable_count, report.total,
                )

        for callback in list(self._subscribers):
            try:
                callback(report)
            except Exception:
                logger.exception("Health subscriber error")
