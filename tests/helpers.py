"""Builders shared by the test modules."""

from __future__ import annotations

import asyncio

import httpx

from backend_monitor.health.models import EndpointProbeResult, FailureReason, HealthReport


class FakeClock:
    """Virtual time: ``sleep`` advances the clock instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def routed_transport(routes: dict[str, tuple[int, float]], calls: list[str] | None = None) -> httpx.MockTransport:
    """MockTransport answering ``path -> (status, delay_seconds)``; unknown paths 404."""

    async def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url.path)
        status, delay = routes.get(request.url.path, (404, 0.0))
        if delay:
            await asyncio.sleep(delay)
        return httpx.Response(status, json={"status": "ok" if status < 400 else "error"})

    return httpx.MockTransport(handler)


def make_result(
    endpoint: str = "http://api.test/health",
    reachable: bool = True,
    latency_ms: int = 10,
    status_code: int | None = 200,
    failure_reason: FailureReason | None = None,
) -> EndpointProbeResult:
    if not reachable and failure_reason is None:
        failure_reason = FailureReason.HTTP_ERROR
    return EndpointProbeResult(
        endpoint=endpoint,
        reachable=reachable,
        latency_ms=latency_ms,
        status_code=status_code,
        failure_reason=failure_reason,
    )


def make_report(*reachable: bool) -> HealthReport:
    return HealthReport.from_results([
        make_result(endpoint=f"http://api.test/{i}", reachable=r, status_code=200 if r else 503)
        for i, r in enumerate(reachable)
    ])
