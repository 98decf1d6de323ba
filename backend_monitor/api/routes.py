"""API routes for the health monitor.

Endpoints:
  GET  /api/health/report     — latest round report
  GET  /api/health/status     — monitor session state
  POST /api/health/check      — run a round now (not gated by the interval)
  POST /api/health/probe      — probe a single URL
  GET  /api/health/summary    — copyable plain-text summary of the latest round
  GET  /api/health/export     — latest report as a JSON download
  GET  /api/health/stream     — SSE stream of reports as they are produced
  GET  /api/connectivity      — host network state
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel

from backend_monitor.health.connectivity import current_status
from backend_monitor.health.errors import ConfigurationError
from backend_monitor.health.formatting import report_to_dict, result_to_dict, summary_text
from backend_monitor.health.models import HealthReport
from backend_monitor.health.monitor import HealthMonitor

logger = logging.getLogger(__name__)

health_router = APIRouter()

# ── SSE subscriber list (in-memory) ──────────────────────────────────────────

_sse_queues: list[asyncio.Queue[dict[str, Any]]] = []


def broadcast_report(report: HealthReport) -> None:
    """Push a report to all SSE subscribers."""
    data = report_to_dict(report)
    for q in _sse_queues:
        try:
            q.put_nowait(data)
        except asyncio.QueueFull:
            pass  # slow consumer, drop


class ProbeRequest(BaseModel):
    url: str
    name: str = ""


def _monitor(request: Request) -> HealthMonitor:
    return request.app.state.monitor


def _latest_or_404(request: Request) -> HealthReport:
    report = _monitor(request).latest
    if report is None:
        raise HTTPException(status_code=404, detail="No health round has completed yet")
    return report


# ── Health endpoints ─────────────────────────────────────────────────────────


@health_router.get("/health/report")
def latest_report(request: Request) -> dict[str, Any]:
    return report_to_dict(_latest_or_404(request))


@health_router.get("/health/status")
def monitor_status(request: Request) -> dict[str, Any]:
    monitor = _monitor(request)
    return {
        **monitor.state.to_dict(),
        "running": monitor.running,
        "interval_ms": int(monitor.interval * 1000),
        "timeout_ms": int(monitor.timeout * 1000),
        "endpoints": [{"name": e.label, "url": e.url} for e in monitor.endpoints],
    }


@health_router.post("/health/check")
async def check_now(request: Request) -> dict[str, Any]:
    """Trigger an immediate round."""
    try:
        report = await _monitor(request).check_now()
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return report_to_dict(report)


@health_router.post("/health/probe")
async def probe_endpoint(body: ProbeRequest, request: Request) -> dict[str, Any]:
    """Probe one URL with the monitor's timeout."""
    try:
        result = await _monitor(request).test_endpoint(body.url, body.name)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return result_to_dict(result)


@health_router.get("/health/summary", response_class=PlainTextResponse)
def report_summary(request: Request) -> str:
    return summary_text(_latest_or_404(request))


@health_router.get("/health/export")
def export_report(request: Request) -> JSONResponse:
    report = _latest_or_404(request)
    filename = f"backend_status_{report.generated_at.date().isoformat()}.json"
    return JSONResponse(
        report_to_dict(report),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@health_router.get("/connectivity")
def connectivity() -> dict[str, Any]:
    return current_status().to_dict()


# ── SSE stream ───────────────────────────────────────────────────────────────


@health_router.get("/health/stream")
async def health_stream(request: Request) -> StreamingResponse:
    """Server-Sent Events stream of health reports."""
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=50)
    _sse_queues.append(queue)

    async def event_generator():
        try:
            latest = _monitor(request).latest
            if latest is not None:
                yield f"event: init\ndata: {json.dumps(report_to_dict(latest))}\n\n"

            while True:
                if await request.is_disconnected():
                    break

                try:
                    data = await asyncio.wait_for(queue.get(), timeout=30)
                    yield f"event: report\ndata: {json.dumps(data)}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            _sse_queues.remove(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
