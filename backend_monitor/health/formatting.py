"""Display helpers for health reports (status text, copyable summary, JSON export)."""

from __future__ import annotations

from typing import Any

from .models import EndpointProbeResult, HealthReport, OverallStatus

STATUS_TEXT = {
    OverallStatus.ALL_ONLINE: "Backend Online",
    OverallStatus.PARTIAL: "Backend Degraded",
    OverallStatus.ALL_OFFLINE: "Backend Offline",
}


def format_latency(ms: float) -> str:
    """532 -> '532ms', 1234 -> '1.2s'."""
    if ms < 1000:
        return f"{int(round(ms))}ms"
    return f"{ms / 1000:.1f}s"


def status_text(report: HealthReport) -> str:
    if report.error:
        return "Connection Error"
    return STATUS_TEXT[report.overall_status]


def result_line(result: EndpointProbeResult) -> str:
    mark = "✅ Online" if result.reachable else "❌ Offline"
    line = f"{result.label}: {mark} ({format_latency(result.latency_ms)})"
    if not result.reachable and result.message:
        line += f" — {result.message}"
    return line


def summary_text(report: HealthReport) -> str:
    """Multi-line plain-text block suitable for pasting into a bug report."""
    header = f"Backend Test Results ({report.generated_at.strftime('%Y-%m-%d %H:%M:%S')} UTC):"
    if report.error:
        return f"{header}\n\nRound failed: {report.error}"
    lines = [result_line(r) for r in report.results]
    footer = (
        f"{status_text(report)} — {report.success_rate_percent:.1f}% reachable, "
        f"avg {format_latency(report.average_latency_ms)}"
    )
    return "\n".join([header, "", *lines, "", footer])


def result_to_dict(result: EndpointProbeResult) -> dict[str, Any]:
    return {
        "endpoint": result.endpoint,
        "name": result.label,
        "reachable": result.reachable,
        "latency_ms": result.latency_ms,
        "status_code": result.status_code,
        "failure_reason": result.failure_reason.value if result.failure_reason else None,
        "message": result.message,
        "observed_at": result.observed_at.isoformat(),
    }


def report_to_dict(report: HealthReport) -> dict[str, Any]:
    return {
        "overall_status": report.overall_status.value,
        "status_text": status_text(report),
        "success_rate_percent": round(report.success_rate_percent, 1),
        "average_latency_ms": round(report.average_latency_ms, 1),
        "reachable": report.reachable_count,
        "total": report.total,
        "generated_at": report.generated_at.isoformat(),
        "error": report.error,
        "results": [result_to_dict(r) for r in report.results],
    }
