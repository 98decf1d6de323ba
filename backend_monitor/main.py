"""Entry point for the backend health monitor."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from backend_monitor.config import settings
from backend_monitor.endpoints import EndpointRegistry
from backend_monitor.health.aggregator import HealthAggregator
from backend_monitor.health.connectivity import current_status
from backend_monitor.health.errors import ConfigurationError
from backend_monitor.health.formatting import format_latency, report_to_dict, status_text
from backend_monitor.health.models import HealthReport, OverallStatus
from backend_monitor.health.monitor import HealthMonitor

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

STATUS_STYLE = {
    OverallStatus.ALL_ONLINE: "bold green",
    OverallStatus.PARTIAL: "bold yellow",
    OverallStatus.ALL_OFFLINE: "bold red",
}


def _monitor() -> HealthMonitor:
    registry = EndpointRegistry(settings.endpoints_file, settings.api_url)
    return HealthMonitor(
        endpoints=registry.load(),
        timeout=settings.probe_timeout,
        interval=settings.check_interval,
        aggregator=HealthAggregator(method=settings.probe_method),
    )


def render_report(report: HealthReport) -> None:
    """Print a report as a rich table."""
    style = STATUS_STYLE[report.overall_status]
    if report.error:
        console.print(Panel(f"Round failed: {report.error}", title=status_text(report), style=style))
        return

    table = Table(title=f"{status_text(report)} — {report.generated_at:%H:%M:%S}")
    table.add_column("Endpoint")
    table.add_column("URL", style="dim")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Detail")
    for r in report.results:
        table.add_row(
            r.label,
            r.endpoint,
            "[green]online[/green]" if r.reachable else f"[red]{r.failure_reason.value}[/red]",
            format_latency(r.latency_ms),
            "" if r.reachable else r.message,
        )
    console.print(table)
    console.print(
        f"[{style}]{report.success_rate_percent:.1f}% reachable[/{style}] "
        f"· avg {format_latency(report.average_latency_ms)}"
    )


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting Backend Health Monitor", style="bold green"))
    uvicorn.run(
        "backend_monitor.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def run_check(as_json: bool) -> int:
    """One round, printed; exit code 0 only when every endpoint is up."""
    monitor = _monitor()
    report = asyncio.run(monitor.check_now())
    if as_json:
        print(json.dumps(report_to_dict(report), indent=2))
    else:
        net = current_status()
        console.print(f"[dim]Host network: {'online' if net.online else 'offline'} ({net.link_quality or 'unknown link'})[/dim]")
        render_report(report)
    return 0 if report.overall_status == OverallStatus.ALL_ONLINE else 1


def run_watch(rounds: int | None) -> None:
    """Run the scheduler in the foreground until Ctrl+C (or ``rounds`` reports)."""
    monitor = _monitor()

    async def _watch() -> None:
        def _on_report(report: HealthReport) -> None:
            render_report(report)
            if rounds is not None and monitor.state.rounds >= rounds:
                monitor.stop()

        monitor.subscribe(_on_report)
        await monitor.start()
        try:
            await monitor.wait_stopped()
        finally:
            monitor.stop()

    console.print(Panel(
        f"Watching {len(monitor.endpoints)} endpoints every {format_latency(settings.check_interval_ms)}",
        title="backend-monitor",
        style="bold blue",
    ))
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


def main() -> None:
    parser = argparse.ArgumentParser(description="Backend Health Monitor")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")

    check_parser = sub.add_parser("check", help="Run one health round and exit")
    check_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    watch_parser = sub.add_parser("watch", help="Run health rounds on the configured interval")
    watch_parser.add_argument("--rounds", type=int, default=None, help="Stop after N reports")

    args = parser.parse_args()

    try:
        if args.command == "serve":
            run_server()
        elif args.command == "check":
            sys.exit(run_check(args.json))
        elif args.command == "watch":
            run_watch(args.rounds)
        else:
            parser.print_help()
            sys.exit(1)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
