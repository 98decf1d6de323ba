"""Tests for the concurrent health aggregator."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from backend_monitor.health.aggregator import HealthAggregator
from backend_monitor.health.errors import ConfigurationError, InvalidEndpointError
from backend_monitor.health.models import Endpoint, FailureReason, HealthReport, OverallStatus

BASE = "http://api.test"


def _run(aggregator: HealthAggregator, endpoints, timeout: float = 1.0) -> HealthReport:
    return asyncio.run(aggregator.run(endpoints, timeout))


class TestRoundResults:
    def test_order_matches_input_not_completion(self, make_aggregator) -> None:
        agg = make_aggregator({
            "/slow": (200, 0.2),
            "/fast": (200, 0.0),
            "/mid": (500, 0.1),
        })
        endpoints = [f"{BASE}/slow", f"{BASE}/fast", f"{BASE}/mid", f"{BASE}/missing"]
        report = _run(agg, endpoints)

        assert len(report.results) == len(endpoints)
        assert [r.endpoint for r in report.results] == endpoints
        assert [r.reachable for r in report.results] == [True, True, False, False]

    def test_all_online(self, make_aggregator) -> None:
        agg = make_aggregator({"/a": (200, 0), "/b": (204, 0)})
        report = _run(agg, [f"{BASE}/a", f"{BASE}/b"])
        assert report.overall_status == OverallStatus.ALL_ONLINE
        assert report.success_rate_percent == 100

    def test_all_offline(self, make_aggregator) -> None:
        agg = make_aggregator({"/a": (500, 0), "/b": (503, 0)})
        report = _run(agg, [f"{BASE}/a", f"{BASE}/b"])
        assert report.overall_status == OverallStatus.ALL_OFFLINE
        assert report.success_rate_percent == 0
        assert all(r.failure_reason == FailureReason.HTTP_ERROR for r in report.results)

    def test_two_of_four_partial(self, make_aggregator) -> None:
        agg = make_aggregator({"/a": (200, 0), "/b": (500, 0), "/c": (200, 0), "/d": (404, 0)})
        report = _run(agg, [f"{BASE}/{p}" for p in "abcd"])
        assert report.overall_status == OverallStatus.PARTIAL
        assert report.success_rate_percent == 50

    def test_named_endpoints(self, make_aggregator) -> None:
        agg = make_aggregator({"/health": (200, 0)})
        report = _run(agg, [Endpoint(url=f"{BASE}/health", name="Health Check"), f"{BASE}/health"])
        assert report.results[0].label == "Health Check"
        assert report.results[1].label == f"{BASE}/health"

    def test_mixed_failure_kinds(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/refused":
                raise httpx.ConnectError("Connection refused", request=request)
            if request.url.path == "/hung":
                await asyncio.sleep(10)
            return httpx.Response(200)

        agg = HealthAggregator(transport=httpx.MockTransport(handler))
        report = _run(agg, [f"{BASE}/ok", f"{BASE}/refused", f"{BASE}/hung"], timeout=0.2)

        ok, refused, hung = report.results
        assert ok.reachable
        assert refused.failure_reason == FailureReason.TRANSPORT_ERROR
        assert refused.status_code is None
        assert hung.failure_reason == FailureReason.TIMEOUT
        assert hung.latency_ms >= 200
        assert report.overall_status == OverallStatus.PARTIAL


class TestConcurrency:
    def test_round_bounded_by_slowest_not_sum(self, make_aggregator) -> None:
        agg = make_aggregator({f"/{i}": (200, 0.25) for i in range(4)})
        t0 = time.perf_counter()
        report = _run(agg, [f"{BASE}/{i}" for i in range(4)], timeout=2.0)
        elapsed = time.perf_counter() - t0

        assert report.overall_status == OverallStatus.ALL_ONLINE
        assert elapsed < 0.75  # sequential would take 1.0s

    def test_fast_and_slow_both_complete(self, make_aggregator) -> None:
        agg = make_aggregator({"/fast": (200, 0.01), "/slow": (200, 0.4)})
        t0 = time.perf_counter()
        report = _run(agg, [f"{BASE}/fast", f"{BASE}/slow"], timeout=1.0)
        elapsed = time.perf_counter() - t0

        fast, slow = report.results
        assert fast.reachable and slow.reachable
        assert fast.latency_ms < slow.latency_ms
        assert elapsed < 0.4 + 0.3

    def test_hung_probe_does_not_block_others(self, make_aggregator) -> None:
        agg = make_aggregator({"/hung": (200, 30.0), "/ok": (200, 0.0)})
        t0 = time.perf_counter()
        report = _run(agg, [f"{BASE}/hung", f"{BASE}/ok"], timeout=0.2)
        elapsed = time.perf_counter() - t0

        hung, ok = report.results
        assert hung.failure_reason == FailureReason.TIMEOUT
        assert ok.reachable
        assert elapsed < 2.0

    def test_average_latency_counts_timeouts(self, make_aggregator) -> None:
        agg = make_aggregator({"/hung": (200, 30.0), "/ok": (200, 0.0)})
        report = _run(agg, [f"{BASE}/hung", f"{BASE}/ok"], timeout=0.2)
        assert report.average_latency_ms >= 100  # (>=200 + ~0) / 2


class TestConfigurationErrors:
    def test_empty_endpoint_list(self, make_aggregator) -> None:
        calls: list[str] = []
        agg = make_aggregator({}, calls)
        with pytest.raises(ConfigurationError):
            _run(agg, [])
        assert calls == []

    def test_malformed_endpoint_aborts_before_any_request(self, make_aggregator) -> None:
        calls: list[str] = []
        agg = make_aggregator({"/a": (200, 0)}, calls)
        with pytest.raises(InvalidEndpointError) as exc:
            _run(agg, [f"{BASE}/a", "not-a-url"])
        assert exc.value.endpoint == "not-a-url"
        assert calls == []

    def test_non_positive_timeout(self, make_aggregator) -> None:
        agg = make_aggregator({"/a": (200, 0)})
        with pytest.raises(ConfigurationError):
            _run(agg, [f"{BASE}/a"], timeout=0)


class TestAnyOnline:
    def test_any_success_counts_as_online(self, make_aggregator) -> None:
        agg = make_aggregator({"/health": (404, 0), "/status": (500, 0), "/ping": (200, 0)})
        endpoints = [f"{BASE}/health", f"{BASE}/status", f"{BASE}/ping"]
        assert asyncio.run(agg.is_online(endpoints, 1.0)) is True

    def test_all_failing_is_offline(self, make_aggregator) -> None:
        agg = make_aggregator({"/health": (404, 0)})
        assert asyncio.run(agg.is_online([f"{BASE}/health", f"{BASE}/status"], 1.0)) is False

    def test_default_report_is_not_lenient(self, make_aggregator) -> None:
        agg = make_aggregator({"/ping": (200, 0)})
        report = _run(agg, [f"{BASE}/health", f"{BASE}/ping"])
        assert report.any_reachable
        assert report.overall_status == OverallStatus.PARTIAL
