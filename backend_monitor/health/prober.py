"""Endpoint prober — one bounded-time reachability check against one URL.

Every outcome (success, non-2xx, transport failure, timeout) comes back as an
EndpointProbeResult. The only error raised is InvalidEndpointError, for a URL
that cannot be requested at all.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

from .errors import ConfigurationError, InvalidEndpointError
from .models import EndpointProbeResult, FailureReason

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
ALLOWED_METHODS = ("GET", "HEAD")
DEFAULT_HEADERS = {"Accept": "application/json"}


def validate_endpoint(endpoint: str) -> httpx.URL:
    """Parse an endpoint URL, raising InvalidEndpointError if it can't be requested."""
    if not endpoint or not endpoint.strip():
        raise InvalidEndpointError(endpoint, "empty URL")
    try:
        url = httpx.URL(endpoint.strip())
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InvalidEndpointError(endpoint, str(e)) from e

    if url.scheme not in ALLOWED_SCHEMES:
        raise InvalidEndpointError(endpoint, f"unsupported scheme {url.scheme!r}")
    if not url.host:
        raise InvalidEndpointError(endpoint, "missing host")
    return url


def validate_timeout(timeout: float) -> None:
    if timeout <= 0:
        raise ConfigurationError(f"Probe timeout must be positive, got {timeout}")


async def probe(
    endpoint: str,
    timeout: float,
    *,
    name: str = "",
    client: httpx.AsyncClient | None = None,
    method: str = "GET",
    clock: Callable[[], float] = time.perf_counter,
) -> EndpointProbeResult:
    """Probe ``endpoint`` once, never taking longer than ``timeout`` seconds.

    The request runs under ``asyncio.wait_for`` so an overrun cancels the
    in-flight httpx call (and its connection) instead of abandoning it.
    Pass a shared ``client`` to reuse a connection pool across probes.
    """
    url = validate_endpoint(endpoint)
    validate_timeout(timeout)
    method = method.upper()
    if method not in ALLOWED_METHODS:
        raise ConfigurationError(f"Probe method must be one of {ALLOWED_METHODS}, got {method!r}")

    timeout_ms = int(round(timeout * 1000))
    t0 = clock()

    def elapsed_ms() -> int:
        return max(0, int(round((clock() - t0) * 1000)))

    try:
        if client is None:
            async with httpx.AsyncClient(follow_redirects=True) as own_client:
                resp = await asyncio.wait_for(_send(own_client, method, url, timeout), timeout)
        else:
            resp = await asyncio.wait_for(_send(client, method, url, timeout), timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException):
        result = EndpointProbeResult(
            endpoint=endpoint, name=name, reachable=False,
            latency_ms=max(elapsed_ms(), timeout_ms),
            failure_reason=FailureReason.TIMEOUT,
            message=f"Request timed out (>{timeout_ms}ms)",
        )
    except httpx.HTTPError as e:
        result = EndpointProbeResult(
            endpoint=endpoint, name=name, reachable=False,
            latency_ms=elapsed_ms(),
            failure_reason=FailureReason.TRANSPORT_ERROR,
            message=f"Connection error: {e}" if str(e) else f"Connection error: {type(e).__name__}",
        )
    except Exception as e:
        result = EndpointProbeResult(
            endpoint=endpoint, name=name, reachable=False,
            latency_ms=elapsed_ms(),
            failure_reason=FailureReason.TRANSPORT_ERROR,
            message=f"Error: {type(e).__name__}: {e}",
        )
    else:
        latency = elapsed_ms()
        if resp.is_success:
            result = EndpointProbeResult(
                endpoint=endpoint, name=name, reachable=True,
                latency_ms=latency, status_code=resp.status_code,
                message=f"{resp.status_code} OK",
            )
        else:
            result = EndpointProbeResult(
                endpoint=endpoint, name=name, reachable=False,
                latency_ms=latency, status_code=resp.status_code,
                failure_reason=FailureReason.HTTP_ERROR,
                message=f"HTTP {resp.status_code}: {resp.reason_phrase}",
            )

    logger.debug(
        "Probe %s: %s (%dms) %s",
        endpoint,
        "up" if result.reachable else result.failure_reason.value,
        result.latency_ms,
        result.message,
    )
    return result


async def _send(client: httpx.AsyncClient, method: str, url: httpx.URL, timeout: float) -> httpx.Response:
    return await client.request(method, url, headers=DEFAULT_HEADERS, timeout=timeout)
