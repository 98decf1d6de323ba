"""Errors raised to callers of the health subsystem.

Probe failures (timeout, transport, HTTP status) are never raised: they are
reported as data on EndpointProbeResult. Only caller mistakes end up here.
"""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for health monitor errors."""


class ConfigurationError(MonitorError):
    """Raised for an unusable configuration (empty endpoint list, bad timeout/interval)."""


class InvalidEndpointError(ConfigurationError):
    """Raised when a request cannot even be issued for an endpoint."""

    def __init__(self, endpoint: str, reason: str) -> None:
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Invalid endpoint {endpoint!r}: {reason}")
