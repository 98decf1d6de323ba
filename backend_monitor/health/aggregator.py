"""Health aggregator — runs one probe per endpoint concurrently and builds a HealthReport."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

import httpx

from .errors import ConfigurationError
from .models import Endpoint, HealthReport, as_endpoint
from .prober import probe, validate_endpoint, validate_timeout

logger = logging.getLogger(__name__)


class HealthAggregator:
    """Issues a round of probes and aggregates them.

    One ``httpx.AsyncClient`` is opened per round and shared by its probes;
    ``transport`` lets tests (or a custom network stack) replace the wire.
    """

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        method: str = "GET",
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._transport = transport
        self._method = method
        self._clock = clock

    async def run(self, endpoints: Sequence[str | Endpoint], timeout: float) -> HealthReport:
        """Probe every endpoint at once and wait for all of them to settle.

        Raises ConfigurationError before any request is made if the list is
        empty, any endpoint is malformed, or ``timeout`` is not positive.
        """
        targets = [as_endpoint(e) for e in endpoints]
        if not targets:
            raise ConfigurationError("Endpoint list is empty — nothing to probe")
        validate_timeout(timeout)
        for target in targets:
            validate_endpoint(target.url)

        t0 = self._clock()
        async with httpx.AsyncClient(
            transport=self._transport,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=None),
        ) as client:
            # gather returns results in argument order, not completion order
            results = await asyncio.gather(*(
                probe(
                    t.url, timeout, name=t.name, client=client,
                    method=self._method, clock=self._clock,
                )
                for t in targets
            ))

        report = HealthReport.from_results(results)
        logger.info(
            "Health round: %s — %d/%d reachable, avg %.0fms (round took %.0fms)",
            report.overall_status.value,
            report.reachable_count,
            report.total,
            report.average_latency_ms,
            (self._clock() - t0) * 1000,
        )
        return report

    async def is_online(self, endpoints: Sequence[str | Endpoint], timeout: float) -> bool:
        """Lenient check: True if ANY endpoint in the list answers successfully."""
        report = await self.run(endpoints, timeout)
        return report.any_reachable
