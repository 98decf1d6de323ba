"""Monitor scheduler — repeats health rounds on a fixed interval until stopped.

Each ``start()`` call opens an independent session backed by its own asyncio
task. Rounds never overlap: a round that overruns the interval pushes the next
one back until it finishes. ``MonitorHandle.stop()`` cancels the pending
sleep; a round already in flight is left to finish but its report is dropped.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import math
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import ConfigurationError
from .models import HealthReport

logger = logging.getLogger(__name__)

Runner = Callable[[], Awaitable[HealthReport]]
ReportCallback = Callable[[HealthReport], Any]

_session_ids = itertools.count(1)


class MonitorHandle:
    """One scheduling session. Owned by whoever called ``start()``."""

    def __init__(
        self,
        runner: Runner,
        interval: float,
        on_report: ReportCallback,
        clock: Callable[[], float],
        sleep: Callable[[float], Awaitable[Any]],
    ) -> None:
        self.session_id = next(_session_ids)
        self.interval = interval
        self.rounds_started = 0
        self.reports_delivered = 0
        self._runner = runner
        self._on_report = on_report
        self._clock = clock
        self._sleep = sleep
        # _stopped / _in_flight / _delivering only change together under this lock
        self._lock = threading.Lock()
        self._stopped = False
        self._in_flight = False
        self._delivering = False
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    # ── Public API ───────────────────────────────────────────────────────────

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    def stop(self) -> None:
        """End the session. Idempotent; safe from any thread and after the session ended."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            # Only interrupt the loop while it sleeps; rounds and deliveries run to completion.
            interrupt = not self._in_flight and not self._delivering

        if interrupt and self._task is not None and not self._task.done():
            self._cancel_task()
        logger.info("Health monitor session %d stopped", self.session_id)

    async def wait(self) -> None:
        """Wait until the session's task has finished."""
        if self._task is None:
            return
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    # ── Internals ────────────────────────────────────────────────────────────

    def _bind(self, task: asyncio.Task[None], loop: asyncio.AbstractEventLoop) -> None:
        self._task = task
        self._loop = loop

    def _cancel_task(self) -> None:
        assert self._task is not None and self._loop is not None
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._task.cancel()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._task.cancel)

    def _next_slot(self, slot: int, session_start: float, round_start: float) -> int:
        """Index of the first grid slot after ``round_start``, always past ``slot``.

        The float estimate only matters after an overrun; the ``slot + 1`` floor
        keeps the grid moving when rounding puts a boundary start one slot early.
        """
        return max(slot + 1, math.floor((round_start - session_start) / self.interval) + 1)

    async def _run(self) -> None:
        session_start = self._clock()
        slot = 0
        logger.info(
            "Health monitor session %d started (interval=%.1fs)", self.session_id, self.interval,
        )
        while True:
            with self._lock:
                if self._stopped:
                    return
                self._in_flight = True

            round_start = self._clock()
            self.rounds_started += 1
            try:
                report = await self._runner()
            except Exception as e:
                logger.exception("Health round %d failed — reporting as offline", self.rounds_started)
                report = HealthReport.failed(f"{type(e).__name__}: {e}")

            with self._lock:
                self._in_flight = False
                if self._stopped:
                    logger.debug(
                        "Session %d stopped during round %d — report dropped",
                        self.session_id, self.rounds_started,
                    )
                    return
                self._delivering = True

            try:
                await self._deliver(report)
            finally:
                with self._lock:
                    self._delivering = False

            with self._lock:
                if self._stopped:
                    return

            slot = self._next_slot(slot, session_start, round_start)
            delay = session_start + slot * self.interval - self._clock()
            if delay > 0:
                await self._sleep(delay)
            else:
                logger.debug("Round %d overran the interval — next round starts now", self.rounds_started)

    async def _deliver(self, report: HealthReport) -> None:
        try:
            result = self._on_report(report)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Health report observer raised")
        else:
            self.reports_delivered += 1


class MonitorScheduler:
    """Starts monitor sessions on the running event loop.

    ``clock`` and ``sleep`` are injectable so tests can drive sessions on
    virtual time.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._sessions: set[MonitorHandle] = set()

    @property
    def active_sessions(self) -> list[MonitorHandle]:
        return [h for h in self._sessions if not h.done]

    def start(self, runner: Runner, interval: float, on_report: ReportCallback) -> MonitorHandle:
        """Run ``runner`` now and then every ``interval`` seconds, feeding ``on_report``.

        Must be called from within a running event loop.
        """
        if interval <= 0:
            raise ConfigurationError(f"Monitor interval must be positive, got {interval}")

        loop = asyncio.get_running_loop()
        handle = MonitorHandle(runner, interval, on_report, self._clock, self._sleep)
        task = loop.create_task(handle._run(), name=f"health-monitor-{handle.session_id}")
        handle._bind(task, loop)

        self._sessions.add(handle)
        task.add_done_callback(lambda _t: self._sessions.discard(handle))
        return handle

    def stop_all(self) -> None:
        for handle in list(self._sessions):
            handle.stop()
