import asyncio
import contextlib
import time
from typing import Callable, Protocol

import structlog

from teamboard.metrics import MetricsUpdater
from teamboard.models import Snapshot

logger = structlog.get_logger()

# 5 minutes
DEFAULT_POLL_INTERVAL_SECONDS = 300.0


class Builder(Protocol):
    async def build(self) -> "Snapshot": ...


class Poller:
    """
    Poller rebuilds the snapshot on a fixed cadence and publishes each
    successful result. The first cycle runs immediately on start, the
    following ones every interval measured from cycle start. A cycle
    whose predecessor is still running is skipped, so results are
    never published out of order.

    The latest snapshot is only replaced by a single assignment after a
    successful build; failed cycles leave the previous one in place.
    """

    def __init__(
        self,
        builder: "Builder",
        interval_seconds: "float" = DEFAULT_POLL_INTERVAL_SECONDS,
        on_snapshot: "Callable[[Snapshot], None] | None" = None,
        metrics: "MetricsUpdater | None" = None,
    ) -> "None":
        self._builder = builder
        self._interval = interval_seconds
        self._on_snapshot = on_snapshot
        self._metrics = metrics
        self._snapshot: "Snapshot" = ()
        self._stop_event: "asyncio.Event" = asyncio.Event()
        self._task: "asyncio.Task[None] | None" = None
        self._cycle: "asyncio.Task[bool] | None" = None

    @property
    def snapshot(self) -> "Snapshot":
        """
        the last successfully published snapshot, empty before the
        first success.
        """
        return self._snapshot

    def stop(self) -> "None":
        """
        signals the polling loop to stop.
        """
        self._stop_event.set()

    async def start(self) -> "None":
        """
        runs the polling loop as a background task.
        """
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())

    async def close(self) -> "None":
        """
        stops the loop and drops any cycle still in flight.
        """
        self.stop()
        if self._task:
            await self._task
            self._task = None
        if self._cycle and not self._cycle.done():
            self._cycle.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cycle
        self._cycle = None

    async def run(self) -> "None":
        """
        runs the polling loop until stop() is called.
        """
        logger.info("poller_started", interval_seconds=self._interval)

        while not self._stop_event.is_set():
            self._start_cycle()

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass

        logger.info("poller_stopped")

    def _start_cycle(self) -> "None":
        if self._cycle is not None and not self._cycle.done():
            logger.warning("poll_cycle_skipped", reason="previous cycle still running")
            if self._metrics is not None:
                self._metrics.inc_poll_skipped()
            return

        self._cycle = asyncio.create_task(self.poll_once())

    async def poll_once(self) -> "bool":
        """
        builds and publishes one snapshot. Returns whether the cycle
        succeeded.
        """
        cycle_start = time.monotonic()

        try:
            snapshot = await self._builder.build()
        except Exception:
            logger.exception("poll_error")
            if self._metrics is not None:
                self._metrics.inc_poll_error()
            return False
        finally:
            if self._metrics is not None:
                self._metrics.observe_poll_duration(time.monotonic() - cycle_start)

        self._snapshot = snapshot
        logger.info(
            "snapshot_updated",
            members=len(snapshot),
            active=sum(1 for m in snapshot if m.active),
        )

        if self._metrics is not None:
            self._metrics.update_snapshot(snapshot)
            self._metrics.set_last_poll_success(time.time())

        if self._on_snapshot is not None:
            try:
                self._on_snapshot(snapshot)
            except Exception:
                logger.exception("snapshot_callback_error")

        return True
