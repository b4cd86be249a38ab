"""Interval driver for the archive purger, owned by the application lifespan."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from courseware.core.metrics import bg_task_last_success, bg_task_runs_total
from courseware.services.purger import ArchivePurger, SweepResult

logger = logging.getLogger(__name__)

TASK_NAME = "archive_purge"


class PurgeScheduler:
    """Run ``purger.sweep()`` every ``interval_ms`` until stopped.

    The loop survives any sweep failure; only cancellation ends it. ``stop``
    lets an in-flight sweep finish within ``timeout`` seconds before
    cancelling it.
    """

    def __init__(self, purger: ArchivePurger, interval_ms: int) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.purger = purger
        self.interval = interval_ms / 1000
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name=TASK_NAME)
        logger.info("Archive purge scheduler started (every %.1fs)", self.interval)

    async def stop(self, timeout: float = 10.0) -> None:
        task = self._task
        if task is None:
            return
        self._stopping.set()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.warning("Archive purge did not finish within %.1fs, cancelling", timeout)
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        finally:
            self._task = None
        logger.info("Archive purge scheduler stopped")

    async def run_once(self) -> SweepResult | None:
        try:
            result = await self.purger.sweep()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error in archive purge loop")
            bg_task_runs_total.labels(task_name=TASK_NAME, status="error").inc()
            return None

        if not result.skipped:
            bg_task_runs_total.labels(task_name=TASK_NAME, status="success").inc()
            bg_task_last_success.labels(task_name=TASK_NAME).set_to_current_time()
        return result

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), self.interval)
            if self._stopping.is_set():
                break
            await self.run_once()
