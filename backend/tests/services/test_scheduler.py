"""Tests for the purge scheduler loop."""

from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from courseware.services.purger import SweepResult
from courseware.services.scheduler import TASK_NAME, PurgeScheduler


class FakePurger:
    """Stands in for ArchivePurger; records each sweep."""

    def __init__(self, fail_first: int = 0, delay: float = 0.0, result=None):
        self.calls = 0
        self.fail_first = fail_first
        self.delay = delay
        self.result = result or SweepResult()
        self.started = asyncio.Event()
        self.finished = 0
        self.cancelled = False

    async def sweep(self, now=None):
        self.calls += 1
        self.started.set()
        if self.calls <= self.fail_first:
            raise RuntimeError("database unavailable")
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        self.finished += 1
        return self.result


def _runs(status: str) -> float:
    labels = {"task_name": TASK_NAME, "status": status}
    return REGISTRY.get_sample_value("bg_task_runs_total", labels) or 0.0


class TestConstruction:
    @pytest.mark.parametrize("interval", [0, -5])
    def test_interval_must_be_positive(self, interval):
        with pytest.raises(ValueError):
            PurgeScheduler(FakePurger(), interval)

    def test_interval_in_seconds(self):
        assert PurgeScheduler(FakePurger(), 15_000).interval == 15.0


class TestLoop:
    async def test_sweeps_on_every_tick(self):
        purger = FakePurger()
        scheduler = PurgeScheduler(purger, 10)

        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert purger.calls >= 2
        assert scheduler.running is False

    async def test_does_not_sweep_before_first_interval(self):
        purger = FakePurger()
        scheduler = PurgeScheduler(purger, 60_000)

        scheduler.start()
        await asyncio.sleep(0.02)
        await scheduler.stop()

        assert purger.calls == 0

    async def test_survives_failing_sweeps(self):
        purger = FakePurger(fail_first=2)
        scheduler = PurgeScheduler(purger, 10)

        scheduler.start()
        await asyncio.sleep(0.15)
        await scheduler.stop()

        assert purger.calls >= 3
        assert purger.finished >= 1

    async def test_start_is_idempotent(self):
        scheduler = PurgeScheduler(FakePurger(), 60_000)

        scheduler.start()
        task = scheduler._task
        scheduler.start()

        assert scheduler._task is task
        assert task.get_name() == TASK_NAME
        await scheduler.stop()

    async def test_stop_without_start(self):
        scheduler = PurgeScheduler(FakePurger(), 1_000)
        await scheduler.stop()
        assert scheduler.running is False

    async def test_stop_lets_inflight_sweep_finish(self):
        purger = FakePurger(delay=0.05)
        scheduler = PurgeScheduler(purger, 10)

        scheduler.start()
        await asyncio.wait_for(purger.started.wait(), 1)
        await scheduler.stop(timeout=5)

        assert purger.finished == 1
        assert purger.cancelled is False

    async def test_stop_cancels_after_timeout(self):
        purger = FakePurger(delay=30)
        scheduler = PurgeScheduler(purger, 10)

        scheduler.start()
        await asyncio.wait_for(purger.started.wait(), 1)
        await scheduler.stop(timeout=0.05)

        assert purger.cancelled is True
        assert scheduler.running is False

    async def test_can_restart_after_stop(self):
        purger = FakePurger()
        scheduler = PurgeScheduler(purger, 10)

        scheduler.start()
        await scheduler.stop()
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert purger.calls >= 1


class TestRunOnce:
    async def test_success_recorded(self):
        before = _runs("success")
        result = await PurgeScheduler(FakePurger(), 1_000).run_once()

        assert isinstance(result, SweepResult)
        assert _runs("success") == before + 1

    async def test_failure_logged_and_counted(self, caplog):
        before = _runs("error")
        result = await PurgeScheduler(FakePurger(fail_first=1), 1_000).run_once()

        assert result is None
        assert _runs("error") == before + 1
        assert "Error in archive purge loop" in caplog.text

    async def test_skipped_sweep_not_counted(self):
        before = _runs("success")
        purger = FakePurger(result=SweepResult(skipped=True))

        result = await PurgeScheduler(purger, 1_000).run_once()

        assert result.skipped is True
        assert _runs("success") == before
