"""
Unit tests for BackgroundTasks.
"""

import asyncio
import logging

import pytest

from mdb_adapters.observability import get_metrics_collector
from mdb_adapters.tasks import BackgroundTasks


async def succeed(value):
    await asyncio.sleep(0)
    return value


async def fail(message):
    await asyncio.sleep(0)
    raise ValueError(message)


class TestSpawn:
    @pytest.mark.asyncio
    async def test_task_runs_and_is_released(self):
        tasks = BackgroundTasks()

        task = tasks.spawn(succeed(5), name="unit.succeed")
        assert tasks.pending == 1

        await tasks.drain()

        assert task.result() == 5
        assert tasks.pending == 0
        assert get_metrics_collector().get_operation_count("background.unit.succeed") == 1

    def test_no_running_loop(self):
        tasks = BackgroundTasks()
        coro = succeed(1)

        assert tasks.spawn(coro, name="unit.no_loop") is None
        assert tasks.pending == 0
        # The coroutine was closed, not left un-awaited
        assert coro.cr_frame is None

    @pytest.mark.asyncio
    async def test_failure_is_reported(self, caplog):
        errors = []
        tasks = BackgroundTasks(on_error=lambda name, exc: errors.append((name, exc)))

        with caplog.at_level(logging.ERROR, logger="mdb_adapters.tasks"):
            tasks.spawn(fail("boom"), name="unit.fail")
            await tasks.drain()

        assert len(errors) == 1
        assert errors[0][0] == "unit.fail"
        assert str(errors[0][1]) == "boom"
        assert "unit.fail" in caplog.text
        metrics = get_metrics_collector().get_metrics("background")["metrics"]
        assert metrics["background.unit.fail"]["error_count"] == 1

    @pytest.mark.asyncio
    async def test_failing_callback_is_contained(self, caplog):
        def broken_callback(name, exc):
            raise RuntimeError("callback broke")

        tasks = BackgroundTasks(on_error=broken_callback)

        with caplog.at_level(logging.ERROR, logger="mdb_adapters.tasks"):
            tasks.spawn(fail("boom"), name="unit.fail")
            await tasks.drain()

        assert "Error callback for background task 'unit.fail' failed" in caplog.text

    @pytest.mark.asyncio
    async def test_cancelled_task_is_not_an_error(self):
        errors = []
        tasks = BackgroundTasks(on_error=lambda name, exc: errors.append(exc))

        task = tasks.spawn(asyncio.sleep(10), name="unit.sleep")
        await asyncio.sleep(0)
        task.cancel()
        await tasks.drain()

        assert errors == []
        assert tasks.pending == 0

    @pytest.mark.asyncio
    async def test_drain_waits_for_tasks_spawned_by_tasks(self):
        tasks = BackgroundTasks()
        results = []

        async def parent():
            await asyncio.sleep(0)
            tasks.spawn(child(), name="unit.child")

        async def child():
            await asyncio.sleep(0)
            results.append("child")

        tasks.spawn(parent(), name="unit.parent")
        await tasks.drain()

        assert results == ["child"]
