"""Tests for the interval scheduler."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from litestar_services.core.types import ExecutionStatus

if TYPE_CHECKING:
    from litestar_services.scheduling import Scheduler


@pytest.mark.integration
@pytest.mark.asyncio
class TestSchedulerTicks:
    """Tests for periodic dispatch."""

    async def test_first_tick_after_one_interval(self, scheduler: Scheduler, unit: Any) -> None:
        """Test a 1s task reports once, stays scheduled, and stops on request."""
        calls: list[tuple[ExecutionStatus, Any]] = []
        ticked = asyncio.Event()

        def callback(status: ExecutionStatus, data: Any) -> None:
            calls.append((status, data))
            ticked.set()

        await scheduler.start("t1", unit("echo"), 1, callback, data={"n": 1})

        await asyncio.sleep(0.5)
        assert calls == []

        await asyncio.wait_for(ticked.wait(), 5)
        assert calls == [(ExecutionStatus.COMPLETED, {"echo": {"n": 1}})]
        assert scheduler.is_running("t1") is True

        await scheduler.stop("t1")
        assert scheduler.is_running("t1") is False

    async def test_task_executed_event(self, scheduler: Scheduler, unit: Any, recorded_events: list) -> None:
        """Test every finished tick is published."""
        executed = asyncio.Event()
        scheduler.event_bus.on("scheduler:taskExecuted", lambda event: executed.set())

        task = await scheduler.start("t1", unit("echo"), 0.1, data="x")
        await asyncio.wait_for(executed.wait(), 5)

        event = next(event for event in recorded_events if event.event_type == "scheduler:taskExecuted")
        assert event.payload == {
            "task_name": "t1",
            "unit_reference": unit("echo"),
            "status": "completed",
            "data": {"echo": "x"},
        }
        assert task.run_count >= 1
        assert task.last_status is ExecutionStatus.COMPLETED
        assert task.last_run_at is not None

    async def test_overlapping_ticks_are_dropped(self, scheduler: Scheduler, unit: Any) -> None:
        """Test ticks arriving while the previous run is in flight are skipped."""
        task = await scheduler.start("slow", unit("slow"), 0.1, data={"seconds": 5})

        await asyncio.sleep(0.65)

        assert task.run_count == 1
        assert task.skipped_count >= 3
        assert scheduler.get_runner("slow").get_status() is ExecutionStatus.RUNNING

    async def test_failing_callback_does_not_stop_schedule(
        self, scheduler: Scheduler, unit: Any, recorded_events: list
    ) -> None:
        """Test a raising callback is logged and the tick is still published."""
        executed = asyncio.Event()
        scheduler.event_bus.on("scheduler:taskExecuted", lambda event: executed.set())

        def callback(status: ExecutionStatus, data: Any) -> None:
            raise RuntimeError("callback failure")

        await scheduler.start("t1", unit("error_step"), 0.1, callback)
        await asyncio.wait_for(executed.wait(), 5)

        assert scheduler.is_running("t1")
        assert scheduler.get_task("t1").last_status is ExecutionStatus.ERROR


@pytest.mark.integration
@pytest.mark.asyncio
class TestSchedulerLifecycle:
    """Tests for scheduling, duplicates and stopping."""

    async def test_duplicate_name_is_rejected(self, scheduler: Scheduler, unit: Any, recorded_events: list) -> None:
        """Test a duplicate name raises, emits, and leaves the original untouched."""
        from litestar_services.exceptions import DuplicateTaskError

        original = await scheduler.start("t1", unit("echo"), 60)

        with pytest.raises(DuplicateTaskError):
            await scheduler.start("t1", unit("slow"), 1)

        assert scheduler.get_task("t1") is original
        errors = [event for event in recorded_events if event.event_type == "scheduler:start:error"]
        assert len(errors) == 1
        assert errors[0].payload["task_name"] == "t1"

    @pytest.mark.parametrize("interval", [0, -1])
    async def test_non_positive_interval(self, scheduler: Scheduler, unit: Any, interval: float) -> None:
        """Test the interval must be positive."""
        with pytest.raises(ValueError, match="must be positive"):
            await scheduler.start("t1", unit("echo"), interval)

        assert not scheduler.is_running("t1")

    async def test_stop_unknown_task_is_a_no_op(self, scheduler: Scheduler, recorded_events: list) -> None:
        """Test stopping a name that is not scheduled changes nothing."""
        await scheduler.stop("never-scheduled")

        assert not [event for event in recorded_events if event.event_type == "scheduler:stopped"]

    async def test_stop_all(self, scheduler: Scheduler, unit: Any, recorded_events: list) -> None:
        """Test stop without a name unschedules every task."""
        await scheduler.start("a", unit("echo"), 60)
        await scheduler.start("b", unit("echo"), 60)
        assert scheduler.is_running()
        assert [task.name for task in scheduler.list_tasks()] == ["a", "b"]

        await scheduler.stop()

        assert not scheduler.is_running()
        assert scheduler.list_tasks() == []
        stopped = [event.payload["task_name"] for event in recorded_events if event.event_type == "scheduler:stopped"]
        assert stopped == ["a", "b"]

    async def test_stop_kills_run_in_flight(self, scheduler: Scheduler, unit: Any) -> None:
        """Test unscheduling a task kills its running tick."""
        calls = []
        task = await scheduler.start("slow", unit("slow"), 0.05, lambda *args: calls.append(args), data={"seconds": 30})

        async def dispatched() -> None:
            while task.run_count == 0:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(dispatched(), 5)
        runner = scheduler.get_runner("slow")

        await asyncio.wait_for(scheduler.stop("slow"), 10)

        assert runner.get_status() is ExecutionStatus.IDLE
        assert calls == []

    async def test_started_event(self, scheduler: Scheduler, unit: Any, recorded_events: list) -> None:
        """Test scheduling is published with the resolved unit reference."""
        scheduler.units.register("echo", unit("echo"))

        await scheduler.start("t1", "echo", 30)

        started = next(event for event in recorded_events if event.event_type == "scheduler:started")
        assert started.payload == {"task_name": "t1", "unit_reference": unit("echo"), "interval_seconds": 30.0}
