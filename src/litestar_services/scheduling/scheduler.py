"""Interval scheduler built on task runners.

Every scheduled task owns a timer (an asyncio task) and a dedicated task
runner. A tick that arrives while the previous run of the same task is still
in flight is rejected by the runner's reentrancy guard and dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from dataclasses import replace
from datetime import datetime, timezone
from functools import partial
from typing import TYPE_CHECKING, Any

from litestar_services.core.models import ScheduledTask
from litestar_services.exceptions import DuplicateTaskError
from litestar_services.worker.config import WorkerSettings
from litestar_services.worker.runner import TaskRunner
from litestar_services.worker.units import UnitRegistry

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar_services.core.events import EventBus
    from litestar_services.core.types import CompletionCallback, ExecutionStatus

__all__ = ["Scheduler"]


class Scheduler:
    """Fires named units of work every ``interval_seconds``.

    The first tick fires one interval after ``start``. Ticks are fixed-rate:
    the next deadline is computed from the previous deadline, not from the
    end of the previous run, so slow runs do not make the schedule drift.

    Attributes:
        event_bus: Optional event bus implementing ``emit``.
        units: Registry shared with the per-task runners.
        worker_settings: Template copied into every per-task runner.
        logger: Logger (or adapter) the scheduler writes to.

    Example:
        >>> scheduler = Scheduler()
        >>> await scheduler.start("cleanup", "myapp.units.cleanup:purge", 60)
        >>> scheduler.is_running("cleanup")
        True
        >>> await scheduler.stop("cleanup")
    """

    def __init__(
        self,
        event_bus: EventBus | None = None,
        units: UnitRegistry | None = None,
        worker_settings: WorkerSettings | None = None,
        logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
    ) -> None:
        """Initialize a scheduler with no tasks.

        Args:
            event_bus: Optional event bus for scheduler and worker events.
            units: Optional registry of named units.
            worker_settings: Optional settings template for per-task runners.
            logger: Optional logger replacing the module logger.
        """
        self.event_bus = event_bus
        self.units = units if units is not None else UnitRegistry()
        self.worker_settings = worker_settings or WorkerSettings()
        self.logger = logger or logging.getLogger(__name__)
        self._tasks: dict[str, ScheduledTask] = {}
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._runners: dict[str, TaskRunner] = {}

    async def start(
        self,
        task_name: str,
        unit_reference: str | Callable[..., Any],
        interval_seconds: float,
        callback: CompletionCallback | None = None,
        *,
        data: Any = None,
    ) -> ScheduledTask:
        """Schedule a unit of work to run every ``interval_seconds``.

        Args:
            task_name: Unique name of the task.
            unit_reference: Registered name, unit reference or module-level callable.
            interval_seconds: Seconds between ticks. Must be positive.
            callback: Optional callback receiving ``(status, data)`` after each run.
            data: Input data passed to the unit on every tick.

        Returns:
            The scheduled task.

        Raises:
            DuplicateTaskError: If ``task_name`` is already scheduled.
            ValueError: If ``interval_seconds`` is not positive.
        """
        if task_name in self._tasks:
            error = DuplicateTaskError(task_name)
            self.logger.warning("%s", error)
            await self._emit("scheduler:start:error", task_name=task_name, error=str(error))
            raise error

        if interval_seconds <= 0:
            msg = f"interval_seconds must be positive, got {interval_seconds}"
            raise ValueError(msg)

        task = ScheduledTask(
            name=task_name,
            unit_reference=self.units.resolve(unit_reference),
            interval_seconds=float(interval_seconds),
            callback=callback,
            data=data,
        )
        runner = TaskRunner(
            settings=replace(self.worker_settings),
            event_bus=self.event_bus,
            units=self.units,
            logger=self.logger,
            name=f"scheduler:{task_name}",
        )

        self._tasks[task_name] = task
        self._runners[task_name] = runner
        self._timers[task_name] = asyncio.create_task(self._tick_loop(task, runner), name=f"scheduler:{task_name}")

        self.logger.info(
            "Scheduled '%s' to run '%s' every %ss", task_name, task.unit_reference, task.interval_seconds
        )
        await self._emit(
            "scheduler:started",
            task_name=task_name,
            unit_reference=task.unit_reference,
            interval_seconds=task.interval_seconds,
        )
        return task

    async def stop(self, task_name: str | None = None) -> None:
        """Unschedule one task, or every task when no name is given.

        The task's timer is cancelled and its runner stopped, killing a run in
        flight. Unknown names are ignored.

        Args:
            task_name: Name of the task to stop, or None for all tasks.
        """
        names = list(self._tasks) if task_name is None else [task_name]
        for name in names:
            if self._tasks.pop(name, None) is None:
                self.logger.debug("Ignoring stop of unknown task '%s'", name)
                continue

            timer = self._timers.pop(name)
            runner = self._runners.pop(name)

            timer.cancel()
            if timer is not asyncio.current_task():
                with contextlib.suppress(asyncio.CancelledError):
                    await timer
            await runner.stop()

            self.logger.info("Stopped scheduled task '%s'", name)
            await self._emit("scheduler:stopped", task_name=name)

    def is_running(self, task_name: str | None = None) -> bool:
        """Report whether a task (or any task) is scheduled.

        Args:
            task_name: Name of the task, or None to ask about any task.

        Returns:
            True if the task is scheduled, regardless of whether a tick is in flight.
        """
        if task_name is None:
            return bool(self._tasks)
        return task_name in self._tasks

    def get_task(self, task_name: str) -> ScheduledTask | None:
        """Return a scheduled task by name, or None."""
        return self._tasks.get(task_name)

    def list_tasks(self) -> list[ScheduledTask]:
        """Return all scheduled tasks in scheduling order."""
        return list(self._tasks.values())

    def get_runner(self, task_name: str) -> TaskRunner | None:
        """Return the task runner dedicated to a scheduled task, or None."""
        return self._runners.get(task_name)

    async def _tick_loop(self, task: ScheduledTask, runner: TaskRunner) -> None:
        loop = asyncio.get_running_loop()
        interval = task.interval_seconds
        deadline = loop.time() + interval

        while True:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            deadline += interval

            # deadlines missed while the loop was blocked are not replayed
            now = loop.time()
            if deadline <= now:
                deadline += interval * (int((now - deadline) // interval) + 1)

            try:
                await self._tick(task, runner)
            except Exception:
                self.logger.exception("Tick of scheduled task '%s' failed", task.name)

    async def _tick(self, task: ScheduledTask, runner: TaskRunner) -> None:
        dispatched = await runner.start(task.unit_reference, task.data, partial(self._on_run_complete, task))
        if dispatched:
            task.run_count += 1
            task.last_run_at = datetime.now(timezone.utc)
        else:
            task.skipped_count += 1
            self.logger.info("Skipped tick of '%s': previous run still in progress", task.name)

    async def _on_run_complete(self, task: ScheduledTask, status: ExecutionStatus, data: Any) -> None:
        task.last_status = status
        if task.callback is not None:
            try:
                outcome = task.callback(status, data)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                self.logger.exception("Callback of scheduled task '%s' failed", task.name)

        await self._emit(
            "scheduler:taskExecuted",
            task_name=task.name,
            unit_reference=task.unit_reference,
            status=status.value,
            data=data,
        )

    async def _emit(self, event_type: str, **payload: Any) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event_type, **payload)
