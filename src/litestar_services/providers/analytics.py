"""Run analytics collected from service events.

The analytics service listens on the registry's event bus and keeps per-name
counters of unit runs, scheduled task runs and workflow runs: how often each
ran, how often it completed or failed, how many runs are in flight and how
long finished runs took.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from litestar_services.core.types import ExecutionStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from litestar_services.core.events import EventBus, ServiceEvent

__all__ = [
    "RunAnalytics",
    "RunStats",
    "SchedulingAnalytics",
    "ServiceAnalytics",
    "WorkflowAnalytics",
    "WorkingAnalytics",
]

SCHEDULER_RUNNER_PREFIX = "scheduler:"


@dataclass
class RunStats:
    """Counters of one unit, scheduled task or workflow.

    Attributes:
        name: Unit reference, task name or workflow name.
        run_count: Runs started.
        completed_count: Runs that completed.
        error_count: Runs that failed.
        total_duration: Seconds spent in finished runs.
        last_run: When the most recent run started.
        active: Start times of the runs in flight, keyed by run ID.
    """

    name: str
    run_count: int = 0
    completed_count: int = 0
    error_count: int = 0
    total_duration: float = 0.0
    last_run: datetime | None = None
    active: dict[Hashable, float] = field(default_factory=dict)

    @property
    def active_count(self) -> int:
        return len(self.active)

    @property
    def average_duration(self) -> float:
        """Mean duration in seconds of the finished runs, failures included."""
        finished = self.completed_count + self.error_count
        return self.total_duration / finished if finished else 0.0


class RunAnalytics:
    """Per-name run counters fed by event bus subscriptions.

    Subclasses declare which events they listen to in :meth:`bindings` and
    translate them into :meth:`record_start`, :meth:`record_end` and
    :meth:`discard` calls. A run that ends without a recorded start is ignored.
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        """Initialize the counters and subscribe to ``event_bus`` when given.

        Args:
            event_bus: Event bus to listen on.
        """
        self.event_bus = event_bus
        self._stats: dict[str, RunStats] = {}
        self._owners: dict[Hashable, str] = {}
        self._subscriptions: list[tuple[str, Callable[[ServiceEvent], None]]] = []
        if event_bus is not None:
            for event_type, handler in self.bindings():
                event_bus.on(event_type, handler)
                self._subscriptions.append((event_type, handler))

    def bindings(self) -> list[tuple[str, Callable[[ServiceEvent], None]]]:
        """Return the ``(event_type, handler)`` pairs to subscribe."""
        return []

    def track(self, name: str) -> RunStats:
        """Return the counters of ``name``, creating empty ones."""
        if name not in self._stats:
            self._stats[name] = RunStats(name)
        return self._stats[name]

    def record_start(self, name: str, run_id: Hashable) -> None:
        stats = self.track(name)
        stats.run_count += 1
        stats.last_run = datetime.now(timezone.utc)
        stats.active[run_id] = time.monotonic()
        self._owners[run_id] = name

    def record_end(self, run_id: Hashable, completed: bool) -> None:
        name = self._owners.pop(run_id, None)
        if name is None:
            return
        stats = self._stats[name]
        started = stats.active.pop(run_id)
        stats.total_duration += time.monotonic() - started
        if completed:
            stats.completed_count += 1
        else:
            stats.error_count += 1

    def discard(self, run_id: Hashable) -> None:
        """Drop a run in flight without counting it as finished."""
        name = self._owners.pop(run_id, None)
        if name is not None:
            self._stats[name].active.pop(run_id, None)

    def get(self, name: str) -> RunStats | None:
        """Return the counters of one name, or None."""
        return self._stats.get(name)

    def get_analytics(self, limit: int = 100) -> list[RunStats]:
        """Return counters, most recently run first.

        Args:
            limit: Maximum number of entries to return.

        Returns:
            List of counters; names that never ran come last.
        """
        never = datetime.min.replace(tzinfo=timezone.utc)
        entries = sorted(self._stats.values(), key=lambda stats: stats.last_run or never, reverse=True)
        return entries[:limit]

    def get_stats(self) -> dict[str, Any]:
        """Return totals over every name.

        Returns:
            ``total``, ``completed``, ``errors`` and ``active`` run counts, the
            completed and error shares of ``total`` in percent, and ``last_run``.
        """
        entries = list(self._stats.values())
        total = sum(stats.run_count for stats in entries)
        completed = sum(stats.completed_count for stats in entries)
        errors = sum(stats.error_count for stats in entries)
        last_runs = [stats.last_run for stats in entries if stats.last_run is not None]
        return {
            "total": total,
            "completed": completed,
            "errors": errors,
            "active": sum(stats.active_count for stats in entries),
            "completed_percentage": round(completed / total * 100, 2) if total else 0.0,
            "error_percentage": round(errors / total * 100, 2) if total else 0.0,
            "last_run": max(last_runs) if last_runs else None,
        }

    def clear(self) -> None:
        """Drop every counter, including the runs in flight."""
        self._stats.clear()
        self._owners.clear()

    def close(self) -> None:
        """Unsubscribe from the event bus."""
        if self.event_bus is not None:
            for event_type, handler in self._subscriptions:
                self.event_bus.off(event_type, handler)
        self._subscriptions.clear()


def _finished(event: ServiceEvent) -> bool | None:
    status = event.payload.get("status")
    if status == ExecutionStatus.COMPLETED.value:
        return True
    if status == ExecutionStatus.ERROR.value:
        return False
    return None


class WorkingAnalytics(RunAnalytics):
    """Counters of every unit run on the bus, keyed by unit reference.

    Runs that fail before they are dispatched (unknown unit, spawn failure)
    never emit ``worker:start`` and are not counted.
    """

    def bindings(self) -> list[tuple[str, Callable[[ServiceEvent], None]]]:
        return [
            ("worker:start", self._on_start),
            ("worker:status", self._on_status),
            ("worker:stopped", self._on_stopped),
        ]

    def _on_start(self, event: ServiceEvent) -> None:
        self.record_start(event.payload["unit_reference"], event.payload["task_id"])

    def _on_status(self, event: ServiceEvent) -> None:
        completed = _finished(event)
        if completed is not None:
            self.record_end(event.payload["task_id"], completed)

    def _on_stopped(self, event: ServiceEvent) -> None:
        if event.payload.get("task_id") is not None:
            self.discard(event.payload["task_id"])


class SchedulingAnalytics(WorkingAnalytics):
    """Counters of scheduled task runs, keyed by task name.

    A task is listed as soon as it is scheduled. Its runs are the ones
    executed by the task's dedicated runner.
    """

    def bindings(self) -> list[tuple[str, Callable[[ServiceEvent], None]]]:
        return [("scheduler:started", self._on_scheduled), *super().bindings()]

    def _on_scheduled(self, event: ServiceEvent) -> None:
        self.track(event.payload["task_name"])

    def _on_start(self, event: ServiceEvent) -> None:
        runner = str(event.payload.get("runner", ""))
        if runner.startswith(SCHEDULER_RUNNER_PREFIX):
            self.record_start(runner[len(SCHEDULER_RUNNER_PREFIX) :], event.payload["task_id"])


class WorkflowAnalytics(RunAnalytics):
    """Counters of workflow runs, keyed by workflow name.

    Runs of unknown workflows are rejected before they start and are not
    counted.
    """

    def bindings(self) -> list[tuple[str, Callable[[ServiceEvent], None]]]:
        return [
            ("workflow:start", self._on_start),
            ("workflow:complete", self._on_complete),
            ("workflow:error", self._on_error),
        ]

    def _on_start(self, event: ServiceEvent) -> None:
        self.record_start(event.payload["workflow_name"], event.payload["run_id"])

    def _on_complete(self, event: ServiceEvent) -> None:
        self.record_end(event.payload["run_id"], True)

    def _on_error(self, event: ServiceEvent) -> None:
        if event.payload.get("run_id") is not None:
            self.record_end(event.payload["run_id"], False)


class ServiceAnalytics:
    """Analytics service bundling the working, scheduling and workflow counters.

    Example:
        >>> analytics = ServiceAnalytics(event_bus)
        >>> await runner.start("myapp.units.report:build")
        >>> analytics.working.get_stats()["total"]
        1
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self.working = WorkingAnalytics(event_bus)
        self.scheduling = SchedulingAnalytics(event_bus)
        self.workflow = WorkflowAnalytics(event_bus)

    def clear(self) -> None:
        """Drop every counter."""
        for analytics in (self.working, self.scheduling, self.workflow):
            analytics.clear()

    def close(self) -> None:
        """Unsubscribe every counter from the event bus."""
        for analytics in (self.working, self.scheduling, self.workflow):
            analytics.close()
