"""Concrete data models for litestar-services.

This module provides the dataclasses that describe submitted work, scheduled
tasks, workflow definitions and runs, and registry keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, NamedTuple
from uuid import UUID, uuid4

from litestar_services.core.types import ExecutionStatus, MessageType, WorkflowRunStatus

__all__ = [
    "DEFAULT_INSTANCE_NAME",
    "ScheduledTask",
    "ServiceInstanceInfo",
    "ServiceKey",
    "TaskDescriptor",
    "TaskRecord",
    "WorkflowDefinition",
    "WorkflowRun",
    "WorkflowStatusUpdate",
]

DEFAULT_INSTANCE_NAME = "default"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TaskDescriptor:
    """A unit of work submitted to a task runner.

    Attributes:
        unit_reference: Import path, file path or registered name of the unit.
        input_data: Value passed to the unit's entry function.
    """

    unit_reference: str
    input_data: Any = None

    def to_message(self) -> dict[str, Any]:
        """Build the ``start`` message sent to an execution context.

        Returns:
            The message dictionary.
        """
        return {
            "type": MessageType.START.value,
            "unit_reference": self.unit_reference,
            "input_data": self.input_data,
        }


@dataclass
class TaskRecord:
    """History entry for one run of a task runner.

    Attributes:
        task_id: Unique identifier of the run.
        unit_reference: The unit that was executed.
        status: Current or final status of the run.
        started_at: When the context was spawned.
        completed_at: When the run reached a terminal status or was stopped.
        result: Return value of the unit, if it completed.
        error: Failure description, if it errored.
    """

    task_id: UUID
    unit_reference: str
    status: ExecutionStatus
    started_at: datetime
    completed_at: datetime | None = None
    result: Any = None
    error: str | None = None


@dataclass
class ScheduledTask:
    """A named unit of work re-dispatched on a fixed interval.

    Attributes:
        name: Unique name of the task within its scheduler.
        unit_reference: The unit dispatched on each tick.
        interval_seconds: Seconds between ticks.
        callback: Optional callback receiving ``(status, data)`` for each tick.
        data: Input data passed to the unit on each tick.
        created_at: When the task was scheduled.
        run_count: Number of ticks that dispatched work.
        skipped_count: Number of ticks dropped because the previous tick was still running.
        last_status: Terminal status of the most recent completed tick.
        last_run_at: When the most recent tick dispatched work.
    """

    name: str
    unit_reference: str
    interval_seconds: float
    callback: Any = None
    data: Any = None
    created_at: datetime = field(default_factory=_utcnow)
    run_count: int = 0
    skipped_count: int = 0
    last_status: ExecutionStatus | None = None
    last_run_at: datetime | None = None


@dataclass(frozen=True)
class WorkflowDefinition:
    """A named, ordered sequence of units of work.

    Attributes:
        name: Unique name of the workflow.
        steps: Unit references, executed in order.
        defined_at: When the definition was stored.
    """

    name: str
    steps: tuple[str, ...]
    defined_at: datetime = field(default_factory=_utcnow, compare=False)

    def __len__(self) -> int:
        return len(self.steps)


@dataclass
class WorkflowRun:
    """Transient state of one sequential execution of a workflow.

    Attributes:
        workflow_name: Name of the workflow being run.
        accumulated_data: Output of the last completed step (initially the run input).
        run_id: Unique identifier of the run.
        current_step_index: Index of the step being executed.
        status: Current status of the run.
        started_at: When the run began.
    """

    workflow_name: str
    accumulated_data: Any = None
    run_id: UUID = field(default_factory=uuid4)
    current_step_index: int = 0
    status: WorkflowRunStatus = WorkflowRunStatus.RUNNING
    started_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class WorkflowStatusUpdate:
    """Progress report delivered to a workflow run's status callback.

    Attributes:
        status: ``step-completed``, ``error`` or ``completed``.
        workflow_name: Name of the workflow being run.
        step_index: Index of the step the update refers to, if any.
        data: Accumulated data after the step, or the final result.
        error: Failure description for ``error`` updates.
    """

    status: WorkflowRunStatus
    workflow_name: str
    step_index: int | None = None
    data: Any = None
    error: str | None = None


class ServiceKey(NamedTuple):
    """Composite key of a singleton service instance."""

    service_name: str
    provider_type: str
    instance_name: str = DEFAULT_INSTANCE_NAME

    def __str__(self) -> str:
        return f"{self.service_name}:{self.provider_type}:{self.instance_name}"


@dataclass
class ServiceInstanceInfo:
    """Metadata about a constructed service instance.

    Attributes:
        key: The composite key the instance is cached under.
        instance: The service instance itself.
        dependency_names: Names of the services injected into it.
        created_at: When the instance was constructed.
    """

    key: ServiceKey
    instance: Any
    dependency_names: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
