"""Data Transfer Objects for the services web API.

This module defines DTOs for serializing and deserializing scheduler,
workflow, worker and registry data in REST API requests and responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

__all__ = [
    "AnalyticsDTO",
    "DefineWorkflowDTO",
    "RunAnalyticsDTO",
    "RunWorkflowDTO",
    "ScheduleTaskDTO",
    "ScheduledTaskDTO",
    "SchedulerStatusDTO",
    "ServiceInstanceDTO",
    "TaskRecordDTO",
    "WorkerStatusDTO",
    "WorkflowDefinitionDTO",
    "WorkflowResultDTO",
]


@dataclass
class ScheduleTaskDTO:
    """DTO for scheduling a task.

    Attributes:
        name: Unique name of the task.
        unit_reference: Registered name or unit reference to run.
        interval_seconds: Seconds between runs.
        data: Input data passed to the unit on every run.
    """

    name: str
    unit_reference: str
    interval_seconds: float
    data: Any = None


@dataclass
class ScheduledTaskDTO:
    """DTO for a scheduled task.

    Attributes:
        name: Name of the task.
        unit_reference: Unit dispatched on each tick.
        interval_seconds: Seconds between ticks.
        created_at: When the task was scheduled.
        run_count: Ticks that dispatched work.
        skipped_count: Ticks dropped because the previous run was in flight.
        last_status: Terminal status of the most recent run.
        last_run_at: When the most recent tick dispatched work.
    """

    name: str
    unit_reference: str
    interval_seconds: float
    created_at: datetime
    run_count: int
    skipped_count: int
    last_status: str | None = None
    last_run_at: datetime | None = None


@dataclass
class SchedulerStatusDTO:
    """DTO for scheduler status.

    Attributes:
        running: Whether any task is scheduled.
        task_count: Number of scheduled tasks.
        tasks: Names of the scheduled tasks.
    """

    running: bool
    task_count: int
    tasks: list[str] = field(default_factory=list)


@dataclass
class DefineWorkflowDTO:
    """DTO for defining a workflow.

    Attributes:
        name: Unique name of the workflow.
        steps: Registered names or unit references, in execution order.
    """

    name: str
    steps: list[str]


@dataclass
class WorkflowDefinitionDTO:
    """DTO for a workflow definition.

    Attributes:
        name: Workflow name.
        steps: Unit references in execution order.
        defined_at: When the definition was stored.
    """

    name: str
    steps: list[str]
    defined_at: datetime


@dataclass
class RunWorkflowDTO:
    """DTO for running a workflow.

    Attributes:
        input_data: Input of the first step.
    """

    input_data: Any = None


@dataclass
class WorkflowResultDTO:
    """DTO for a finished workflow run.

    Attributes:
        workflow_name: Name of the workflow that ran.
        status: Final status of the run.
        data: Output of the last step.
        updates: Status updates delivered during the run, in order.
    """

    workflow_name: str
    status: str
    data: Any = None
    updates: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class TaskRecordDTO:
    """DTO for a task runner history entry.

    Attributes:
        task_id: Run ID.
        unit_reference: The unit that was executed.
        status: Current or final status.
        started_at: When the run started.
        completed_at: When the run finished, if it did.
        error: Failure description, if any.
    """

    task_id: UUID
    unit_reference: str
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    error: str | None = None


@dataclass
class WorkerStatusDTO:
    """DTO for task runner status.

    Attributes:
        name: Runner name.
        status: Current runner status.
        settings: Current runner settings.
        history: Recent runs, newest first.
    """

    name: str
    status: str
    settings: dict[str, Any]
    history: list[TaskRecordDTO] = field(default_factory=list)


@dataclass
class ServiceInstanceDTO:
    """DTO for a constructed service instance.

    Attributes:
        key: ``service:provider:instance`` key.
        service_name: Name of the service.
        provider_type: Name of the provider.
        instance_name: Name of the instance.
        dependency_names: Services injected into it.
        created_at: When it was constructed.
    """

    key: str
    service_name: str
    provider_type: str
    instance_name: str
    dependency_names: list[str]
    created_at: datetime


@dataclass
class RunAnalyticsDTO:
    """DTO for the run counters of one unit, scheduled task or workflow.

    Attributes:
        name: Unit reference, task name or workflow name.
        run_count: Runs started.
        completed_count: Runs that completed.
        error_count: Runs that failed.
        active_count: Runs in flight.
        average_duration: Mean seconds of the finished runs.
        last_run: When the most recent run started.
    """

    name: str
    run_count: int
    completed_count: int
    error_count: int
    active_count: int
    average_duration: float
    last_run: datetime | None = None


@dataclass
class AnalyticsDTO:
    """DTO for the run analytics of a service.

    Attributes:
        total: Runs started.
        completed: Runs that completed.
        errors: Runs that failed.
        active: Runs in flight.
        completed_percentage: Share of completed runs in percent.
        error_percentage: Share of failed runs in percent.
        last_run: When the most recent run started.
        entries: Per-name counters, most recently run first.
    """

    total: int
    completed: int
    errors: int
    active: int
    completed_percentage: float
    error_percentage: float
    last_run: datetime | None = None
    entries: list[RunAnalyticsDTO] = field(default_factory=list)
