"""REST API controllers for the service container.

This module provides four controller classes:
- SchedulingController: Schedule, list and unschedule periodic tasks
- WorkflowController: Define, list and run workflows, and report their analytics
- WorkingController: Inspect and configure the working service
- RegistryController: List the services the registry has built
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from litestar import Controller, delete, get, post, put
from litestar.exceptions import NotFoundException, ValidationException

from litestar_services.core.models import ScheduledTask, TaskRecord, WorkflowDefinition, WorkflowStatusUpdate
from litestar_services.core.types import WorkflowRunStatus
from litestar_services.registry import ServiceRegistry  # noqa: TC001 - needed for DI
from litestar_services.scheduling import Scheduler  # noqa: TC001 - needed for DI
from litestar_services.worker import TaskRunner  # noqa: TC001 - needed for DI
from litestar_services.web.dto import (
    AnalyticsDTO,
    DefineWorkflowDTO,
    RunAnalyticsDTO,
    RunWorkflowDTO,
    ScheduledTaskDTO,
    SchedulerStatusDTO,
    ScheduleTaskDTO,
    ServiceInstanceDTO,
    TaskRecordDTO,
    WorkerStatusDTO,
    WorkflowDefinitionDTO,
    WorkflowResultDTO,
)
from litestar_services.workflow import WorkflowRunner  # noqa: TC001 - needed for DI

if TYPE_CHECKING:
    from litestar_services.providers import RunAnalytics, RunStats

__all__ = [
    "RegistryController",
    "SchedulingController",
    "WorkflowController",
    "WorkingController",
]


def _scheduled_task_dto(task: ScheduledTask) -> ScheduledTaskDTO:
    return ScheduledTaskDTO(
        name=task.name,
        unit_reference=task.unit_reference,
        interval_seconds=task.interval_seconds,
        created_at=task.created_at,
        run_count=task.run_count,
        skipped_count=task.skipped_count,
        last_status=str(task.last_status) if task.last_status else None,
        last_run_at=task.last_run_at,
    )


def _workflow_definition_dto(definition: WorkflowDefinition) -> WorkflowDefinitionDTO:
    return WorkflowDefinitionDTO(
        name=definition.name,
        steps=list(definition.steps),
        defined_at=definition.defined_at,
    )


def _task_record_dto(record: TaskRecord) -> TaskRecordDTO:
    return TaskRecordDTO(
        task_id=record.task_id,
        unit_reference=record.unit_reference,
        status=str(record.status),
        started_at=record.started_at,
        completed_at=record.completed_at,
        error=record.error,
    )


def _run_analytics_dto(stats: RunStats) -> RunAnalyticsDTO:
    return RunAnalyticsDTO(
        name=stats.name,
        run_count=stats.run_count,
        completed_count=stats.completed_count,
        error_count=stats.error_count,
        active_count=stats.active_count,
        average_duration=stats.average_duration,
        last_run=stats.last_run,
    )


def _analytics_dto(analytics: RunAnalytics, limit: int) -> AnalyticsDTO:
    return AnalyticsDTO(
        **analytics.get_stats(),
        entries=[_run_analytics_dto(stats) for stats in analytics.get_analytics(limit)],
    )


class SchedulingController(Controller):
    """API controller for the scheduling service.

    Tags: Scheduling
    """

    path = "/scheduling"
    tags: ClassVar[list[str]] = ["Scheduling"]

    @get("/tasks")
    async def list_tasks(self, scheduler: Scheduler) -> list[ScheduledTaskDTO]:
        """List scheduled tasks.

        Args:
            scheduler: Injected scheduler.

        Returns:
            List of scheduled task DTOs.
        """
        return [_scheduled_task_dto(task) for task in scheduler.list_tasks()]

    @post("/tasks", dto=None, return_dto=None)
    async def schedule_task(self, data: ScheduleTaskDTO, scheduler: Scheduler) -> ScheduledTaskDTO:
        """Schedule a unit of work to run periodically.

        Args:
            data: Task name, unit reference, interval and input data.
            scheduler: Injected scheduler.

        Returns:
            Scheduled task DTO.

        Raises:
            ValidationException: If the interval is not positive.
        """
        try:
            task = await scheduler.start(data.name, data.unit_reference, data.interval_seconds, data=data.data)
        except ValueError as e:
            raise ValidationException(detail=str(e)) from e
        return _scheduled_task_dto(task)

    @delete("/tasks/{name:str}")
    async def unschedule_task(self, name: str, scheduler: Scheduler) -> None:
        """Unschedule a task, killing its run in flight.

        Args:
            name: The task name.
            scheduler: Injected scheduler.

        Raises:
            NotFoundException: If no task of that name is scheduled.
        """
        if not scheduler.is_running(name):
            raise NotFoundException(detail=f"Task '{name}' is not scheduled")
        await scheduler.stop(name)

    @get("/status")
    async def get_status(self, scheduler: Scheduler) -> SchedulerStatusDTO:
        """Get scheduler status.

        Args:
            scheduler: Injected scheduler.

        Returns:
            Scheduler status DTO.
        """
        tasks = scheduler.list_tasks()
        return SchedulerStatusDTO(
            running=scheduler.is_running(),
            task_count=len(tasks),
            tasks=[task.name for task in tasks],
        )


    @get("/analytics")
    async def get_analytics(self, service_registry: ServiceRegistry, limit: int = 100) -> AnalyticsDTO:
        """Get run counters of the scheduled tasks.

        Args:
            service_registry: Injected service registry.
            limit: Maximum number of tasks to list.

        Returns:
            Analytics DTO.
        """
        analytics = await service_registry.analytics()
        return _analytics_dto(analytics.scheduling, limit)


class WorkflowController(Controller):
    """API controller for the workflow service.

    Tags: Workflows
    """

    path = "/workflow"
    tags: ClassVar[list[str]] = ["Workflows"]

    @get("/workflows")
    async def list_workflows(self, workflow_runner: WorkflowRunner) -> list[WorkflowDefinitionDTO]:
        """List workflow definitions.

        Args:
            workflow_runner: Injected workflow runner.

        Returns:
            List of workflow definition DTOs.
        """
        return [_workflow_definition_dto(definition) for definition in workflow_runner.list_workflows()]

    @post("/workflows", dto=None, return_dto=None)
    async def define_workflow(self, data: DefineWorkflowDTO, workflow_runner: WorkflowRunner) -> WorkflowDefinitionDTO:
        """Define or redefine a workflow.

        Args:
            data: Workflow name and steps.
            workflow_runner: Injected workflow runner.

        Returns:
            Workflow definition DTO.
        """
        definition = await workflow_runner.define_workflow(data.name, data.steps)
        return _workflow_definition_dto(definition)

    @post("/workflows/{name:str}/run", dto=None, return_dto=None)
    async def run_workflow(
        self,
        name: str,
        data: RunWorkflowDTO,
        workflow_runner: WorkflowRunner,
    ) -> WorkflowResultDTO:
        """Run a workflow and wait for its result.

        Args:
            name: The workflow name.
            data: Input of the first step.
            workflow_runner: Injected workflow runner.

        Returns:
            Workflow result DTO with the status updates of the run.
        """
        updates: list[dict[str, Any]] = []

        def record(update: WorkflowStatusUpdate) -> None:
            updates.append(
                {
                    "status": str(update.status),
                    "step_index": update.step_index,
                    "data": update.data,
                    "error": update.error,
                }
            )

        result = await workflow_runner.run_workflow(name, data.input_data, record)
        return WorkflowResultDTO(
            workflow_name=name,
            status=str(WorkflowRunStatus.COMPLETED),
            data=result,
            updates=updates,
        )


    @get("/analytics")
    async def get_analytics(self, service_registry: ServiceRegistry, limit: int = 100) -> AnalyticsDTO:
        """Get run counters of the workflows.

        Args:
            service_registry: Injected service registry.
            limit: Maximum number of workflows to list.

        Returns:
            Analytics DTO.
        """
        analytics = await service_registry.analytics()
        return _analytics_dto(analytics.workflow, limit)

    @get("/analytics/{name:str}")
    async def get_workflow_analytics(self, name: str, service_registry: ServiceRegistry) -> RunAnalyticsDTO:
        """Get run counters of one workflow.

        Args:
            name: The workflow name.
            service_registry: Injected service registry.

        Returns:
            Run analytics DTO.

        Raises:
            NotFoundException: If the workflow never ran.
        """
        analytics = await service_registry.analytics()
        stats = analytics.workflow.get(name)
        if stats is None:
            raise NotFoundException(detail=f"No analytics for workflow '{name}'")
        return _run_analytics_dto(stats)


class WorkingController(Controller):
    """API controller for the working service.

    Tags: Working
    """

    path = "/working"
    tags: ClassVar[list[str]] = ["Working"]

    @get("/status")
    async def get_status(self, task_runner: TaskRunner) -> WorkerStatusDTO:
        """Get the working service's status, settings and recent runs.

        Args:
            task_runner: Injected task runner.

        Returns:
            Worker status DTO.
        """
        return WorkerStatusDTO(
            name=task_runner.name,
            status=str(await task_runner.query_status()),
            settings=task_runner.get_settings(),
            history=[_task_record_dto(record) for record in task_runner.get_task_history()],
        )

    @put("/settings")
    async def save_settings(self, data: dict[str, Any], task_runner: TaskRunner) -> dict[str, Any]:
        """Update the working service's settings.

        Unknown settings and null values are ignored.

        Args:
            data: Proposed new values keyed by setting name.
            task_runner: Injected task runner.

        Returns:
            The settings after the update.

        Raises:
            ValidationException: If a value has the wrong type; nothing is changed.
        """
        try:
            task_runner.save_settings(data)
        except ValueError as e:
            raise ValidationException(detail=str(e)) from e
        return task_runner.get_settings()

    @get("/analytics")
    async def get_analytics(self, service_registry: ServiceRegistry, limit: int = 100) -> AnalyticsDTO:
        """Get run counters of every unit.

        Args:
            service_registry: Injected service registry.
            limit: Maximum number of units to list.

        Returns:
            Analytics DTO.
        """
        analytics = await service_registry.analytics()
        return _analytics_dto(analytics.working, limit)


class RegistryController(Controller):
    """API controller for the service registry.

    Tags: Registry
    """

    path = "/registry"
    tags: ClassVar[list[str]] = ["Registry"]

    @get("/services")
    async def list_services(self, service_registry: ServiceRegistry) -> list[ServiceInstanceDTO]:
        """List the services the registry has built.

        Args:
            service_registry: Injected service registry.

        Returns:
            List of service instance DTOs.
        """
        return [
            ServiceInstanceDTO(
                key=str(info.key),
                service_name=info.key.service_name,
                provider_type=info.key.provider_type,
                instance_name=info.key.instance_name,
                dependency_names=info.dependency_names,
                created_at=info.created_at,
            )
            for info in service_registry.list_instances()
        ]
