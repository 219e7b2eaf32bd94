"""Sequential workflow runner.

A workflow is a named, ordered list of unit references. Running it dispatches
the steps one at a time through a task runner private to the run; the result
of each step becomes the input of the next. The first failing step aborts the
run.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from litestar_services.core.models import WorkflowDefinition, WorkflowRun, WorkflowStatusUpdate
from litestar_services.core.settings import apply_settings, describe_settings
from litestar_services.core.types import ExecutionStatus, WorkflowRunStatus
from litestar_services.exceptions import StepError, WorkflowNotFoundError, WorkflowValidationError
from litestar_services.worker.config import WorkerSettings
from litestar_services.worker.runner import TaskRunner
from litestar_services.worker.units import UnitRegistry, reference_for
from litestar_services.workflow.config import WorkflowSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from uuid import UUID

    from litestar_services.core.events import EventBus
    from litestar_services.core.protocols import QueueingService

__all__ = ["WorkflowRunner"]


class WorkflowRunner:
    """Defines and runs sequential workflows.

    Definitions are kept in memory; redefining a name replaces it. Every call
    to :meth:`run_workflow` is an independent run with its own task runner, so
    concurrent runs of the same workflow do not share state.

    Attributes:
        event_bus: Optional event bus implementing ``emit``.
        units: Registry used to resolve named steps.
        settings: Workflow settings, see :class:`WorkflowSettings`.
        worker_settings: Template copied into every per-run task runner.
        queue: Optional queueing service receiving a record of each step dispatch.
        logger: Logger (or adapter) the runner writes to.

    Example:
        >>> workflows = WorkflowRunner()
        >>> await workflows.define_workflow(
        ...     "ingest",
        ...     ["myapp.units.fetch:run", "myapp.units.parse:run", "myapp.units.store:run"],
        ... )
        >>> await workflows.run_workflow("ingest", {"url": "https://example.com/feed"})
        {'stored': 42}
    """

    def __init__(
        self,
        event_bus: EventBus | None = None,
        units: UnitRegistry | None = None,
        settings: WorkflowSettings | None = None,
        worker_settings: WorkerSettings | None = None,
        queue: QueueingService | None = None,
        logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
    ) -> None:
        """Initialize a workflow runner with no definitions.

        Args:
            event_bus: Optional event bus for workflow and worker events.
            units: Optional registry of named units.
            settings: Workflow settings. Defaults to :class:`WorkflowSettings`.
            worker_settings: Optional settings template for per-run task runners.
            queue: Optional queueing service for step dispatch records.
            logger: Optional logger replacing the module logger.
        """
        self.event_bus = event_bus
        self.units = units if units is not None else UnitRegistry()
        self.settings = settings or WorkflowSettings()
        self.worker_settings = worker_settings or WorkerSettings()
        self.queue = queue
        self.logger = logger or logging.getLogger(__name__)
        self._workflows: dict[str, WorkflowDefinition] = {}
        self._active: dict[UUID, tuple[WorkflowRun, TaskRunner]] = {}

    async def define_workflow(
        self,
        name: str,
        steps: Sequence[str | Callable[..., Any]],
    ) -> WorkflowDefinition:
        """Store a workflow definition, replacing any previous one of that name.

        Steps are not checked for existence; a missing unit surfaces as a
        failing step when the workflow runs.

        Args:
            name: Unique name of the workflow.
            steps: Registered names, unit references or module-level callables.

        Returns:
            The stored definition.

        Raises:
            WorkflowValidationError: If the name or the steps are invalid.
        """
        errors: list[str] = []
        if not name or not isinstance(name, str):
            errors.append("Workflow name must be a non-empty string")

        references: list[str] = []
        if not steps:
            errors.append("Workflow must have at least one step")
        elif len(steps) > self.settings.max_steps:
            errors.append(f"Workflow has {len(steps)} steps, the maximum is {self.settings.max_steps}")
        else:
            for index, step in enumerate(steps):
                if isinstance(step, str):
                    if not step:
                        errors.append(f"Step {index} must be a non-empty unit reference")
                    references.append(step)
                    continue
                try:
                    references.append(reference_for(step))
                except ValueError as e:
                    errors.append(f"Step {index}: {e}")

        if errors:
            raise WorkflowValidationError(errors)

        definition = WorkflowDefinition(name=name, steps=tuple(references))
        replaced = name in self._workflows
        self._workflows[name] = definition

        action = "Redefined" if replaced else "Defined"
        self.logger.info("%s workflow '%s' with %d steps", action, name, len(definition))
        await self._emit("workflow:defined", workflow_name=name, steps=list(definition.steps))
        return definition

    async def run_workflow(
        self,
        name: str,
        initial_data: Any = None,
        status_callback: Callable[[WorkflowStatusUpdate], Any] | None = None,
    ) -> Any:
        """Run a workflow to completion.

        Args:
            name: Name of a defined workflow.
            initial_data: Input of the first step.
            status_callback: Optional sync or async callable receiving a
                :class:`WorkflowStatusUpdate` after each step, on failure and
                on completion.

        Returns:
            The output of the last step.

        Raises:
            WorkflowNotFoundError: If no workflow of that name is defined.
            StepError: If a step fails; later steps are not dispatched.
        """
        definition = self._workflows.get(name)
        if definition is None:
            error = WorkflowNotFoundError(name)
            self.logger.warning("%s", error)
            await self._emit("workflow:error", workflow_name=name, step_index=None, error=str(error))
            raise error

        run = WorkflowRun(workflow_name=name, accumulated_data=initial_data)
        runner = TaskRunner(
            settings=replace(self.worker_settings),
            event_bus=self.event_bus,
            units=self.units,
            logger=self.logger,
            name=f"workflow:{name}:{run.run_id.hex[:8]}",
        )
        self._active[run.run_id] = (run, runner)

        self.logger.info("Running workflow '%s' (run %s)", name, run.run_id)
        await self._emit("workflow:start", workflow_name=name, run_id=run.run_id, steps=len(definition))

        try:
            for index, reference in enumerate(definition.steps):
                run.current_step_index = index
                status, data = await self._run_step(run, runner, index, reference)

                if status is not ExecutionStatus.COMPLETED:
                    run.status = WorkflowRunStatus.ERROR
                    message = str(data)
                    self.logger.error("Workflow '%s' failed at step %d (%s): %s", name, index, reference, message)
                    await self._notify(
                        status_callback,
                        WorkflowStatusUpdate(
                            status=WorkflowRunStatus.ERROR, workflow_name=name, step_index=index, error=message
                        ),
                    )
                    await self._emit(
                        "workflow:step:error",
                        workflow_name=name,
                        run_id=run.run_id,
                        step_index=index,
                        unit_reference=reference,
                        error=message,
                    )
                    await self._emit(
                        "workflow:error", workflow_name=name, run_id=run.run_id, step_index=index, error=message
                    )
                    raise StepError(name, index, reference, message)

                run.accumulated_data = data
                await self._notify(
                    status_callback,
                    WorkflowStatusUpdate(
                        status=WorkflowRunStatus.STEP_COMPLETED, workflow_name=name, step_index=index, data=data
                    ),
                )
                await self._emit(
                    "workflow:step:end",
                    workflow_name=name,
                    run_id=run.run_id,
                    step_index=index,
                    unit_reference=reference,
                    data=data,
                )

            run.status = WorkflowRunStatus.COMPLETED
            await self._notify(
                status_callback,
                WorkflowStatusUpdate(status=WorkflowRunStatus.COMPLETED, workflow_name=name, data=run.accumulated_data),
            )
            self.logger.info("Workflow '%s' completed (run %s)", name, run.run_id)
            await self._emit("workflow:complete", workflow_name=name, run_id=run.run_id, data=run.accumulated_data)
            return run.accumulated_data
        finally:
            # also reached on cancellation: the step in flight is killed
            self._active.pop(run.run_id, None)
            await runner.stop()

    def get_workflow(self, name: str) -> WorkflowDefinition | None:
        """Return a workflow definition by name, or None."""
        return self._workflows.get(name)

    def list_workflows(self) -> list[WorkflowDefinition]:
        """Return all workflow definitions in definition order."""
        return list(self._workflows.values())

    def list_runs(self) -> list[WorkflowRun]:
        """Return the runs currently in progress."""
        return [run for run, _ in self._active.values()]

    def get_settings(self) -> dict[str, Any]:
        """Return the workflow settings as a dictionary."""
        return describe_settings(self.settings)

    def save_settings(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Update known settings; unknown names and None values are ignored.

        Args:
            changes: Proposed new values keyed by setting name.

        Returns:
            The settings that were changed.
        """
        return apply_settings(self.settings, changes, self.logger)

    async def stop(self) -> None:
        """Kill the steps in flight of every active run."""
        for _, runner in list(self._active.values()):
            await runner.stop()

    async def _run_step(
        self,
        run: WorkflowRun,
        runner: TaskRunner,
        index: int,
        reference: str,
    ) -> tuple[ExecutionStatus, Any]:
        outcome: asyncio.Future[tuple[ExecutionStatus, Any]] = asyncio.get_running_loop().create_future()

        def resolve(status: ExecutionStatus, data: Any) -> None:
            if not outcome.done():
                outcome.set_result((status, data))

        await self._emit(
            "workflow:step:start",
            workflow_name=run.workflow_name,
            run_id=run.run_id,
            step_index=index,
            unit_reference=reference,
        )

        if self.queue is not None:
            await self.queue.enqueue(
                f"workflow:{run.workflow_name}",
                {
                    "run_id": str(run.run_id),
                    "step_index": index,
                    "unit_reference": reference,
                    "input_data": run.accumulated_data,
                },
            )

        if not await runner.start(reference, run.accumulated_data, resolve):
            return ExecutionStatus.ERROR, "Worker is already running"
        return await outcome

    async def _notify(
        self,
        status_callback: Callable[[WorkflowStatusUpdate], Any] | None,
        update: WorkflowStatusUpdate,
    ) -> None:
        if status_callback is None:
            return
        try:
            outcome = status_callback(update)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            self.logger.exception("Status callback of workflow '%s' failed", update.workflow_name)

    async def _emit(self, event_type: str, **payload: Any) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event_type, **payload)
