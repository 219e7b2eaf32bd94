"""Tests for the sequential workflow runner."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from litestar_services.core.types import WorkflowRunStatus

if TYPE_CHECKING:
    from litestar_services.core.models import WorkflowStatusUpdate
    from litestar_services.workflow import WorkflowRunner


def module_level_step(data: Any) -> Any:
    return data


@pytest.mark.unit
@pytest.mark.asyncio
class TestWorkflowDefinitions:
    """Tests for defining workflows."""

    async def test_define_and_get(self, workflow_runner: WorkflowRunner, unit: Any, recorded_events: list) -> None:
        """Test a definition is stored and published."""
        definition = await workflow_runner.define_workflow("w", [unit("step_a"), unit("step_b")])

        assert definition.steps == (unit("step_a"), unit("step_b"))
        assert workflow_runner.get_workflow("w") is definition
        assert workflow_runner.list_workflows() == [definition]
        defined = [event for event in recorded_events if event.event_type == "workflow:defined"]
        assert defined[0].payload == {"workflow_name": "w", "steps": [unit("step_a"), unit("step_b")]}

    async def test_redefine_overwrites(self, workflow_runner: WorkflowRunner, unit: Any) -> None:
        """Test defining an existing name replaces it."""
        await workflow_runner.define_workflow("w", [unit("step_a")])
        await workflow_runner.define_workflow("w", [unit("step_b")])

        assert workflow_runner.get_workflow("w").steps == (unit("step_b"),)
        assert len(workflow_runner.list_workflows()) == 1

    async def test_callable_steps_become_references(self, workflow_runner: WorkflowRunner) -> None:
        """Test module-level callables are stored by import path."""
        definition = await workflow_runner.define_workflow("w", [module_level_step])

        assert definition.steps == (f"{__name__}:module_level_step",)

    @pytest.mark.parametrize(
        ("name", "steps", "expected"),
        [
            ("", ["pkg.step"], "name must be a non-empty string"),
            ("w", [], "at least one step"),
            ("w", ["pkg.step", ""], "Step 1 must be a non-empty unit reference"),
            ("w", [lambda data: data], "Step 0: "),
        ],
    )
    async def test_invalid_definitions(
        self, workflow_runner: WorkflowRunner, name: str, steps: list, expected: str
    ) -> None:
        """Test invalid definitions are rejected and not stored."""
        from litestar_services.exceptions import WorkflowValidationError

        with pytest.raises(WorkflowValidationError, match=expected):
            await workflow_runner.define_workflow(name, steps)

        assert workflow_runner.list_workflows() == []

    async def test_step_limit(self, workflow_runner: WorkflowRunner) -> None:
        """Test max_steps bounds the definition length."""
        from litestar_services.exceptions import WorkflowValidationError

        workflow_runner.save_settings({"max_steps": 2})

        with pytest.raises(WorkflowValidationError, match="the maximum is 2"):
            await workflow_runner.define_workflow("w", ["a", "b", "c"])

        assert workflow_runner.get_settings()["max_steps"] == 2

    async def test_unknown_workflow(self, workflow_runner: WorkflowRunner, recorded_events: list) -> None:
        """Test running an undefined workflow raises and emits."""
        from litestar_services.exceptions import WorkflowNotFoundError

        with pytest.raises(WorkflowNotFoundError, match="'missing' not found"):
            await workflow_runner.run_workflow("missing")

        errors = [event for event in recorded_events if event.event_type == "workflow:error"]
        assert errors[0].payload["workflow_name"] == "missing"


@pytest.mark.integration
@pytest.mark.asyncio
class TestWorkflowRuns:
    """Tests for running workflows through execution contexts."""

    async def test_steps_pipe_their_output(self, workflow_runner: WorkflowRunner, unit: Any) -> None:
        """Test each step receives the previous step's result."""
        updates: list[WorkflowStatusUpdate] = []
        await workflow_runner.define_workflow("w", [unit("step_a"), unit("step_b")])

        result = await workflow_runner.run_workflow("w", {"x": 1}, updates.append)

        assert result == {"x": 1, "a": True, "b": True}
        assert [update.status for update in updates] == [
            WorkflowRunStatus.STEP_COMPLETED,
            WorkflowRunStatus.STEP_COMPLETED,
            WorkflowRunStatus.COMPLETED,
        ]
        assert [update.step_index for update in updates[:2]] == [0, 1]
        assert updates[0].data == {"x": 1, "a": True}
        assert updates[-1].data == result
        assert workflow_runner.list_runs() == []

    async def test_failing_step_aborts_the_run(
        self, workflow_runner: WorkflowRunner, unit: Any, recorded_events: list
    ) -> None:
        """Test a failing step raises StepError and later steps never run."""
        from litestar_services.exceptions import StepError

        updates: list[WorkflowStatusUpdate] = []
        await workflow_runner.define_workflow("w2", [unit("step_a"), unit("error_step"), unit("step_b")])

        with pytest.raises(StepError) as exc_info:
            await workflow_runner.run_workflow("w2", {}, updates.append)

        assert exc_info.value.step_index == 1
        assert exc_info.value.message == "Simulated step error"
        assert exc_info.value.unit_reference == unit("error_step")
        assert WorkflowRunStatus.COMPLETED not in [update.status for update in updates]
        assert updates[-1].status is WorkflowRunStatus.ERROR
        assert updates[-1].error == "Simulated step error"

        types = [event.event_type for event in recorded_events]
        assert "workflow:step:error" in types
        assert "workflow:error" in types
        assert "workflow:complete" not in types
        started = [
            event.payload["step_index"] for event in recorded_events if event.event_type == "workflow:step:start"
        ]
        assert started == [0, 1]

    async def test_events_follow_step_order(
        self, workflow_runner: WorkflowRunner, unit: Any, recorded_events: list
    ) -> None:
        """Test workflow events are published in execution order."""
        await workflow_runner.define_workflow("w", [unit("step_a"), unit("step_b")])

        await workflow_runner.run_workflow("w", {})

        workflow_events = [
            (event.event_type, event.payload.get("step_index"))
            for event in recorded_events
            if event.event_type.startswith("workflow:") and event.event_type != "workflow:defined"
        ]
        assert workflow_events == [
            ("workflow:start", None),
            ("workflow:step:start", 0),
            ("workflow:step:end", 0),
            ("workflow:step:start", 1),
            ("workflow:step:end", 1),
            ("workflow:complete", None),
        ]

    async def test_async_status_callback(self, workflow_runner: WorkflowRunner, unit: Any) -> None:
        """Test coroutine status callbacks are awaited."""
        statuses = []

        async def callback(update: WorkflowStatusUpdate) -> None:
            await asyncio.sleep(0)
            statuses.append(update.status)

        await workflow_runner.define_workflow("w", [unit("step_a")])
        await workflow_runner.run_workflow("w", {}, callback)

        assert statuses == [WorkflowRunStatus.STEP_COMPLETED, WorkflowRunStatus.COMPLETED]

    async def test_concurrent_runs_are_independent(self, workflow_runner: WorkflowRunner, unit: Any) -> None:
        """Test two runs of the same workflow do not share state."""
        await workflow_runner.define_workflow("w", [unit("step_a"), unit("step_b")])

        first, second = await asyncio.gather(
            workflow_runner.run_workflow("w", {"run": 1}),
            workflow_runner.run_workflow("w", {"run": 2}),
        )

        assert first == {"run": 1, "a": True, "b": True}
        assert second == {"run": 2, "a": True, "b": True}

    async def test_step_dispatches_are_queued(self, event_bus: Any, worker_settings: Any, unit: Any) -> None:
        """Test an injected queue receives one record per dispatched step."""
        from litestar_services.providers import MemoryQueue
        from litestar_services.workflow import WorkflowRunner

        queue = MemoryQueue()
        runner = WorkflowRunner(event_bus=event_bus, worker_settings=worker_settings, queue=queue)
        await runner.define_workflow("w", [unit("step_a"), unit("step_b")])

        await runner.run_workflow("w", {"x": 1})

        assert await queue.size("workflow:w") == 2
        first = await queue.dequeue("workflow:w")
        second = await queue.dequeue("workflow:w")
        assert first["step_index"] == 0
        assert first["unit_reference"] == unit("step_a")
        assert first["input_data"] == {"x": 1}
        assert second["input_data"] == {"x": 1, "a": True}
        assert first["run_id"] == second["run_id"]

    async def test_cancellation_stops_the_step(self, workflow_runner: WorkflowRunner, unit: Any) -> None:
        """Test cancelling the awaiting coroutine kills the step in flight."""
        await workflow_runner.define_workflow("slow", [unit("slow"), unit("step_a")])
        run = asyncio.create_task(workflow_runner.run_workflow("slow", {"seconds": 30}))

        async def step_running() -> None:
            while not workflow_runner.list_runs():
                await asyncio.sleep(0.01)

        await asyncio.wait_for(step_running(), 5)
        run.cancel()

        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(run, 10)
        assert workflow_runner.list_runs() == []

    async def test_missing_step_unit(self, workflow_runner: WorkflowRunner) -> None:
        """Test a step that cannot be loaded fails the run at run time."""
        from litestar_services.exceptions import StepError

        await workflow_runner.define_workflow("w", ["litestar_services_missing_module:run"])

        with pytest.raises(StepError, match="Unable to load unit") as exc_info:
            await workflow_runner.run_workflow("w")

        assert exc_info.value.step_index == 0
