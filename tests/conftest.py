"""Shared test fixtures for litestar-services test suite."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
import pytest_asyncio

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from litestar_services.core.events import EventBus, ServiceEvent
    from litestar_services.registry import ServiceRegistry
    from litestar_services.scheduling import Scheduler
    from litestar_services.worker import TaskRunner
    from litestar_services.workflow import WorkflowRunner

UNITS_DIR = Path(__file__).parent / "units"


@pytest.fixture
def unit() -> Callable[..., str]:
    """Build a file-path unit reference to one of the test units.

    Returns:
        Function taking the unit file stem and an optional entry function name.
    """

    def build(stem: str, entry: str | None = None) -> str:
        reference = str(UNITS_DIR / f"{stem}.py")
        return f"{reference}:{entry}" if entry else reference

    return build


@pytest.fixture
def event_bus() -> EventBus:
    """Create a fresh event bus."""
    from litestar_services.core.events import EventBus

    return EventBus()


@pytest.fixture
def recorded_events(event_bus: EventBus) -> list[ServiceEvent]:
    """Record every event emitted on the event bus fixture.

    Args:
        event_bus: The event bus to record from

    Returns:
        List that receives emitted events in order
    """
    events: list[ServiceEvent] = []
    event_bus.on("*", events.append)
    return events


@pytest.fixture
def worker_settings() -> Any:
    """Worker settings with a fast poll interval for tests."""
    from litestar_services.worker import WorkerSettings

    return WorkerSettings(poll_interval=0.005, stop_timeout=5.0)


@pytest_asyncio.fixture
async def task_runner(event_bus: EventBus, worker_settings: Any) -> AsyncIterator[TaskRunner]:
    """Create a task runner that is stopped after the test."""
    from litestar_services.worker import TaskRunner

    runner = TaskRunner(settings=worker_settings, event_bus=event_bus, name="test-runner")
    yield runner
    await runner.stop()


@pytest_asyncio.fixture
async def scheduler(event_bus: EventBus, worker_settings: Any) -> AsyncIterator[Scheduler]:
    """Create a scheduler whose tasks are all stopped after the test."""
    from litestar_services.scheduling import Scheduler

    scheduler = Scheduler(event_bus=event_bus, worker_settings=worker_settings)
    yield scheduler
    await scheduler.stop()


@pytest_asyncio.fixture
async def workflow_runner(event_bus: EventBus, worker_settings: Any) -> AsyncIterator[WorkflowRunner]:
    """Create a workflow runner whose active runs are stopped after the test."""
    from litestar_services.workflow import WorkflowRunner

    runner = WorkflowRunner(event_bus=event_bus, worker_settings=worker_settings)
    yield runner
    await runner.stop()


@pytest_asyncio.fixture
async def service_registry(event_bus: EventBus) -> AsyncIterator[ServiceRegistry]:
    """Create a service registry that is shut down after the test."""
    from litestar_services.registry import ServiceRegistry

    registry = ServiceRegistry(event_bus=event_bus)
    yield registry
    await registry.shutdown()
