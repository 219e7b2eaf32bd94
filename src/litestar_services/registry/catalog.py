"""Built-in services and their ``memory`` providers.

Each factory receives the provider type, the merged options (dependencies
under ``"dependencies"``) and the registry's event bus, and returns the
service instance.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from litestar_services.core.types import DependencyLevel
from litestar_services.providers import LoggingService, MemoryCache, MemoryQueue, ServiceAnalytics
from litestar_services.scheduling import Scheduler
from litestar_services.worker import TaskRunner, WorkerSettings
from litestar_services.workflow import WorkflowRunner

if TYPE_CHECKING:
    from litestar_services.core.events import EventBus
    from litestar_services.core.protocols import ServiceFactory
    from litestar_services.registry.registry import ServiceRegistry

__all__ = ["BUILTIN_SERVICES", "register_builtin_services"]


def _service_logger(service_name: str, provider_type: str, options: dict[str, Any]) -> Any:
    logging_service = options["dependencies"].get("logging")
    if logging_service is None:
        return None
    return logging_service.get_logger(service_name, provider_type)


def create_logging(provider_type: str, options: dict[str, Any], event_bus: EventBus) -> LoggingService:
    return LoggingService(
        provider_type,
        buffer_size=options.get("log_buffer_size", 1000),
        level=options.get("log_level", logging.INFO),
        instance_name=options.get("instance_name", "default"),
    )


def create_analytics(provider_type: str, options: dict[str, Any], event_bus: EventBus) -> ServiceAnalytics:
    return ServiceAnalytics(event_bus)


def create_caching(provider_type: str, options: dict[str, Any], event_bus: EventBus) -> MemoryCache:
    return MemoryCache(
        default_ttl=options.get("cache_ttl"),
        logger=_service_logger("caching", provider_type, options),
    )


def create_queueing(provider_type: str, options: dict[str, Any], event_bus: EventBus) -> MemoryQueue:
    return MemoryQueue(
        max_size=options.get("queue_max_size"),
        logger=_service_logger("queueing", provider_type, options),
    )


def create_working(provider_type: str, options: dict[str, Any], event_bus: EventBus) -> TaskRunner:
    return TaskRunner(
        settings=options.get("worker_settings") or WorkerSettings(),
        event_bus=event_bus,
        units=options.get("units"),
        logger=_service_logger("working", provider_type, options),
        name=f"working:{options.get('instance_name', 'default')}",
    )


def create_scheduling(provider_type: str, options: dict[str, Any], event_bus: EventBus) -> Scheduler:
    working: TaskRunner = options["dependencies"]["working"]
    return Scheduler(
        event_bus=event_bus,
        units=working.units,
        worker_settings=working.settings,
        logger=_service_logger("scheduling", provider_type, options),
    )


def create_workflow(provider_type: str, options: dict[str, Any], event_bus: EventBus) -> WorkflowRunner:
    working: TaskRunner = options["dependencies"]["working"]
    return WorkflowRunner(
        event_bus=event_bus,
        units=working.units,
        settings=options.get("workflow_settings"),
        worker_settings=working.settings,
        queue=options["dependencies"].get("queueing"),
        logger=_service_logger("workflow", provider_type, options),
    )


BUILTIN_SERVICES: tuple[tuple[str, DependencyLevel, tuple[str, ...], ServiceFactory], ...] = (
    ("logging", DependencyLevel.FOUNDATION, (), create_logging),
    ("analytics", DependencyLevel.FOUNDATION, (), create_analytics),
    ("caching", DependencyLevel.INFRASTRUCTURE, ("logging",), create_caching),
    ("queueing", DependencyLevel.INFRASTRUCTURE, ("logging",), create_queueing),
    ("working", DependencyLevel.BUSINESS_LOGIC, ("logging", "queueing", "caching", "analytics"), create_working),
    ("scheduling", DependencyLevel.APPLICATION, ("logging", "working"), create_scheduling),
    ("workflow", DependencyLevel.INTEGRATION, ("logging", "queueing", "scheduling", "working"), create_workflow),
)
"""Name, level, dependencies and ``memory`` factory of every built-in service."""


def register_builtin_services(registry: ServiceRegistry) -> None:
    """Register the built-in services and their ``memory`` providers.

    Args:
        registry: The registry to populate.
    """
    for name, level, dependencies, factory in BUILTIN_SERVICES:
        registry.register_service(name, level, dependencies)
        registry.register_provider(name, "memory", factory)
