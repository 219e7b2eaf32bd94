"""Service registry for constructing and wiring services.

This module provides the container that builds services on demand, caches
them as singletons keyed by ``(service, provider, instance)`` and injects the
services they depend on.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from litestar_services.core.events import EventBus
from litestar_services.core.models import DEFAULT_INSTANCE_NAME, ServiceInstanceInfo, ServiceKey
from litestar_services.core.types import DependencyLevel
from litestar_services.exceptions import (
    CircularDependencyError,
    DependencyLevelError,
    ServiceCreationError,
    UnknownServiceTypeError,
)
from litestar_services.registry.catalog import register_builtin_services

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from litestar_services.core.protocols import ServiceFactory
    from litestar_services.providers import LoggingService, MemoryCache, MemoryQueue, ServiceAnalytics
    from litestar_services.scheduling import Scheduler
    from litestar_services.worker import TaskRunner
    from litestar_services.workflow import WorkflowRunner

__all__ = ["ServiceDefinition", "ServiceRegistry"]

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TYPE = "memory"


@dataclass(frozen=True)
class ServiceDefinition:
    """Catalog entry of a service.

    Attributes:
        name: Name of the service.
        level: Construction tier; dependencies must sit on a lower tier.
        dependencies: Names of the services injected into it.
        default_provider: Provider used when the service is injected as a dependency.
    """

    name: str
    level: DependencyLevel
    dependencies: tuple[str, ...] = ()
    default_provider: str = DEFAULT_PROVIDER_TYPE


class ServiceRegistry:
    """Container of singleton services.

    A service is built the first time it is requested and cached under its
    :class:`ServiceKey`; identical keys always return the identical instance.
    Before a service is built, each declared dependency is resolved with its
    default provider and default instance and handed to the factory in
    ``options["dependencies"]``.

    Example:
        >>> services = ServiceRegistry(global_options={"log_level": "DEBUG"})
        >>> scheduler = await services.scheduling()
        >>> scheduler is await services.get_service("scheduling")
        True
        >>> await services.shutdown()
    """

    def __init__(
        self,
        event_bus: EventBus | None = None,
        global_options: Mapping[str, Any] | None = None,
        *,
        register_builtins: bool = True,
    ) -> None:
        """Initialize the registry.

        Args:
            event_bus: Event bus shared with every service. A new one is created if omitted.
            global_options: Options merged into every service's options.
            register_builtins: Whether to register the built-in services.
        """
        self.event_bus = event_bus or EventBus()
        self.global_options: dict[str, Any] = dict(global_options or {})
        self._definitions: dict[str, ServiceDefinition] = {}
        self._factories: dict[tuple[str, str], ServiceFactory] = {}
        self._instances: dict[ServiceKey, ServiceInstanceInfo] = {}
        self._resolving: list[str] = []
        self._lock = asyncio.Lock()
        if register_builtins:
            register_builtin_services(self)

    def register_service(
        self,
        service_name: str,
        level: DependencyLevel | int,
        dependencies: Iterable[str] = (),
        default_provider: str = DEFAULT_PROVIDER_TYPE,
    ) -> ServiceDefinition:
        """Add or replace a service in the catalog.

        Dependencies that are already registered must sit on a strictly lower
        level. Dependencies registered later are checked by
        :meth:`validate_dependencies`.

        Args:
            service_name: Name of the service.
            level: Construction tier, 0 (foundation) to 4 (integration).
            dependencies: Names of the services it depends on.
            default_provider: Provider used when it is injected as a dependency.

        Returns:
            The stored definition.

        Raises:
            DependencyLevelError: If a registered dependency is not on a lower level.
        """
        definition = ServiceDefinition(service_name, DependencyLevel(level), tuple(dependencies), default_provider)
        for dependency in definition.dependencies:
            target = self._definitions.get(dependency)
            if target is not None:
                self._check_level(definition, target)
        self._definitions[service_name] = definition
        return definition

    def register_provider(self, service_name: str, provider_type: str, factory: ServiceFactory) -> None:
        """Register the factory of a service provider.

        Args:
            service_name: Name of the service.
            provider_type: Name of the provider.
            factory: Callable ``(provider_type, options, event_bus) -> service``.
        """
        self._factories[service_name, provider_type] = factory

    def get_definition(self, service_name: str) -> ServiceDefinition | None:
        """Return the catalog entry of a service, or None."""
        return self._definitions.get(service_name)

    def get_default_provider_type(self, service_name: str) -> str:
        """Return the provider a service is built with when injected as a dependency.

        Args:
            service_name: Name of the service.

        Returns:
            The default provider type; ``memory`` for unknown services.
        """
        definition = self._definitions.get(service_name)
        return definition.default_provider if definition else DEFAULT_PROVIDER_TYPE

    async def get_service(
        self,
        service_name: str,
        provider_type: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Any:
        """Return the singleton of a service provider, building it on first use.

        Args:
            service_name: Name of the service.
            provider_type: Name of the provider. Defaults to the service's default provider.
            options: Provider options. ``instance_name`` selects a named instance.

        Returns:
            The service instance.

        Raises:
            UnknownServiceTypeError: If no factory is registered for the pair.
            ServiceCreationError: If the factory raises.
        """
        created: list[dict[str, Any]] = []
        try:
            async with self._lock:
                return await self._get_or_create(service_name, provider_type, options or {}, created)
        finally:
            # handlers may request services themselves, so events go out once the lock is released
            for payload in created:
                await self.event_bus.emit("service:created", **payload)

    async def _get_or_create(
        self,
        service_name: str,
        provider_type: str | None,
        options: Mapping[str, Any],
        created: list[dict[str, Any]],
    ) -> Any:
        provider_type = provider_type or self.get_default_provider_type(service_name)
        key = ServiceKey(service_name, provider_type, options.get("instance_name") or DEFAULT_INSTANCE_NAME)

        info = self._instances.get(key)
        if info is not None:
            return info.instance

        factory = self._factories.get((service_name, provider_type))
        if factory is None:
            raise UnknownServiceTypeError(service_name, provider_type)

        # dependencies always come from their default provider and default instance
        dependencies: dict[str, Any] = {}
        definition = self._definitions.get(service_name)
        if service_name in self._resolving:
            raise CircularDependencyError(service_name)
        self._resolving.append(service_name)
        try:
            for dependency in definition.dependencies if definition else ():
                dependencies[dependency] = await self._get_or_create(dependency, None, {}, created)
        finally:
            self._resolving.remove(service_name)

        merged_options = {**self.global_options, **options, "instance_name": key.instance_name}
        merged_options["dependencies"] = dependencies

        try:
            instance = factory(provider_type, merged_options, self.event_bus)
        except Exception as e:
            logger.exception("Failed to create service %s", key)
            raise ServiceCreationError(service_name, provider_type, e) from e

        self._instances[key] = ServiceInstanceInfo(key=key, instance=instance, dependency_names=list(dependencies))
        logger.debug("Created service %s with dependencies %s", key, list(dependencies))
        created.append(
            {
                "service_name": service_name,
                "provider_type": provider_type,
                "instance_name": key.instance_name,
                "dependencies_count": len(dependencies),
                "dependency_names": list(dependencies),
            }
        )
        return instance

    def get_initialization_order(self) -> list[str]:
        """Return every registered service after the services it depends on.

        Returns:
            Service names in construction order.

        Raises:
            CircularDependencyError: If the dependency graph has a cycle.
        """
        visited: set[str] = set()
        visiting: set[str] = set()
        order: list[str] = []

        def visit(name: str) -> None:
            if name in visiting:
                raise CircularDependencyError(name)
            if name in visited:
                return
            visiting.add(name)
            definition = self._definitions.get(name)
            for dependency in definition.dependencies if definition else ():
                visit(dependency)
            visiting.discard(name)
            visited.add(name)
            order.append(name)

        for name in self._definitions:
            visit(name)
        return order

    def validate_dependencies(self) -> bool:
        """Check the whole catalog.

        Returns:
            True when every dependency is registered, on a lower level, and acyclic.

        Raises:
            DependencyLevelError: If a dependency is unknown or not on a lower level.
            CircularDependencyError: If the dependency graph has a cycle.
        """
        for definition in self._definitions.values():
            for dependency in definition.dependencies:
                target = self._definitions.get(dependency)
                if target is None:
                    raise DependencyLevelError(definition.name, dependency, "it is not registered")
                self._check_level(definition, target)
        self.get_initialization_order()
        return True

    def list_services(self) -> list[ServiceKey]:
        """Return the keys of every constructed instance."""
        return list(self._instances)

    def list_instances(self, service_name: str | None = None) -> list[ServiceInstanceInfo]:
        """Return constructed instances, optionally of one service only.

        Args:
            service_name: Optional name of the service to filter by.

        Returns:
            Instance metadata in construction order.
        """
        return [
            info for info in self._instances.values() if service_name is None or info.key.service_name == service_name
        ]

    async def reset_service_instance(
        self,
        service_name: str,
        provider_type: str,
        instance_name: str = DEFAULT_INSTANCE_NAME,
    ) -> bool:
        """Forget one instance so the next request builds a new one.

        The instance is closed when it has a ``close`` method. Services that
        already received it as a dependency keep their reference.

        Returns:
            True if an instance was forgotten.
        """
        key = ServiceKey(service_name, provider_type, instance_name)
        if key not in self._instances:
            return False
        await self._forget([key])
        return True

    async def reset_service(self, service_name: str) -> int:
        """Forget and close every instance of a service.

        Returns:
            Number of instances forgotten.
        """
        keys = [key for key in self._instances if key.service_name == service_name]
        return await self._forget(keys)

    async def reset(self) -> None:
        """Forget and close every instance."""
        await self._forget(list(self._instances))

    async def shutdown(self) -> None:
        """Stop every instance that can be stopped, newest first, then forget them all.

        Instances are stopped through their ``stop`` method, or ``close`` when
        they have none. A failure is logged and does not prevent the others
        from being stopped.
        """
        for info in reversed(list(self._instances.values())):
            closer = getattr(info.instance, "stop", None) or getattr(info.instance, "close", None)
            if closer is None:
                continue
            try:
                outcome = closer()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Failed to stop service %s", info.key)
        await self._forget(list(self._instances), close=False)

    async def logger(
        self,
        provider_type: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> LoggingService:
        """Return the logging service."""
        return await self.get_service("logging", provider_type, options)

    async def analytics(
        self,
        provider_type: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> ServiceAnalytics:
        """Return the analytics service."""
        return await self.get_service("analytics", provider_type, options)

    async def cache(self, provider_type: str | None = None, options: Mapping[str, Any] | None = None) -> MemoryCache:
        """Return the caching service."""
        return await self.get_service("caching", provider_type, options)

    async def queue(self, provider_type: str | None = None, options: Mapping[str, Any] | None = None) -> MemoryQueue:
        """Return the queueing service."""
        return await self.get_service("queueing", provider_type, options)

    async def working(self, provider_type: str | None = None, options: Mapping[str, Any] | None = None) -> TaskRunner:
        """Return the working service (a task runner)."""
        return await self.get_service("working", provider_type, options)

    async def scheduling(
        self,
        provider_type: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Scheduler:
        """Return the scheduling service."""
        return await self.get_service("scheduling", provider_type, options)

    async def workflow(
        self,
        provider_type: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> WorkflowRunner:
        """Return the workflow service."""
        return await self.get_service("workflow", provider_type, options)

    async def _forget(self, keys: list[ServiceKey], close: bool = True) -> int:
        for key in keys:
            info = self._instances.pop(key, None)
            if info is None or not close:
                continue
            closer = getattr(info.instance, "close", None)
            if closer is None:
                continue
            try:
                outcome = closer()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Failed to close service %s", key)
        if keys:
            await self.event_bus.emit("service:reset", keys=[str(key) for key in keys])
        return len(keys)

    @staticmethod
    def _check_level(definition: ServiceDefinition, dependency: ServiceDefinition) -> None:
        if dependency.level >= definition.level:
            reason = f"level {int(dependency.level)} is not below level {int(definition.level)}"
            raise DependencyLevelError(definition.name, dependency.name, reason)
