"""Litestar plugin for service container integration.

This module provides the ServicesPlugin, which exposes a service registry and
the services it builds to Litestar route handlers and stops them on shutdown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from litestar_services.registry import ServiceRegistry
from litestar_services.scheduling import Scheduler  # noqa: TC001 - needed for DI
from litestar_services.worker import TaskRunner  # noqa: TC001 - needed for DI
from litestar_services.worker.units import UnitRegistry
from litestar_services.workflow import WorkflowRunner  # noqa: TC001 - needed for DI

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar.config.app import AppConfig

__all__ = ["ServicesPlugin", "ServicesPluginConfig"]


@dataclass
class ServicesPluginConfig:
    """Configuration for the ServicesPlugin.

    Attributes:
        registry: Optional pre-configured ServiceRegistry. If not provided, a
            new one is created with ``global_options``.
        global_options: Options merged into every service's options when the
            plugin creates the registry.
        units: Named units of work to register, mapping names to unit
            references or module-level callables.
        dependency_key_registry: The key used for dependency injection of the
            ServiceRegistry. Defaults to "service_registry".
        dependency_key_task_runner: The key used for dependency injection of
            the working service. Defaults to "task_runner".
        dependency_key_scheduler: The key used for dependency injection of the
            scheduling service. Defaults to "scheduler".
        dependency_key_workflow_runner: The key used for dependency injection
            of the workflow service. Defaults to "workflow_runner".
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all service API endpoints.
            Defaults to "/services".
        api_guards: List of Litestar guards to apply to all service API endpoints.
        api_tags: OpenAPI tags to apply to service API endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
    """

    registry: ServiceRegistry | None = None
    global_options: dict[str, Any] = field(default_factory=dict)
    units: dict[str, str | Callable[..., Any]] = field(default_factory=dict)
    dependency_key_registry: str = "service_registry"
    dependency_key_task_runner: str = "task_runner"
    dependency_key_scheduler: str = "scheduler"
    dependency_key_workflow_runner: str = "workflow_runner"
    enable_api: bool = True
    api_path_prefix: str = "/services"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Services"])
    include_api_in_schema: bool = True


class ServicesPlugin(InitPluginProtocol):
    """Litestar plugin for the service container.

    The registry is created when the app is initialized; services are built
    lazily on the first request that injects them, and every service the
    registry built is stopped on app shutdown.

    Example:
        Basic usage::

            from litestar import Litestar
            from litestar_services.plugin import ServicesPlugin, ServicesPluginConfig

            app = Litestar(
                plugins=[
                    ServicesPlugin(
                        config=ServicesPluginConfig(
                            units={"nightly-report": "myapp.units.report:build"},
                        )
                    )
                ]
            )

        Using in a route handler::

            from litestar import post
            from litestar_services.scheduling import Scheduler


            @post("/reports/schedule")
            async def schedule_report(scheduler: Scheduler) -> dict:
                await scheduler.start("nightly-report", "nightly-report", 86400)
                return {"scheduled": True}
    """

    __slots__ = ("_config", "_registry")

    def __init__(self, config: ServicesPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or ServicesPluginConfig()
        self._registry: ServiceRegistry | None = None

    @property
    def registry(self) -> ServiceRegistry:
        """Get the service registry.

        Returns:
            The ServiceRegistry instance.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._registry is None:
            msg = "ServicesPlugin has not been initialized. Access registry after app startup."
            raise RuntimeError(msg)
        return self._registry

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Creates or uses the provided ServiceRegistry
        2. Registers the configured named units
        3. Adds dependency providers to the app config
        4. Stops the registry's services on shutdown
        5. Optionally registers REST API controllers if enable_api=True

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        self._registry = self._config.registry or ServiceRegistry(global_options=self._config.global_options)

        # Named units are shared by every runner the registry builds
        units = self._registry.global_options.setdefault("units", UnitRegistry())
        for name, unit in self._config.units.items():
            units.register(name, unit)

        def provide_registry() -> ServiceRegistry:
            return self.registry

        async def provide_task_runner() -> TaskRunner:
            return await self.registry.working()

        async def provide_scheduler() -> Scheduler:
            return await self.registry.scheduling()

        async def provide_workflow_runner() -> WorkflowRunner:
            return await self.registry.workflow()

        app_config.dependencies[self._config.dependency_key_registry] = Provide(
            provide_registry,
            sync_to_thread=False,
        )
        app_config.dependencies[self._config.dependency_key_task_runner] = Provide(provide_task_runner)
        app_config.dependencies[self._config.dependency_key_scheduler] = Provide(provide_scheduler)
        app_config.dependencies[self._config.dependency_key_workflow_runner] = Provide(provide_workflow_runner)

        app_config.on_shutdown.append(self._shutdown)

        if self._config.enable_api:
            from litestar import Router

            from litestar_services.exceptions import ServicesError
            from litestar_services.web.controllers import (
                RegistryController,
                SchedulingController,
                WorkflowController,
                WorkingController,
            )
            from litestar_services.web.exceptions import services_error_handler

            services_router = Router(
                path=self._config.api_path_prefix,
                route_handlers=[SchedulingController, WorkflowController, WorkingController, RegistryController],
                guards=self._config.api_guards,
                tags=self._config.api_tags,
                include_in_schema=self._config.include_api_in_schema,
            )
            app_config.route_handlers.append(services_router)
            app_config.exception_handlers[ServicesError] = services_error_handler  # type: ignore[assignment]

        return app_config

    async def _shutdown(self) -> None:
        if self._registry is not None:
            await self._registry.shutdown()
