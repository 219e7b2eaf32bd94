"""Litestar Services - service container and isolated task execution for Litestar.

This package provides a registry of pluggable, provider-selectable services
and a task-execution core that runs units of work in isolated processes.

Key Features:
    - Task runner executing one unit of work per child process
    - Interval scheduler with drop-on-overlap ticks
    - Sequential workflows piping each step's output into the next
    - Singleton service registry with leveled dependency injection
    - Event bus for lifecycle notifications
    - Litestar plugin with dependency injection and a REST API

Importing the package itself stays free of web dependencies, because every
execution context imports it on startup. The Litestar plugin lives in
:mod:`litestar_services.plugin`.

Example:
    >>> from litestar_services.registry import ServiceRegistry
    >>>
    >>> services = ServiceRegistry()
    >>> workflows = await services.workflow()
    >>> await workflows.define_workflow("ingest", ["myapp.units.fetch", "myapp.units.store"])
    >>> await workflows.run_workflow("ingest", {"url": "https://example.com/feed"})
"""

from __future__ import annotations

from litestar_services.__metadata__ import __project__, __version__
from litestar_services.exceptions import (
    AbnormalExitError,
    CircularDependencyError,
    DependencyLevelError,
    DuplicateTaskError,
    ReentrancyError,
    ServiceCreationError,
    ServicesError,
    StepError,
    UnitExecutionError,
    UnitLoadError,
    UnknownServiceTypeError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)

__all__ = (
    "AbnormalExitError",
    "CircularDependencyError",
    "DependencyLevelError",
    "DuplicateTaskError",
    "ReentrancyError",
    "ServiceCreationError",
    "ServicesError",
    "StepError",
    "UnitExecutionError",
    "UnitLoadError",
    "UnknownServiceTypeError",
    "WorkflowNotFoundError",
    "WorkflowValidationError",
    "__project__",
    "__version__",
)
