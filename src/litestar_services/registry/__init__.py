"""Service container.

This module provides the registry that builds, caches and wires the services,
and the catalog of built-in services.
"""

from __future__ import annotations

from litestar_services.registry.catalog import BUILTIN_SERVICES, register_builtin_services
from litestar_services.registry.registry import ServiceDefinition, ServiceRegistry

__all__ = ["BUILTIN_SERVICES", "ServiceDefinition", "ServiceRegistry", "register_builtin_services"]
