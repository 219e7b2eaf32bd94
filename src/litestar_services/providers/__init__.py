"""In-memory service providers.

This module provides the ``memory`` providers of the foundation and
infrastructure services the registry wires into the task-execution core,
run analytics included.
"""

from __future__ import annotations

from litestar_services.providers.analytics import (
    RunAnalytics,
    RunStats,
    SchedulingAnalytics,
    ServiceAnalytics,
    WorkflowAnalytics,
    WorkingAnalytics,
)
from litestar_services.providers.cache import MemoryCache
from litestar_services.providers.logger import LoggingService
from litestar_services.providers.queue import MemoryQueue

__all__ = [
    "LoggingService",
    "MemoryCache",
    "MemoryQueue",
    "RunAnalytics",
    "RunStats",
    "SchedulingAnalytics",
    "ServiceAnalytics",
    "WorkflowAnalytics",
    "WorkingAnalytics",
]
