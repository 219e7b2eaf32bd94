"""Core domain module for litestar-services.

This module exports the fundamental building blocks shared by the task
runner, scheduler, workflow runner and service registry: types, models,
protocols and the event bus.
"""

from __future__ import annotations

from litestar_services.core.events import EventBus, EventHandler, ServiceEvent
from litestar_services.core.models import (
    DEFAULT_INSTANCE_NAME,
    ScheduledTask,
    ServiceInstanceInfo,
    ServiceKey,
    TaskDescriptor,
    TaskRecord,
    WorkflowDefinition,
    WorkflowRun,
    WorkflowStatusUpdate,
)
from litestar_services.core.protocols import CachingService, QueueingService, ServiceFactory, UnitOfWork
from litestar_services.core.types import (
    CompletionCallback,
    DependencyLevel,
    ExecutionStatus,
    MessageType,
    WorkflowRunStatus,
)

__all__ = [
    "DEFAULT_INSTANCE_NAME",
    "CachingService",
    "CompletionCallback",
    "DependencyLevel",
    "EventBus",
    "EventHandler",
    "ExecutionStatus",
    "MessageType",
    "QueueingService",
    "ScheduledTask",
    "ServiceEvent",
    "ServiceFactory",
    "ServiceInstanceInfo",
    "ServiceKey",
    "TaskDescriptor",
    "TaskRecord",
    "UnitOfWork",
    "WorkflowDefinition",
    "WorkflowRun",
    "WorkflowRunStatus",
    "WorkflowStatusUpdate",
]
