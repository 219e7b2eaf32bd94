"""Core type definitions for litestar-services.

This module defines the enums and type aliases shared by the task runner,
the scheduler, the workflow runner and the service registry.
"""

from __future__ import annotations

import sys
from collections.abc import Awaitable, Callable
from enum import Enum, IntEnum
from typing import Any, TypeAlias

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "CompletionCallback",
    "DependencyLevel",
    "ExecutionStatus",
    "MessageType",
    "WorkflowRunStatus",
]


class ExecutionStatus(StrEnum):
    """Status of a task runner and of the unit of work it executes.

    Attributes:
        IDLE: No execution context is live.
        RUNNING: A unit of work has been dispatched and has not reported back.
        COMPLETED: The unit of work returned a value.
        ERROR: The unit of work could not be loaded, raised, or its context died.
    """

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Whether this status ends a run."""
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.ERROR)


class MessageType(StrEnum):
    """Message kinds exchanged between a task runner and its execution context.

    Attributes:
        START: Orchestrator asks the context to run a unit of work.
        GET_STATUS: Orchestrator asks the context for its current status.
        STATUS: Context reports a status transition, optionally with data.
        CURRENT_STATUS: Context answers a ``GET_STATUS`` request.
    """

    START = "start"
    GET_STATUS = "getStatus"
    STATUS = "status"
    CURRENT_STATUS = "currentStatus"


class WorkflowRunStatus(StrEnum):
    """Status values delivered to a workflow run's status callback.

    Attributes:
        RUNNING: The run is dispatching steps.
        STEP_COMPLETED: One step finished and its output was accumulated.
        ERROR: A step failed and the run was aborted.
        COMPLETED: Every step finished.
    """

    RUNNING = "running"
    STEP_COMPLETED = "step-completed"
    ERROR = "error"
    COMPLETED = "completed"


class DependencyLevel(IntEnum):
    """Construction tier of a registry service.

    A service may only depend on services of a strictly lower level, so
    dependencies are always built before the services that use them.
    """

    FOUNDATION = 0
    INFRASTRUCTURE = 1
    BUSINESS_LOGIC = 2
    APPLICATION = 3
    INTEGRATION = 4


CompletionCallback: TypeAlias = Callable[[ExecutionStatus, Any], "Awaitable[None] | None"]
"""Callback invoked once with the terminal status and the unit's result or error message."""
