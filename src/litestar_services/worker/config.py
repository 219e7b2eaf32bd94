"""Configuration for task runners.

This module provides the settings a task runner consults when it spawns and
monitors execution contexts.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["WorkerSettings"]


@dataclass
class WorkerSettings:
    """Settings of a task runner.

    ``execution_timeout``, ``memory_limit`` and ``max_retries`` are advisory:
    they are reported through ``get_settings`` for callers that layer their
    own limits on top, but the task runner never enforces them.

    Attributes:
        execution_timeout: Advisory execution ceiling in seconds.
        memory_limit: Advisory memory ceiling in megabytes.
        max_retries: Advisory retry ceiling for callers.
        poll_interval: Seconds between checks of the context's pipe.
        start_method: ``multiprocessing`` start method for contexts, or None
            for the platform default.
        history_limit: Number of finished runs kept in the task history.
        stop_timeout: Seconds to wait for a killed context to be reaped.

    Example:
        >>> settings = WorkerSettings(start_method="spawn", poll_interval=0.005)
    """

    execution_timeout: float = 300.0
    memory_limit: int = 512
    max_retries: int = 3
    poll_interval: float = 0.01
    start_method: str | None = None
    history_limit: int = 100
    stop_timeout: float = 5.0
