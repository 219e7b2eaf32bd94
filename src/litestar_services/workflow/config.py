"""Configuration for workflow runners."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["WorkflowSettings"]


@dataclass
class WorkflowSettings:
    """Settings of a workflow runner.

    Attributes:
        max_steps: Maximum number of steps a workflow definition may have.
        timeout_per_step: Advisory per-step ceiling in seconds; not enforced.
        parallel_execution: Advisory flag; steps always run sequentially.
    """

    max_steps: int = 50
    timeout_per_step: float = 300.0
    parallel_execution: bool = False
