"""Sequential multi-step workflows.

This module provides the workflow runner, which executes a named, ordered list
of units of work, feeding each step's output into the next step.
"""

from __future__ import annotations

from litestar_services.workflow.config import WorkflowSettings
from litestar_services.workflow.runner import WorkflowRunner

__all__ = ["WorkflowRunner", "WorkflowSettings"]
