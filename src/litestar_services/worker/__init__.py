"""Isolated execution of units of work.

This module provides the task runner, which executes one unit of work at a
time in a separate process, and the helpers that resolve and load units.
"""

from __future__ import annotations

from litestar_services.worker.config import WorkerSettings
from litestar_services.worker.runner import TaskRunner
from litestar_services.worker.units import UnitRegistry, load_unit, reference_for

__all__ = [
    "TaskRunner",
    "UnitRegistry",
    "WorkerSettings",
    "load_unit",
    "reference_for",
]
