"""Periodic execution of units of work.

This module provides the scheduler, which re-dispatches named units of work on
fixed intervals, each through its own task runner.
"""

from __future__ import annotations

from litestar_services.scheduling.scheduler import Scheduler

__all__ = ["Scheduler"]
