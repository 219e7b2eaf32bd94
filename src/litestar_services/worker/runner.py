"""Task runner executing one unit of work at a time in an isolated process.

This module provides the execution primitive the scheduler and the workflow
runner are built on. Each run gets a fresh child process that shares no memory
with the orchestrator; the two sides only exchange messages over a pipe. The
orchestrator side never blocks: it polls the pipe from an asyncio task.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import multiprocessing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from multiprocessing.reduction import ForkingPickler
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from litestar_services.core.models import TaskDescriptor, TaskRecord
from litestar_services.core.settings import apply_settings, describe_settings
from litestar_services.core.types import ExecutionStatus, MessageType
from litestar_services.exceptions import AbnormalExitError, ReentrancyError, UnitLoadError
from litestar_services.worker.config import WorkerSettings
from litestar_services.worker.context import run_context
from litestar_services.worker.units import UnitRegistry

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from multiprocessing.connection import Connection
    from multiprocessing.process import BaseProcess

    from litestar_services.core.events import EventBus
    from litestar_services.core.types import CompletionCallback

__all__ = ["TaskRunner"]


@dataclass
class _Execution:
    """Orchestrator-side handle of one live execution context."""

    record: TaskRecord
    callback: CompletionCallback | None
    process: BaseProcess | None = None
    connection: Connection | None = None
    monitor: asyncio.Task[None] | None = None
    settled: bool = False
    closed: bool = False
    status_waiters: list[asyncio.Future[ExecutionStatus]] = field(default_factory=list)


class TaskRunner:
    """Runs one unit of work at a time in its own process.

    A runner owns at most one execution context. ``start`` spawns it and sends
    the ``start`` message; the context answers with ``status`` messages. On the
    terminal message the runner invokes the completion callback once, emits
    ``worker:status`` and tears the context down, returning to ``idle``.

    ``stop`` is forceful: the process is killed, the callback discarded and
    any late result ignored.

    Attributes:
        name: Identifier used in process names and events.
        settings: Runner settings, see :class:`WorkerSettings`.
        event_bus: Optional event bus implementing ``emit``.
        units: Registry used to resolve named units.
        logger: Logger (or adapter) the runner writes to.

    Example:
        >>> runner = TaskRunner()
        >>> done = asyncio.get_running_loop().create_future()
        >>> await runner.start(
        ...     "myapp.units.report:build",
        ...     {"day": "2024-01-01"},
        ...     lambda status, data: done.set_result((status, data)),
        ... )
        True
        >>> await done
        (<ExecutionStatus.COMPLETED: 'completed'>, {...})
    """

    def __init__(
        self,
        settings: WorkerSettings | None = None,
        event_bus: EventBus | None = None,
        units: UnitRegistry | None = None,
        logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
        name: str | None = None,
    ) -> None:
        """Initialize an idle task runner.

        Args:
            settings: Runner settings. Defaults to :class:`WorkerSettings`.
            event_bus: Optional event bus for worker events.
            units: Optional registry of named units.
            logger: Optional logger replacing the module logger.
            name: Optional identifier; generated when omitted.
        """
        self.settings = settings or WorkerSettings()
        self.event_bus = event_bus
        self.units = units if units is not None else UnitRegistry()
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or f"task-runner-{uuid4().hex[:8]}"
        self._status = ExecutionStatus.IDLE
        self._execution: _Execution | None = None
        self._history: list[TaskRecord] = []

    @property
    def status(self) -> ExecutionStatus:
        """Current status of the runner."""
        return self._status

    def get_status(self) -> ExecutionStatus:
        """Return the current status of the runner.

        Returns:
            The current :class:`ExecutionStatus`.
        """
        return self._status

    async def start(
        self,
        unit_reference: str | Callable[..., Any],
        input_data: Any = None,
        callback: CompletionCallback | None = None,
    ) -> bool:
        """Dispatch a unit of work to a new execution context.

        Args:
            unit_reference: Registered name, unit reference or module-level callable.
            input_data: Value passed to the unit's entry function. Must be picklable.
            callback: Optional callable receiving ``(status, data)`` exactly once,
                where ``data`` is the result or the error message.

        Returns:
            False if the runner was already running and nothing was dispatched,
            True otherwise (the callback will be, or already was, invoked).
        """
        if self._status is ExecutionStatus.RUNNING:
            rejection = ReentrancyError(str(unit_reference))
            self.logger.warning("%s rejected '%s': %s", self.name, unit_reference, rejection)
            await self._emit("worker:start:error", unit_reference=str(unit_reference), error=str(rejection))
            return False

        try:
            reference = self.units.resolve(unit_reference)
        except ValueError as e:
            reference = str(unit_reference)
            execution = self._new_execution(reference, callback)
            await self._settle(execution, ExecutionStatus.ERROR, str(UnitLoadError(reference, str(e))))
            return True

        descriptor = TaskDescriptor(unit_reference=reference, input_data=input_data)
        execution = self._new_execution(reference, callback)

        try:
            context = multiprocessing.get_context(self.settings.start_method)
            parent_connection, child_connection = context.Pipe()
        except Exception as e:
            self.logger.exception("%s could not prepare an execution context", self.name)
            await self._settle(execution, ExecutionStatus.ERROR, f"Unable to start worker: {e}")
            return True

        process = context.Process(
            target=run_context,
            args=(child_connection,),
            name=f"{self.name}:{execution.record.task_id.hex[:8]}",
            daemon=True,
        )
        try:
            process.start()
        except Exception as e:
            parent_connection.close()
            self.logger.exception("%s could not spawn an execution context", self.name)
            await self._settle(execution, ExecutionStatus.ERROR, f"Unable to start worker: {e}")
            return True
        finally:
            child_connection.close()

        execution.process = process
        execution.connection = parent_connection

        try:
            message = ForkingPickler.dumps(descriptor.to_message())
        except Exception as e:
            await self._settle(execution, ExecutionStatus.ERROR, f"Input data could not be serialized: {e}")
            return True
        try:
            # Large inputs fill the pipe buffer until the context reads them.
            await asyncio.to_thread(parent_connection.send_bytes, message)
        except asyncio.CancelledError:
            await self.stop()
            raise
        except Exception as e:
            await self._settle(execution, ExecutionStatus.ERROR, f"Unable to start worker: {e}")
            return True
        if execution.settled:
            return True

        self.logger.debug("%s dispatched '%s' (task %s)", self.name, reference, execution.record.task_id)
        await self._emit(
            "worker:start",
            task_id=execution.record.task_id,
            unit_reference=reference,
            data=input_data,
        )
        if not execution.settled:
            execution.monitor = asyncio.create_task(self._monitor(execution), name=f"{self.name}-monitor")
        return True

    async def stop(self) -> None:
        """Terminate the live execution context, if any, and return to ``idle``.

        The callback of an in-flight run is discarded and never invoked.
        """
        execution = self._execution
        self._execution = None
        task_id: UUID | None = None

        if execution is not None:
            task_id = execution.record.task_id
            if not execution.settled:
                execution.settled = True
                execution.callback = None
                execution.record.completed_at = datetime.now(timezone.utc)
                execution.record.error = "Stopped before completion"
            await self._teardown(execution)
            self.logger.info("%s stopped task %s", self.name, task_id)

        self._status = ExecutionStatus.IDLE
        await self._emit("worker:stopped", task_id=task_id)

    async def query_status(self, timeout: float = 1.0) -> ExecutionStatus:
        """Ask the live execution context for its status.

        Args:
            timeout: Seconds to wait for the context's answer.

        Returns:
            The status reported by the context, or the runner's own status when
            no context is live or it does not answer in time.
        """
        execution = self._execution
        if execution is None or execution.connection is None or execution.closed:
            return self._status

        waiter: asyncio.Future[ExecutionStatus] = asyncio.get_running_loop().create_future()
        execution.status_waiters.append(waiter)
        try:
            execution.connection.send({"type": MessageType.GET_STATUS.value})
            return await asyncio.wait_for(waiter, timeout)
        except (OSError, asyncio.TimeoutError):
            return self._status
        finally:
            if waiter in execution.status_waiters:
                execution.status_waiters.remove(waiter)

    def get_settings(self) -> dict[str, Any]:
        """Return the runner settings as a dictionary."""
        return describe_settings(self.settings)

    def save_settings(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Update known settings; unknown names and None values are ignored.

        Args:
            changes: Proposed new values keyed by setting name.

        Returns:
            The settings that were changed.
        """
        return apply_settings(self.settings, changes, self.logger)

    def get_task_history(self, limit: int = 100) -> list[TaskRecord]:
        """Return recent runs, newest first.

        Args:
            limit: Maximum number of records to return.

        Returns:
            List of task records.
        """
        return sorted(self._history, key=lambda record: record.started_at, reverse=True)[:limit]

    def get_task(self, task_id: UUID) -> TaskRecord | None:
        """Return the record of a run by its ID.

        Args:
            task_id: The run ID.

        Returns:
            The record, or None when it is unknown or was evicted.
        """
        for record in self._history:
            if record.task_id == task_id:
                return record
        return None

    def _new_execution(self, reference: str, callback: CompletionCallback | None) -> _Execution:
        record = TaskRecord(
            task_id=uuid4(),
            unit_reference=reference,
            status=ExecutionStatus.RUNNING,
            started_at=datetime.now(timezone.utc),
        )
        self._history.append(record)
        if len(self._history) > self.settings.history_limit:
            del self._history[: len(self._history) - self.settings.history_limit]

        execution = _Execution(record=record, callback=callback)
        self._execution = execution
        self._status = ExecutionStatus.RUNNING
        return execution

    async def _monitor(self, execution: _Execution) -> None:
        connection = execution.connection
        process = execution.process
        if connection is None or process is None:
            return

        try:
            await self._watch(execution, connection, process)
        except Exception as e:
            self.logger.exception("%s: monitor failed for task %s", self.name, execution.record.task_id)
            await self._settle(execution, ExecutionStatus.ERROR, f"Worker monitor failed: {e}")

    async def _watch(self, execution: _Execution, connection: Connection, process: BaseProcess) -> None:
        while not execution.settled:
            if connection.poll():
                try:
                    message = connection.recv()
                except (EOFError, OSError):
                    await self._handle_exit(execution)
                    return
                await self._handle_message(execution, message)
                continue

            if not process.is_alive():
                if connection.poll():
                    continue
                await self._handle_exit(execution)
                return

            await asyncio.sleep(self.settings.poll_interval)

    async def _handle_message(self, execution: _Execution, message: Any) -> None:
        if not isinstance(message, dict):
            self.logger.warning("%s ignored malformed message %r", self.name, message)
            return

        kind = message.get("type")
        try:
            status = ExecutionStatus(message.get("status"))
        except ValueError:
            self.logger.warning("%s ignored message with unknown status %r", self.name, message.get("status"))
            return

        if kind == MessageType.CURRENT_STATUS:
            for waiter in execution.status_waiters:
                if not waiter.done():
                    waiter.set_result(status)
            return

        if kind != MessageType.STATUS:
            return

        if status.is_terminal:
            await self._settle(execution, status, message.get("data"))
        else:
            await self._emit(
                "worker:status",
                task_id=execution.record.task_id,
                unit_reference=execution.record.unit_reference,
                status=status.value,
                data=None,
            )

    async def _handle_exit(self, execution: _Execution) -> None:
        process = execution.process
        if process is None:
            return

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.stop_timeout
        while process.is_alive() and loop.time() < deadline:
            await asyncio.sleep(self.settings.poll_interval)

        failure = AbnormalExitError(process.exitcode)
        self.logger.error("%s: task %s: %s", self.name, execution.record.task_id, failure)
        await self._emit(
            "worker:exit:error",
            task_id=execution.record.task_id,
            unit_reference=execution.record.unit_reference,
            code=process.exitcode,
        )
        await self._settle(execution, ExecutionStatus.ERROR, str(failure))

    async def _settle(self, execution: _Execution, status: ExecutionStatus, data: Any) -> None:
        if execution.settled:
            return
        execution.settled = True

        record = execution.record
        record.status = status
        record.completed_at = datetime.now(timezone.utc)
        if status is ExecutionStatus.COMPLETED:
            record.result = data
        else:
            record.error = str(data)

        callback, execution.callback = execution.callback, None
        if self._execution is execution:
            self._execution = None
        self._status = status

        if callback is not None:
            try:
                outcome = callback(status, data)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                self.logger.exception("%s: completion callback failed for task %s", self.name, record.task_id)
                await self._emit("worker:callback:error", task_id=record.task_id, error=str(e))

        await self._emit(
            "worker:status",
            task_id=record.task_id,
            unit_reference=record.unit_reference,
            status=status.value,
            data=data,
        )
        await self._teardown(execution)

        if self._execution is None and self._status is status:
            self._status = ExecutionStatus.IDLE

    async def _teardown(self, execution: _Execution) -> None:
        if execution.closed:
            return
        execution.closed = True

        monitor = execution.monitor
        if monitor is not None and monitor is not asyncio.current_task() and not monitor.done():
            monitor.cancel()

        for waiter in execution.status_waiters:
            if not waiter.done():
                waiter.set_result(self._status)

        process = execution.process
        if process is not None:
            if process.is_alive():
                process.kill()
            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.settings.stop_timeout
            while process.is_alive() and loop.time() < deadline:
                await asyncio.sleep(self.settings.poll_interval)
            if not process.is_alive():
                process.close()

        if execution.connection is not None:
            execution.connection.close()

    async def _emit(self, event_type: str, **payload: Any) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event_type, runner=self.name, **payload)
