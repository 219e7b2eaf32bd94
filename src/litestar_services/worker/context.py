"""Entry point of an isolated execution context.

This module runs inside the child process spawned by a task runner. It only
talks to the orchestrator through its pipe: it waits for a ``start`` message,
loads and runs the referenced unit of work on a helper thread, and reports
``status`` messages back. The main thread keeps answering ``getStatus``
requests while the unit runs.

It imports nothing beyond the standard library and the unit loader.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from litestar_services.core.types import ExecutionStatus, MessageType
from litestar_services.exceptions import UnitExecutionError
from litestar_services.worker.units import invoke_unit, load_unit

if TYPE_CHECKING:
    from multiprocessing.connection import Connection

__all__ = ["run_context"]


def _describe(error: BaseException, unit_reference: str) -> str:
    return str(error) or str(UnitExecutionError(unit_reference, error))


class _ContextState:
    """Status and outbound channel of one execution context."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self.status = ExecutionStatus.IDLE
        self.thread: threading.Thread | None = None
        self._send_lock = threading.Lock()

    def post(self, message: dict[str, Any]) -> None:
        with self._send_lock:
            self.connection.send(message)

    def report(self, status: ExecutionStatus, data: Any = None) -> None:
        self.post({"type": MessageType.STATUS.value, "status": status.value, "data": data})
        self.status = status

    def execute(self, unit_reference: str, input_data: Any) -> None:
        self.report(ExecutionStatus.RUNNING)
        try:
            unit = load_unit(unit_reference)
            result = invoke_unit(unit, input_data)
        except (Exception, SystemExit) as e:
            self.report(ExecutionStatus.ERROR, _describe(e, unit_reference))
            return

        try:
            self.report(ExecutionStatus.COMPLETED, result)
        except Exception as e:
            # the result could not be pickled; nothing was written to the pipe
            self.report(ExecutionStatus.ERROR, f"Unit result could not be serialized: {_describe(e, unit_reference)}")


def run_context(connection: Connection) -> None:
    """Serve orchestrator messages until the pipe closes or the process is killed.

    Args:
        connection: Child end of the task runner's pipe.
    """
    state = _ContextState(connection)
    while True:
        try:
            message = connection.recv()
        except (EOFError, OSError):
            break

        if not isinstance(message, dict):
            continue

        kind = message.get("type")
        if kind == MessageType.START and state.thread is None:
            state.thread = threading.Thread(
                target=state.execute,
                args=(message.get("unit_reference"), message.get("input_data")),
                name="unit-of-work",
                daemon=True,
            )
            state.thread.start()
        elif kind == MessageType.GET_STATUS:
            state.post({"type": MessageType.CURRENT_STATUS.value, "status": state.status.value})
