"""In-memory named FIFO queues.

Items live in the orchestrator's memory only; they are lost when the process
exits.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Any

__all__ = ["MemoryQueue"]


class MemoryQueue:
    """Named FIFO queues held in memory.

    Example:
        >>> queues = MemoryQueue()
        >>> await queues.enqueue("emails", {"to": "ops@example.com"})
        >>> await queues.size("emails")
        1
        >>> await queues.dequeue("emails")
        {'to': 'ops@example.com'}
    """

    def __init__(
        self,
        max_size: int | None = None,
        logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
    ) -> None:
        """Initialize with no queues.

        Args:
            max_size: Optional per-queue capacity; the oldest item is dropped when it is exceeded.
            logger: Optional logger replacing the module logger.
        """
        self.max_size = max_size
        self.logger = logger or logging.getLogger(__name__)
        self._queues: defaultdict[str, deque[Any]] = defaultdict(lambda: deque(maxlen=self.max_size))

    async def enqueue(self, queue_name: str, item: Any) -> None:
        """Append an item to a queue, creating the queue on first use."""
        queue = self._queues[queue_name]
        if queue.maxlen is not None and len(queue) == queue.maxlen:
            self.logger.warning("Queue '%s' is full, dropping its oldest item", queue_name)
        queue.append(item)

    async def dequeue(self, queue_name: str) -> Any:
        """Remove and return the oldest item of a queue, or None when it is empty."""
        queue = self._queues.get(queue_name)
        if not queue:
            return None
        return queue.popleft()

    async def size(self, queue_name: str) -> int:
        """Return the number of items in a queue."""
        queue = self._queues.get(queue_name)
        return len(queue) if queue else 0

    async def purge(self, queue_name: str) -> int:
        """Remove every item of a queue.

        Returns:
            Number of items removed.
        """
        queue = self._queues.pop(queue_name, None)
        return len(queue) if queue else 0

    def list_queues(self) -> list[str]:
        """Return the names of non-empty queues."""
        return [name for name, queue in self._queues.items() if queue]
