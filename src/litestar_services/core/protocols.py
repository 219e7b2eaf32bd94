"""Core protocols for litestar-services.

This module defines the Protocol-based interfaces the task-execution core
depends on. Using Protocol lets any provider implementation be injected by the
service registry while keeping the orchestrators free of provider internals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from litestar_services.core.events import EventBus

__all__ = ["CachingService", "QueueingService", "ServiceFactory", "UnitOfWork"]


@runtime_checkable
class UnitOfWork(Protocol):
    """Entry function of a unit of work.

    A unit of work receives the input data of its task descriptor and returns
    a serializable result, either directly or as an awaitable.

    Example:
        >>> def run(data: dict) -> dict:
        ...     return {**data, "validated": True}
    """

    def __call__(self, input_data: Any) -> Any:
        """Execute the unit of work.

        Args:
            input_data: The task descriptor's input data.

        Returns:
            The unit's result. Must be picklable.
        """
        ...


@runtime_checkable
class QueueingService(Protocol):
    """Named FIFO queues.

    The workflow runner uses this capability, when injected, to record each
    step dispatch. It never inspects the provider behind it.
    """

    async def enqueue(self, queue_name: str, item: Any) -> None:
        """Append an item to a queue.

        Args:
            queue_name: Name of the queue.
            item: Item to append.
        """
        ...

    async def dequeue(self, queue_name: str) -> Any:
        """Remove and return the oldest item of a queue.

        Args:
            queue_name: Name of the queue.

        Returns:
            The oldest item, or None when the queue is empty.
        """
        ...

    async def size(self, queue_name: str) -> int:
        """Return the number of items in a queue.

        Args:
            queue_name: Name of the queue.

        Returns:
            Number of queued items.
        """
        ...


@runtime_checkable
class CachingService(Protocol):
    """Key/value cache."""

    async def put(self, key: str, value: Any) -> None:
        """Store a value.

        Args:
            key: Cache key.
            value: Value to store.
        """
        ...

    async def get(self, key: str) -> Any:
        """Fetch a value.

        Args:
            key: Cache key.

        Returns:
            The stored value, or None.
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove a value.

        Args:
            key: Cache key.
        """
        ...


class ServiceFactory(Protocol):
    """Constructor registered with the service registry for one provider.

    The registry calls it with the provider type, the merged options (which
    carry already-built dependencies under ``"dependencies"``) and the shared
    event bus.
    """

    def __call__(self, provider_type: str, options: dict[str, Any], event_bus: EventBus) -> Any:
        """Construct a service instance.

        Args:
            provider_type: The provider being constructed.
            options: Global options merged with call options and dependencies.
            event_bus: The registry's event bus.

        Returns:
            The new service instance.
        """
        ...
