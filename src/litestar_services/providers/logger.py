"""Logging service.

The logging service hands out per-service loggers whose messages carry a
``[SERVICE:PROVIDER]`` prefix, and keeps the most recent records in memory so
they can be inspected without a log shipper.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

__all__ = ["LoggingService", "ServiceLoggerAdapter"]

ROOT_LOGGER_NAME = "litestar_services.services"


class ServiceLoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Prefixes every message with the service and provider it belongs to."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"[{self.extra['prefix']}] {msg}", kwargs


class _BufferHandler(logging.Handler):
    def __init__(self, capacity: int) -> None:
        super().__init__()
        self.records: deque[dict[str, Any]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        self.records.append(
            {
                "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": message,
            }
        )


class LoggingService:
    """Per-service loggers with an in-memory buffer of recent records.

    Each instance owns a logger namespace under ``litestar_services.services``
    and service loggers live below it, so instances never see each other's
    records or levels while regular ``logging`` configuration still applies
    through propagation.

    Example:
        >>> logs = LoggingService()
        >>> log = logs.get_logger("working", "memory")
        >>> log.info("started")
        >>> logs.get_logs(limit=1)[0]["message"]
        '[WORKING:MEMORY] started'
    """

    def __init__(
        self,
        provider_type: str = "memory",
        buffer_size: int = 1000,
        level: int | str = logging.INFO,
        instance_name: str = "default",
    ) -> None:
        """Initialize the logging service.

        Args:
            provider_type: Provider name reported in this service's own prefix.
            buffer_size: Number of recent records kept in memory.
            level: Level of the service loggers.
            instance_name: Registry instance name, used in the logger namespace.
        """
        self.provider_type = provider_type
        self.namespace = f"{ROOT_LOGGER_NAME}.{instance_name}-{uuid4().hex[:8]}"
        self._root = logging.getLogger(self.namespace)
        self._root.setLevel(level)
        self._handler = _BufferHandler(buffer_size)
        self._root.addHandler(self._handler)
        self._adapters: dict[tuple[str, str], ServiceLoggerAdapter] = {}

    def get_logger(self, service_name: str, provider_type: str = "memory") -> ServiceLoggerAdapter:
        """Return the logger of a service provider.

        Args:
            service_name: Name of the service, e.g. ``scheduling``.
            provider_type: Name of the provider, e.g. ``memory``.

        Returns:
            A logger adapter prefixing messages with ``[SERVICE:PROVIDER]``.
        """
        key = (service_name, provider_type)
        if key not in self._adapters:
            prefix = f"{service_name.upper()}:{provider_type.upper()}"
            self._adapters[key] = ServiceLoggerAdapter(
                logging.getLogger(f"{self.namespace}.{service_name}"), {"prefix": prefix}
            )
        return self._adapters[key]

    def get_logs(self, limit: int = 100, level: str | None = None) -> list[dict[str, Any]]:
        """Return recent records, oldest first.

        Args:
            limit: Maximum number of records to return.
            level: Optional level name to filter by, e.g. ``ERROR``.

        Returns:
            List of records with ``timestamp``, ``level``, ``logger`` and ``message``.
        """
        records = list(self._handler.records)
        if level is not None:
            records = [record for record in records if record["level"] == level.upper()]
        return records[-limit:] if limit > 0 else []

    def clear(self) -> None:
        """Drop the buffered records."""
        self._handler.records.clear()

    def close(self) -> None:
        """Detach the buffer from the service loggers."""
        self._root.removeHandler(self._handler)
        self._handler.close()
