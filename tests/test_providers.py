"""Tests for the in-memory service providers."""

from __future__ import annotations

import asyncio
import logging

import pytest


@pytest.mark.unit
class TestLoggingService:
    """Tests for the logging service."""

    def test_messages_are_prefixed_and_buffered(self) -> None:
        """Test service loggers prefix messages and the buffer records them."""
        from litestar_services.providers import LoggingService

        logs = LoggingService()
        try:
            log = logs.get_logger("scheduling", "memory")
            log.info("Task '%s' scheduled", "cleanup")
            log.error("Task failed")

            records = logs.get_logs()
            assert [record["message"] for record in records] == [
                "[SCHEDULING:MEMORY] Task 'cleanup' scheduled",
                "[SCHEDULING:MEMORY] Task failed",
            ]
            assert records[0]["logger"] == f"{logs.namespace}.scheduling"
            assert logs.namespace.startswith("litestar_services.services.default-")
            assert [record["message"] for record in logs.get_logs(level="error")] == ["[SCHEDULING:MEMORY] Task failed"]
            assert len(logs.get_logs(limit=1)) == 1
        finally:
            logs.close()

    def test_loggers_are_reused(self) -> None:
        """Test the same service and provider share a logger."""
        from litestar_services.providers import LoggingService

        logs = LoggingService()
        try:
            assert logs.get_logger("working") is logs.get_logger("working", "memory")
            assert logs.get_logger("working") is not logs.get_logger("working", "redis")
        finally:
            logs.close()

    def test_level_and_buffer_size(self) -> None:
        """Test records below the level are dropped and the buffer is bounded."""
        from litestar_services.providers import LoggingService

        logs = LoggingService(buffer_size=2, level=logging.WARNING)
        try:
            log = logs.get_logger("caching")
            log.info("ignored")
            for index in range(3):
                log.warning("warning %d", index)

            assert [record["message"] for record in logs.get_logs()] == [
                "[CACHING:MEMORY] warning 1",
                "[CACHING:MEMORY] warning 2",
            ]
            logs.clear()
            assert logs.get_logs() == []
        finally:
            logs.close()

    def test_instances_are_isolated(self) -> None:
        """Test two logging services neither share records nor levels."""
        from litestar_services.providers import LoggingService

        verbose = LoggingService(level=logging.DEBUG, instance_name="a")
        quiet = LoggingService(level=logging.ERROR, instance_name="b")
        try:
            verbose.get_logger("working").debug("from a")
            quiet.get_logger("working").warning("from b")
            quiet.get_logger("working").error("failure in b")

            assert [record["message"] for record in verbose.get_logs()] == ["[WORKING:MEMORY] from a"]
            assert [record["message"] for record in quiet.get_logs()] == ["[WORKING:MEMORY] failure in b"]
            assert verbose.namespace != quiet.namespace
            assert logging.getLogger(verbose.namespace).level == logging.DEBUG
            assert logging.getLogger(quiet.namespace).level == logging.ERROR
        finally:
            verbose.close()
            quiet.close()

    def test_close_detaches_the_buffer(self) -> None:
        """Test a closed service stops buffering."""
        from litestar_services.providers import LoggingService

        logs = LoggingService()
        log = logs.get_logger("queueing")
        logs.close()

        log.info("after close")

        assert logs.get_logs() == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestMemoryCache:
    """Tests for the in-memory cache."""

    async def test_put_get_delete(self) -> None:
        """Test basic cache operations."""
        from litestar_services.providers import MemoryCache

        cache = MemoryCache()
        await cache.put("user:1", {"name": "Ada"})

        assert await cache.get("user:1") == {"name": "Ada"}
        await cache.delete("user:1")
        await cache.delete("user:1")
        assert await cache.get("user:1") is None

    async def test_entries_expire(self) -> None:
        """Test entries past their ttl are gone."""
        from litestar_services.providers import MemoryCache

        cache = MemoryCache(default_ttl=0.01)
        await cache.put("short", 1)
        await cache.put("long", 2, ttl=60)

        await asyncio.sleep(0.05)

        assert await cache.get("short") is None
        assert await cache.get("long") == 2

    async def test_analytics(self) -> None:
        """Test hits and misses are counted."""
        from litestar_services.providers import MemoryCache

        cache = MemoryCache()
        assert cache.get_analytics()["hit_rate"] == 0.0

        await cache.put("k", "v")
        await cache.get("k")
        await cache.get("missing")

        assert cache.get_analytics() == {"entries": 1, "hits": 1, "misses": 1, "hit_rate": 0.5}
        await cache.clear()
        assert cache.get_analytics()["entries"] == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestMemoryQueue:
    """Tests for the in-memory named queues."""

    async def test_fifo_order(self) -> None:
        """Test items come out in the order they went in."""
        from litestar_services.providers import MemoryQueue

        queues = MemoryQueue()
        for item in ("a", "b", "c"):
            await queues.enqueue("letters", item)

        assert await queues.size("letters") == 3
        assert [await queues.dequeue("letters") for _ in range(3)] == ["a", "b", "c"]
        assert await queues.dequeue("letters") is None

    async def test_queues_are_separate(self) -> None:
        """Test named queues do not share items."""
        from litestar_services.providers import MemoryQueue

        queues = MemoryQueue()
        await queues.enqueue("emails", 1)
        await queues.enqueue("reports", 2)

        assert sorted(queues.list_queues()) == ["emails", "reports"]
        assert await queues.purge("emails") == 1
        assert await queues.purge("emails") == 0
        assert queues.list_queues() == ["reports"]
        assert await queues.size("missing") == 0

    async def test_max_size_drops_oldest(self) -> None:
        """Test a full queue drops its oldest item."""
        from litestar_services.providers import MemoryQueue

        queues = MemoryQueue(max_size=2)
        for item in range(3):
            await queues.enqueue("bounded", item)

        assert await queues.dequeue("bounded") == 1
        assert await queues.size("bounded") == 1


@pytest.mark.unit
class TestProviderProtocols:
    """Tests that the memory providers satisfy the service protocols."""

    def test_memory_providers(self) -> None:
        """Test the memory providers implement the caching and queueing protocols."""
        from litestar_services.core.protocols import CachingService, QueueingService
        from litestar_services.providers import MemoryCache, MemoryQueue

        assert isinstance(MemoryCache(), CachingService)
        assert isinstance(MemoryQueue(), QueueingService)
        assert not isinstance(MemoryQueue(), CachingService)

    def test_unit_of_work(self) -> None:
        """Test plain callables satisfy the unit of work protocol."""
        from litestar_services.core.protocols import UnitOfWork

        def run(data: dict) -> dict:
            return data

        assert isinstance(run, UnitOfWork)
