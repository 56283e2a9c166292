"""
Tests for the connection pool.
Covers exclusive handout, the size and queue bounds, timeouts, idle eviction and shutdown.
"""

import asyncio
import random

import pytest

from rental_catalog.pool import ConnectionPool
from rental_catalog.utils.exceptions import (
    PoolClosedError,
    PoolError,
    PoolQueueFullError,
    PoolTimeoutError,
)
from tests.conftest import FakeConnection, FakeConnector


async def settle():
    """Let queued tasks run up to their next suspension point."""
    await asyncio.sleep(0.01)


class TestAcquireRelease:
    """Basic checkout behaviour."""

    @pytest.mark.asyncio
    async def test_acquire_opens_connection(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=2)
        conn = await pool.acquire()

        assert conn is connector.opened[0]
        assert pool.active_connections == 1
        assert pool.size == 1

        await pool.release(conn)
        assert pool.active_connections == 0
        assert pool.idle_connections == 1

    @pytest.mark.asyncio
    async def test_released_connection_is_reused(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=2)
        first = await pool.acquire()
        await pool.release(first)

        second = await pool.acquire()
        assert second is first
        assert len(connector.opened) == 1

    @pytest.mark.asyncio
    async def test_most_recently_released_is_reused_first(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=2)
        a = await pool.acquire()
        b = await pool.acquire()
        await pool.release(a)
        await pool.release(b)

        assert await pool.acquire() is b

    @pytest.mark.asyncio
    async def test_release_rolls_back_open_transaction(self, connector: FakeConnector):
        pool = ConnectionPool(connector)
        conn = await pool.acquire()
        conn.transaction_open = True

        await pool.release(conn)

        assert conn.rollbacks == 1
        assert not conn.closed
        assert pool.idle_connections == 1

    @pytest.mark.asyncio
    async def test_broken_connection_is_discarded(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=1)
        conn = await pool.acquire()
        conn.invalidated = True

        await pool.release(conn)

        assert conn.closed
        assert pool.size == 0
        assert pool.idle_connections == 0

        replacement = await pool.acquire()
        assert replacement is not conn
        assert replacement.number == 2

    @pytest.mark.asyncio
    async def test_release_of_foreign_connection_raises(self, connector: FakeConnector):
        pool = ConnectionPool(connector)
        with pytest.raises(PoolError):
            await pool.release(FakeConnection(99))

    @pytest.mark.asyncio
    async def test_double_release_raises(self, connector: FakeConnector):
        pool = ConnectionPool(connector)
        conn = await pool.acquire()
        await pool.release(conn)

        with pytest.raises(PoolError):
            await pool.release(conn)

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self, connector: FakeConnector):
        pool = ConnectionPool(connector)

        with pytest.raises(RuntimeError):
            async with pool.connection():
                assert pool.active_connections == 1
                raise RuntimeError("boom")

        assert pool.active_connections == 0
        assert pool.idle_connections == 1

    def test_max_size_must_be_positive(self, connector: FakeConnector):
        with pytest.raises(ValueError):
            ConnectionPool(connector, max_size=0)


class TestConcurrency:
    """Exclusive handout under contention."""

    @pytest.mark.asyncio
    async def test_connection_never_shared(self, connector: FakeConnector):
        """No connection is handed out while another caller holds it."""
        pool = ConnectionPool(connector, max_size=3, queue_limit=0, acquire_timeout=5.0)
        held = set()

        async def worker():
            conn = await pool.acquire()
            assert conn not in held
            held.add(conn)
            await asyncio.sleep(random.uniform(0, 0.005))
            held.discard(conn)
            await pool.release(conn)

        await asyncio.gather(*(worker() for _ in range(40)))

        assert pool.active_connections == 0
        assert pool.waiting == 0
        assert len(connector.opened) <= 3
        assert pool.stats()["peak_active"] <= 3

    @pytest.mark.asyncio
    async def test_waiters_served_in_order(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=1, queue_limit=0)
        held = await pool.acquire()

        first = asyncio.create_task(pool.acquire())
        await settle()
        second = asyncio.create_task(pool.acquire())
        await settle()
        assert pool.waiting == 2

        await pool.release(held)
        conn = await first
        assert conn is held
        assert not second.done()

        await pool.release(conn)
        assert await second is held

    @pytest.mark.asyncio
    async def test_waiter_gets_slot_when_connection_is_discarded(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=1, queue_limit=0)
        held = await pool.acquire()
        waiter = asyncio.create_task(pool.acquire())
        await settle()

        held.invalidated = True
        await pool.release(held)

        conn = await waiter
        assert conn is not held
        assert conn.number == 2
        assert pool.size == 1


class TestLimits:
    """Queue bound and acquire timeout."""

    @pytest.mark.asyncio
    async def test_queue_full_rejects_immediately(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=1, queue_limit=1)
        held = await pool.acquire()
        waiter = asyncio.create_task(pool.acquire())
        await settle()
        assert pool.waiting == 1

        with pytest.raises(PoolQueueFullError):
            await pool.acquire()

        await pool.release(held)
        assert await waiter is held

    @pytest.mark.asyncio
    async def test_acquire_times_out(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=1)
        await pool.acquire()

        with pytest.raises(PoolTimeoutError):
            await pool.acquire(timeout=0.05)

        assert pool.waiting == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_queue(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=1, queue_limit=0)
        held = await pool.acquire()
        waiter = asyncio.create_task(pool.acquire())
        await settle()

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert pool.waiting == 0

        await pool.release(held)
        assert pool.idle_connections == 1
        assert pool.active_connections == 0


class TestIdleManagement:
    """Idle eviction and the idle cap."""

    @pytest.mark.asyncio
    async def test_evict_idle_closes_expired_connections(self, connector: FakeConnector):
        pool = ConnectionPool(connector, idle_timeout=0.05)
        conn = await pool.acquire()
        await pool.release(conn)

        assert await pool.evict_idle() == 0
        await asyncio.sleep(0.1)

        assert await pool.evict_idle() == 1
        assert conn.closed
        assert pool.size == 0

    @pytest.mark.asyncio
    async def test_acquire_skips_expired_connections(self, connector: FakeConnector):
        pool = ConnectionPool(connector, idle_timeout=0.05)
        old = await pool.acquire()
        await pool.release(old)
        await asyncio.sleep(0.1)

        fresh = await pool.acquire()

        assert fresh is not old
        assert old.closed

    @pytest.mark.asyncio
    async def test_idle_connections_capped(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=3, max_idle=1)
        conns = [await pool.acquire() for _ in range(3)]
        for conn in conns:
            await pool.release(conn)

        assert pool.idle_connections == 1
        assert pool.size == 1
        assert sum(conn.closed for conn in conns) == 2


class TestClose:
    """Shutdown behaviour."""

    @pytest.mark.asyncio
    async def test_close_fails_waiters_and_new_acquires(self, connector: FakeConnector):
        pool = ConnectionPool(connector, max_size=1, queue_limit=0)
        held = await pool.acquire()
        waiter = asyncio.create_task(pool.acquire())
        await settle()

        closing = asyncio.create_task(pool.close(drain_timeout=1.0))
        await settle()

        with pytest.raises(PoolClosedError):
            await waiter
        with pytest.raises(PoolClosedError):
            await pool.acquire()

        await pool.release(held)
        await closing

        assert held.closed
        assert pool.closed
        assert pool.size == 0

    @pytest.mark.asyncio
    async def test_close_closes_idle_connections(self, connector: FakeConnector):
        pool = ConnectionPool(connector)
        conn = await pool.acquire()
        await pool.release(conn)

        await pool.close()

        assert conn.closed
        assert pool.idle_connections == 0

    @pytest.mark.asyncio
    async def test_close_force_closes_after_drain_timeout(self, connector: FakeConnector):
        pool = ConnectionPool(connector)
        held = await pool.acquire()

        await pool.close(drain_timeout=0.05)

        assert held.closed
        assert pool.active_connections == 0
        # Late release after a forced close is ignored
        await pool.release(held)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, connector: FakeConnector):
        pool = ConnectionPool(connector)
        await pool.close()
        await pool.close()
        assert pool.stats()["closed"] is True
