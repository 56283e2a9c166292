"""
Bounded connection pool for the catalog store.
Hands out physical connections exclusively, queues callers when saturated and evicts idle connections.
"""

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, Dict, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncEngine

from rental_catalog.config import Settings
from rental_catalog.utils.exceptions import (
    PoolClosedError,
    PoolError,
    PoolQueueFullError,
    PoolTimeoutError,
)

logger = logging.getLogger(__name__)


class ConnectionPool:
    """
    Connection pool with a hard size limit, a bounded waiter queue and idle eviction.

    All bookkeeping happens between awaits, so the pool is safe for any number of
    tasks on the event loop it is used from. It is not meant to be shared across
    threads or event loops.

    Connections are duck-typed: anything with ``closed``, ``invalidated``,
    ``in_transaction()``, ``rollback()`` and ``close()`` works, which is what
    SQLAlchemy's ``AsyncConnection`` provides.
    """

    def __init__(
        self,
        connect: Callable[[], Awaitable[Any]],
        *,
        max_size: int = 5,
        queue_limit: int = 7,
        max_idle: int = 5,
        idle_timeout: float = 60.0,
        acquire_timeout: float = 10.0,
    ):
        """
        Initialize the pool.

        Args:
            connect: Async factory that opens one physical connection
            max_size: Maximum number of live connections
            queue_limit: Maximum number of queued waiters (0 means unbounded)
            max_idle: Maximum number of idle connections kept open
            idle_timeout: Seconds an idle connection may sit before it is closed
            acquire_timeout: Default seconds to wait in ``acquire``
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self._connect = connect
        self.max_size = max_size
        self.queue_limit = queue_limit
        self.max_idle = max_idle
        self.idle_timeout = idle_timeout
        self.acquire_timeout = acquire_timeout

        self._idle: Deque[Tuple[Any, float]] = deque()
        self._in_use: Set[Any] = set()
        self._waiters: Deque[asyncio.Future] = deque()
        self._size = 0
        self._peak_active = 0
        self._closed = False
        self._drained: Optional[asyncio.Event] = None
        self._background: Set[asyncio.Task] = set()

    @classmethod
    def from_engine(cls, engine: AsyncEngine, settings: Settings) -> "ConnectionPool":
        """Build a pool whose physical connections come from an async engine."""

        async def connect():
            return await engine.connect()

        return cls(
            connect,
            max_size=settings.pool_max_size,
            queue_limit=settings.pool_queue_limit,
            max_idle=settings.pool_max_idle,
            idle_timeout=settings.pool_idle_timeout,
            acquire_timeout=settings.pool_acquire_timeout,
        )

    # ── STATE ─────────────────────────────────────────────

    @property
    def active_connections(self) -> int:
        """Number of connections currently checked out."""
        return len(self._in_use)

    @property
    def idle_connections(self) -> int:
        return len(self._idle)

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    @property
    def size(self) -> int:
        """Live connections, including ones being opened."""
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, Any]:
        """Snapshot of pool counters for diagnostics."""
        return {
            "size": self._size,
            "max_size": self.max_size,
            "active": self.active_connections,
            "idle": self.idle_connections,
            "waiting": self.waiting,
            "peak_active": self._peak_active,
            "closed": self._closed,
        }

    # ── ACQUIRE / RELEASE ─────────────────────────────────

    async def acquire(self, timeout: Optional[float] = None) -> Any:
        """
        Check out a connection.

        Args:
            timeout: Seconds to wait for a free connection (defaults to ``acquire_timeout``)

        Returns:
            A connection owned exclusively by the caller until ``release``

        Raises:
            PoolQueueFullError: If the waiter queue is already full
            PoolTimeoutError: If no connection became free in time
            PoolClosedError: If the pool is closed
        """
        if timeout is None:
            timeout = self.acquire_timeout

        if self._closed:
            raise PoolClosedError()
        await self.evict_idle()
        if self._closed:
            raise PoolClosedError()

        if self._idle:
            conn, _ = self._idle.pop()
            self._check_out(conn)
            return conn

        if self._size < self.max_size:
            self._size += 1
            return await self._open()

        if self.queue_limit and len(self._waiters) >= self.queue_limit:
            logger.warning(f"Connection queue full ({len(self._waiters)} waiting)")
            raise PoolQueueFullError(self.queue_limit)

        return await self._wait(timeout)

    async def release(self, conn: Any) -> None:
        """
        Return a connection to the pool.

        Any open transaction is rolled back. Broken connections are closed and
        their slot is handed to the next waiter.

        Raises:
            PoolError: If the connection is not checked out from this pool
        """
        if conn not in self._in_use:
            if self._closed:
                logger.debug("Ignoring release of a connection force-closed at shutdown")
                return
            raise PoolError("Connection was not acquired from this pool")

        self._in_use.discard(conn)
        try:
            healthy = await self._reset(conn)
        except BaseException:
            # Cancelled mid-reset: the connection state is unknown.
            self._size -= 1
            self._grant_free_slots()
            self._close_in_background(conn)
            self._check_drained()
            raise

        if not healthy or self._closed:
            self._size -= 1
            self._grant_free_slots()
            await self._close_physical(conn)
        else:
            self._park(conn)
            await self._enforce_idle_limit()

        self._check_drained()

    @asynccontextmanager
    async def connection(self, timeout: Optional[float] = None) -> AsyncIterator[Any]:
        """Acquire a connection and release it on every exit path."""
        conn = await self.acquire(timeout)
        try:
            yield conn
        finally:
            await self.release(conn)

    # ── MAINTENANCE ───────────────────────────────────────

    async def evict_idle(self) -> int:
        """
        Close idle connections past ``idle_timeout``.

        Returns:
            Number of connections closed
        """
        if not self._idle:
            return 0

        now = asyncio.get_running_loop().time()
        expired = [conn for conn, since in self._idle if now - since >= self.idle_timeout]
        if not expired:
            return 0

        self._idle = deque((conn, since) for conn, since in self._idle if now - since < self.idle_timeout)
        self._size -= len(expired)
        self._grant_free_slots()
        for conn in expired:
            await self._close_physical(conn)

        logger.debug(f"Evicted {len(expired)} idle connection(s)")
        return len(expired)

    async def close(self, drain_timeout: Optional[float] = None) -> None:
        """
        Shut the pool down.

        Queued waiters fail with ``PoolClosedError``, idle connections are closed
        and checked-out connections are closed as they come back. Connections
        still out after ``drain_timeout`` seconds are closed forcibly.
        """
        if self._closed:
            return
        self._closed = True

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(PoolClosedError())

        idle = [conn for conn, _ in self._idle]
        self._idle.clear()
        self._size -= len(idle)
        for conn in idle:
            await self._close_physical(conn)

        if self._in_use:
            logger.info(f"Waiting for {len(self._in_use)} checked-out connection(s) to be released")
            self._drained = asyncio.Event()
            try:
                await asyncio.wait_for(self._drained.wait(), drain_timeout)
            except asyncio.TimeoutError:
                stragglers = list(self._in_use)
                logger.warning(f"Force-closing {len(stragglers)} connection(s) still checked out")
                self._in_use.clear()
                self._size -= len(stragglers)
                for conn in stragglers:
                    await self._close_physical(conn)

        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

        logger.info("Connection pool closed")

    # ── HELPERS ───────────────────────────────────────────

    def _check_out(self, conn: Any) -> None:
        self._in_use.add(conn)
        self._peak_active = max(self._peak_active, len(self._in_use))

    async def _open(self) -> Any:
        """Open a physical connection into a slot already counted in ``_size``."""
        try:
            conn = await self._connect()
        except BaseException:
            self._size -= 1
            self._grant_free_slots()
            raise

        if self._closed:
            self._size -= 1
            await self._close_physical(conn)
            raise PoolClosedError()

        self._check_out(conn)
        logger.debug(f"Opened connection ({self._size}/{self.max_size} live)")
        return conn

    async def _wait(self, timeout: float) -> Any:
        """Queue for a connection handed over by ``release``."""
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
        except BaseException:
            self._abandon(waiter)
            raise

        if not done:
            self._abandon(waiter)
            raise PoolTimeoutError(timeout)

        conn = waiter.result()
        if conn is None:
            # A slot was freed rather than a connection handed over.
            return await self._open()
        return conn

    def _abandon(self, waiter: asyncio.Future) -> None:
        """Withdraw a waiter, giving back anything handed to it in the meantime."""
        if waiter.done():
            if waiter.cancelled() or waiter.exception() is not None:
                return
            conn = waiter.result()
            if conn is None:
                self._size -= 1
                self._grant_free_slots()
            else:
                self._in_use.discard(conn)
                self._park(conn)
            return

        waiter.cancel()
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass

    def _next_waiter(self) -> Optional[asyncio.Future]:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                return waiter
        return None

    def _park(self, conn: Any) -> None:
        """Hand a clean connection to the oldest waiter or park it idle."""
        waiter = self._next_waiter()
        if waiter is not None:
            self._check_out(conn)
            waiter.set_result(conn)
            return
        self._idle.append((conn, asyncio.get_running_loop().time()))

    def _grant_free_slots(self) -> None:
        """Let waiters open their own connections while there is spare capacity."""
        while self._size < self.max_size:
            waiter = self._next_waiter()
            if waiter is None:
                return
            self._size += 1
            waiter.set_result(None)

    async def _enforce_idle_limit(self) -> None:
        while len(self._idle) > self.max_idle:
            conn, _ = self._idle.popleft()
            self._size -= 1
            await self._close_physical(conn)

    async def _reset(self, conn: Any) -> bool:
        """Roll back leftover work; False means the connection must be discarded."""
        if conn.closed or conn.invalidated:
            return False
        try:
            if conn.in_transaction():
                await conn.rollback()
        except Exception as e:
            logger.warning(f"Discarding connection that failed to reset: {e}")
            return False
        return True

    async def _close_physical(self, conn: Any) -> None:
        try:
            await conn.close()
        except Exception as e:
            logger.warning(f"Error closing connection: {e}")

    def _close_in_background(self, conn: Any) -> None:
        task = asyncio.get_running_loop().create_task(self._close_physical(conn))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _check_drained(self) -> None:
        if self._drained is not None and not self._in_use:
            self._drained.set()
