"""
Query executor: the single path every catalog statement takes to the store.
Runs parameterized statements on pooled connections with bounded retry on pool exhaustion.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Iterator, List, Mapping, Optional, Union

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.sql import Executable

from rental_catalog.config import Settings
from rental_catalog.pool import ConnectionPool
from rental_catalog.utils.exceptions import (
    AlreadyExistsError,
    PersistenceError,
    QueryTimeoutError,
)
from rental_catalog.utils.retry import RetryPolicy, retry_on_pool_exhaustion

logger = logging.getLogger(__name__)

Statement = Union[str, Executable]
Params = Optional[Union[Mapping[str, Any], List[Mapping[str, Any]]]]

_UNIQUE_VIOLATION_MARKERS = ("unique", "duplicate", "primary key")


@dataclass
class QueryResult:
    """Buffered result of one statement, detached from the connection."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        """First column of the first row, or None."""
        row = self.first()
        if row is None:
            return None
        return next(iter(row.values()))

    def scalars(self) -> List[Any]:
        """First column of every row."""
        return [next(iter(row.values())) for row in self.rows]

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


def _is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    if getattr(orig, "sqlstate", None) == "23505" or getattr(orig, "pgcode", None) == "23505":
        return True
    message = str(orig).lower()
    return any(marker in message for marker in _UNIQUE_VIOLATION_MARKERS)


async def run_statement(
    conn: AsyncConnection,
    statement: Statement,
    params: Params = None,
    slow_query_threshold: Optional[float] = None,
) -> QueryResult:
    """
    Execute one statement on a connection and buffer its rows.

    Integrity errors are translated into the catalog's persistence errors.
    """
    if isinstance(statement, str):
        statement = text(statement)

    start_time = time.perf_counter()
    try:
        result = await conn.execute(statement, params)
    except IntegrityError as e:
        if _is_unique_violation(e):
            raise AlreadyExistsError(f"Record already exists: {e.orig}") from e
        raise PersistenceError(f"Write rejected by the store: {e.orig}") from e

    rowcount = result.rowcount
    rows = [dict(row._mapping) for row in result] if result.returns_rows else []
    elapsed = time.perf_counter() - start_time

    if slow_query_threshold is not None and elapsed > slow_query_threshold:
        logger.warning(f"Slow query detected: {elapsed:.3f}s - {str(statement)[:100]}...")
    else:
        logger.debug(f"Query finished in {elapsed:.4f}s returning {len(rows)} row(s)")

    return QueryResult(rows=rows, rowcount=rowcount)


class BoundExecutor:
    """
    Executor pinned to one connection inside an open transaction.
    Returned by ``QueryExecutor.transaction``; statements are not retried individually.
    """

    def __init__(self, conn: AsyncConnection, slow_query_threshold: Optional[float] = None):
        self.conn = conn
        self.slow_query_threshold = slow_query_threshold

    async def execute(self, statement: Statement, params: Params = None) -> QueryResult:
        return await run_statement(self.conn, statement, params, self.slow_query_threshold)


class QueryExecutor:
    """
    Runs statements against the connection pool.

    Pool exhaustion (``PoolTimeoutError``/``PoolQueueFullError``) is retried under
    ``retry_policy``; every other error surfaces on the first occurrence.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        retry_policy: Optional[RetryPolicy] = None,
        slow_query_threshold: Optional[float] = None,
    ):
        self.pool = pool
        self.retry_policy = retry_policy or RetryPolicy()
        self.slow_query_threshold = slow_query_threshold

    @classmethod
    def from_settings(cls, pool: ConnectionPool, settings: Settings) -> "QueryExecutor":
        return cls(
            pool,
            RetryPolicy(
                max_attempts=settings.query_retry_attempts,
                base_delay=settings.query_retry_base_delay,
            ),
            slow_query_threshold=settings.slow_query_threshold,
        )

    async def execute(
        self,
        statement: Statement,
        params: Params = None,
        *,
        timeout: Optional[float] = None,
    ) -> QueryResult:
        """
        Execute one statement in its own transaction.

        Args:
            statement: SQLAlchemy Core construct or SQL text with named parameters
            params: Bound parameter values
            timeout: Deadline in seconds covering the call and all its retries

        Returns:
            Buffered QueryResult

        Raises:
            PoolTimeoutError, PoolQueueFullError: Pool still exhausted after the last attempt
            QueryTimeoutError: The deadline expired
            AlreadyExistsError, PersistenceError: The store rejected a write
        """
        if timeout is None:
            return await self._run_once(statement, params)
        try:
            return await asyncio.wait_for(self._run_once(statement, params), timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Query exceeded deadline of {timeout:.2f}s")
            raise QueryTimeoutError(timeout) from e

    @retry_on_pool_exhaustion
    async def _run_once(self, statement: Statement, params: Params) -> QueryResult:
        async with self.pool.connection() as conn:
            async with conn.begin():
                return await run_statement(conn, statement, params, self.slow_query_threshold)

    @asynccontextmanager
    async def transaction(self, *, timeout: Optional[float] = None) -> AsyncIterator[BoundExecutor]:
        """
        Run several statements atomically on one pooled connection.

        Commits when the block exits normally and rolls back on any exception.

        Args:
            timeout: Seconds to wait for a connection on each acquire attempt
        """
        conn = await self._acquire(timeout)
        try:
            async with conn.begin():
                yield BoundExecutor(conn, self.slow_query_threshold)
        finally:
            await self.pool.release(conn)

    @retry_on_pool_exhaustion
    async def _acquire(self, timeout: Optional[float]) -> AsyncConnection:
        return await self.pool.acquire(timeout)
