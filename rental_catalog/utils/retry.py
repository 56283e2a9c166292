"""
Retry policy for transient connection pool exhaustion.
The policy is defined once here and applied to query primitives with a decorator.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

from rental_catalog.utils.exceptions import PoolQueueFullError, PoolTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with a linearly increasing backoff."""

    max_attempts: int = 3
    base_delay: float = 0.1
    retry_on: Tuple[Type[BaseException], ...] = (PoolTimeoutError, PoolQueueFullError)

    def delay_for(self, attempt: int) -> float:
        """Delay to sleep after the given (1-based) failed attempt."""
        return attempt * self.base_delay

    async def run(self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Run an async operation, retrying on transient pool errors.

        Args:
            operation: Coroutine function to call
            *args: Positional arguments for the operation
            **kwargs: Keyword arguments for the operation

        Returns:
            Whatever the operation returns

        Raises:
            The last transient error once all attempts are used, or any
            other error immediately
        """
        attempt = 1
        while True:
            try:
                return await operation(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    logger.error(f"Giving up after {attempt} attempts: {e}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed ({e.__class__.__name__}), "
                    f"retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                attempt += 1


def retry_on_pool_exhaustion(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """
    Decorate an async method so it runs under ``self.retry_policy``.

    The policy is read at call time, so each instance carries its own limits.
    """

    @functools.wraps(func)
    async def wrapper(self, *args: Any, **kwargs: Any) -> T:
        return await self.retry_policy.run(func, self, *args, **kwargs)

    return wrapper
