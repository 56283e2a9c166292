"""
Utility modules for the rental catalog.
"""

from .exceptions import (
    CatalogError,
    PoolError,
    PoolTimeoutError,
    PoolQueueFullError,
    PoolClosedError,
    QueryTimeoutError,
    PersistenceError,
    AlreadyExistsError,
    NotFoundError,
    PropertyNotFoundError,
    UserNotFoundError,
    NotAvailableError,
    PropertyNotAvailableError,
    PropertyOwnershipError
)

from .retry import RetryPolicy, retry_on_pool_exhaustion

# PoolMonitor is imported from rental_catalog.utils.pool_monitor to avoid circular imports

__all__ = [
    # Exceptions
    "CatalogError",
    "PoolError",
    "PoolTimeoutError",
    "PoolQueueFullError",
    "PoolClosedError",
    "QueryTimeoutError",
    "PersistenceError",
    "AlreadyExistsError",
    "NotFoundError",
    "PropertyNotFoundError",
    "UserNotFoundError",
    "NotAvailableError",
    "PropertyNotAvailableError",
    "PropertyOwnershipError",

    # Retry
    "RetryPolicy",
    "retry_on_pool_exhaustion",
]
