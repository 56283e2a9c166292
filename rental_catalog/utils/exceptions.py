"""
Custom exception classes for the rental catalog layer.
Each error carries a stable error code the request tier can translate into a user-facing outcome.
"""

from typing import Optional


class CatalogError(Exception):
    """Base catalog exception class."""

    error_code = "CATALOG_ERROR"

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error_code:
            self.error_code = error_code


# Connection pool exceptions
class PoolError(CatalogError):
    """Connection pool misuse or failure."""

    error_code = "POOL_ERROR"


class PoolTimeoutError(PoolError):
    """No connection became free before the acquire deadline."""

    error_code = "TIMEOUT"

    def __init__(self, timeout: float):
        super().__init__(f"Timed out after {timeout:.2f}s waiting for a database connection")
        self.timeout = timeout


class PoolQueueFullError(PoolError):
    """The waiter queue is already at its configured bound."""

    error_code = "QUEUE_FULL"

    def __init__(self, queue_limit: int):
        super().__init__(f"Connection queue limit reached ({queue_limit} waiters)")
        self.queue_limit = queue_limit


class PoolClosedError(PoolError):
    """The pool has been shut down."""

    error_code = "POOL_CLOSED"

    def __init__(self, detail: str = "Connection pool is closed"):
        super().__init__(detail)


class QueryTimeoutError(CatalogError):
    """The caller's deadline expired before the query and its retries finished."""

    error_code = "TIMEOUT"

    def __init__(self, timeout: float):
        super().__init__(f"Query exceeded its deadline of {timeout:.2f}s")
        self.timeout = timeout


# Persistence exceptions
class PersistenceError(CatalogError):
    """The store rejected a write."""

    error_code = "PERSISTENCE"


class AlreadyExistsError(PersistenceError):
    """A uniqueness constraint rejected the write."""

    error_code = "ALREADY_EXISTS"


# Lookup exceptions
class NotFoundError(CatalogError):
    """Resource not found exception."""

    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"
        super().__init__(detail)
        self.resource = resource
        self.resource_id = resource_id


class PropertyNotFoundError(NotFoundError):
    """Property not found exception."""

    def __init__(self, property_id: str):
        super().__init__("Property", property_id)


class UserNotFoundError(NotFoundError):
    """User not found exception."""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


# Business rule exceptions
class NotAvailableError(CatalogError):
    """A state transition guard failed."""

    error_code = "NOT_AVAILABLE"


class PropertyNotAvailableError(NotAvailableError):
    """The property was not AVAILABLE when the rental was attempted."""

    def __init__(self, property_id: str, current_status: Optional[str] = None):
        detail = f"Property {property_id} is not available for rent"
        if current_status:
            detail += f" (status: {current_status})"
        super().__init__(detail)
        self.property_id = property_id
        self.current_status = current_status


class PropertyOwnershipError(CatalogError):
    """Property ownership violation exception."""

    error_code = "FORBIDDEN"

    def __init__(self, detail: str = "You don't own this property"):
        super().__init__(detail)
