"""
Base repository class with common CRUD operations built on the query executor.
Provides generic statements that specific repositories extend and wrap in typed records.
"""

from sqlalchemy import select, insert, update, delete, func
from pydantic import BaseModel
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type, Union
import logging

from rental_catalog.database import Base, new_id, utcnow
from rental_catalog.executor import BoundExecutor, QueryExecutor

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)
RecordType = TypeVar("RecordType", bound=BaseModel)

Executor = Union[QueryExecutor, BoundExecutor]


class BaseRepository(Generic[ModelType, RecordType]):
    """
    Base repository class providing common CRUD operations.

    Every statement goes through the executor it was constructed with: the shared
    ``QueryExecutor`` for standalone calls, or a ``BoundExecutor`` to take part in
    a caller's transaction. Rows come back as pydantic records, never as driver rows.
    """

    def __init__(self, model: Type[ModelType], record: Type[RecordType], executor: Executor):
        """
        Initialize repository with model class, record schema and executor.

        Args:
            model: SQLAlchemy model class
            record: Pydantic schema rows are converted into
            executor: QueryExecutor or BoundExecutor
        """
        self.model = model
        self.record = record
        self.executor = executor
        self.table = model.__table__

    def _to_record(self, row: Dict[str, Any]) -> RecordType:
        return self.record.model_validate(row)

    def _stamp(self, values: Dict[str, Any], creating: bool) -> Dict[str, Any]:
        """Fill in layer-owned columns: id and timestamps."""
        values = dict(values)
        now = utcnow()
        columns = self.table.c
        if creating:
            if "id" in columns and not values.get("id"):
                values["id"] = new_id()
            if "created_at" in columns:
                values.setdefault("created_at", now)
        if "updated_at" in columns:
            values["updated_at"] = now
        return values

    async def create(self, values: Dict[str, Any]) -> str:
        """
        Insert a new record with a freshly minted id.

        Args:
            values: Column values for the new record

        Returns:
            The new record's id

        Raises:
            PersistenceError: If the store rejects the insert
        """
        values = self._stamp(values, creating=True)
        try:
            await self.executor.execute(insert(self.table).values(**values))
            logger.debug(f"Created {self.model.__name__} with id: {values['id']}")
            return values["id"]
        except Exception as e:
            logger.error(f"Failed to create {self.model.__name__}: {e}")
            raise

    async def get_by_id(self, id: str) -> Optional[RecordType]:
        """
        Get a record by its ID.

        Returns:
            Record if found, None otherwise
        """
        result = await self.executor.execute(select(self.table).where(self.table.c.id == id))
        row = result.first()
        if row is None:
            logger.debug(f"{self.model.__name__} with id {id} not found")
            return None
        return self._to_record(row)

    async def get_multi(
        self,
        skip: int = 0,
        limit: Optional[int] = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[RecordType]:
        """
        Get multiple records with optional equality filtering, pagination, and ordering.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return (None for no limit)
            filters: Column -> value (or list of values) filters
            order_by: Column name to order by (prefix with '-' for descending)

        Returns:
            List of records
        """
        query = select(self.table)
        query = self._apply_filters(query, filters)

        if order_by:
            name = order_by.lstrip('-')
            if name in self.table.c:
                column = self.table.c[name]
                query = query.order_by(column.desc() if order_by.startswith('-') else column.asc())
        elif "created_at" in self.table.c:
            # Default ordering by created_at descending
            query = query.order_by(self.table.c.created_at.desc())

        query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)

        result = await self.executor.execute(query)
        logger.debug(f"Retrieved {len(result)} {self.model.__name__} records")
        return [self._to_record(row) for row in result]

    async def update(self, id: str, values: Dict[str, Any]) -> bool:
        """
        Update a record by its ID in a single statement.

        Returns:
            True if a row was updated, False if not found
        """
        values = self._stamp(values, creating=False)
        try:
            result = await self.executor.execute(
                update(self.table).where(self.table.c.id == id).values(**values)
            )
        except Exception as e:
            logger.error(f"Failed to update {self.model.__name__} {id}: {e}")
            raise

        updated = result.rowcount > 0
        if not updated:
            logger.debug(f"{self.model.__name__} with id {id} not found for update")
        return updated

    async def delete(self, id: str) -> bool:
        """
        Delete a record by its ID.

        Returns:
            True if record was deleted, False if not found
        """
        try:
            result = await self.executor.execute(delete(self.table).where(self.table.c.id == id))
        except Exception as e:
            logger.error(f"Failed to delete {self.model.__name__} {id}: {e}")
            raise

        deleted = result.rowcount > 0
        if deleted:
            logger.debug(f"Deleted {self.model.__name__} with id: {id}")
        return deleted

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count records with optional equality filtering."""
        query = self._apply_filters(select(func.count()).select_from(self.table), filters)
        result = await self.executor.execute(query)
        return result.scalar() or 0

    async def exists(self, id: str) -> bool:
        """Check if a record exists by its ID."""
        result = await self.executor.execute(select(self.table.c.id).where(self.table.c.id == id))
        return result.first() is not None

    async def get_by_field(self, field: str, value: Any) -> Optional[RecordType]:
        """
        Get a record by a specific column value.

        Raises:
            ValueError: If the column does not exist
        """
        if field not in self.table.c:
            raise ValueError(f"Field '{field}' does not exist on {self.model.__name__}")

        result = await self.executor.execute(select(self.table).where(self.table.c[field] == value))
        row = result.first()
        return self._to_record(row) if row else None

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        if not filters:
            return query
        for name, value in filters.items():
            if name not in self.table.c:
                continue
            column = self.table.c[name]
            if isinstance(value, (list, tuple, set)):
                query = query.where(column.in_(list(value)))
            else:
                query = query.where(column == value)
        return query
