"""
Property repository for rental listings with filtered search and landlord statistics.
All reads return flat PropertyRead records; images and features are attached by the aggregator.
"""

from sqlalchemy import select, update, delete, func
from typing import Optional, List, Sequence
from decimal import Decimal
import logging

from rental_catalog.database import utcnow
from rental_catalog.models.favorite import Favorite
from rental_catalog.models.property import Property, PropertyStatus
from rental_catalog.repositories.base import BaseRepository, Executor
from rental_catalog.repositories.filters import build_property_filter
from rental_catalog.schemas.property import (
    PropertyCreate,
    PropertyRead,
    PropertySearchFilters,
    PropertyStats,
    PropertyUpdate,
)

logger = logging.getLogger(__name__)


class PropertyRepository(BaseRepository[Property, PropertyRead]):
    """
    Repository for property listings.

    Mutations are single statements. Deleting a property relies on the store's
    ON DELETE CASCADE for images, feature links and favorites.
    """

    def __init__(self, executor: Executor):
        super().__init__(Property, PropertyRead, executor)

    async def create_property(self, landlord_id: str, property_data: PropertyCreate) -> str:
        """
        Create a new property owned by a landlord.

        Args:
            landlord_id: ID of the owning landlord
            property_data: Validated listing fields

        Returns:
            ID of the new property

        Raises:
            PersistenceError: If the landlord does not exist or a constraint fails
        """
        values = property_data.model_dump()
        values["landlord_id"] = landlord_id
        try:
            property_id = await self.create(values)
            logger.info(f"Created property: {property_data.title} (ID: {property_id})")
            return property_id
        except Exception as e:
            logger.error(f"Failed to create property for landlord {landlord_id}: {e}")
            raise

    async def search(
        self,
        filters: Optional[PropertySearchFilters] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[PropertyRead]:
        """
        Search properties with sparse filters.

        Args:
            filters: Search criteria; absent fields do not constrain the result
            skip: Number of records to skip
            limit: Maximum number of records to return (None for no limit)

        Returns:
            Matching properties, newest first unless the filters ask for another order
        """
        clause = build_property_filter(filters)
        query = (
            select(self.table)
            .where(clause.predicate)
            .order_by(*clause.order_by)
            .offset(skip)
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.executor.execute(query)
        logger.debug(f"Property search matched {len(result)} record(s)")
        return [self._to_record(row) for row in result]

    async def count(self, filters: Optional[PropertySearchFilters] = None) -> int:
        """Count properties matching the same filters as ``search``."""
        clause = build_property_filter(filters)
        query = select(func.count()).select_from(self.table).where(clause.predicate)
        result = await self.executor.execute(query)
        return result.scalar() or 0

    async def get_by_landlord(
        self,
        landlord_id: str,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[PropertyRead]:
        """Landlord's properties, most recent first."""
        return await self.search(PropertySearchFilters(landlord_id=landlord_id), skip, limit)

    async def get_by_ids(self, property_ids: Sequence[str]) -> List[PropertyRead]:
        """
        Fetch several properties in one query.

        Returns:
            Found properties in the order of ``property_ids``; unknown ids are skipped
        """
        if not property_ids:
            return []

        result = await self.executor.execute(
            select(self.table).where(self.table.c.id.in_(list(property_ids)))
        )
        by_id = {row["id"]: row for row in result}
        return [self._to_record(by_id[pid]) for pid in property_ids if pid in by_id]

    async def update_property(
        self,
        property_id: str,
        property_data: PropertyUpdate,
        landlord_id: Optional[str] = None,
    ) -> bool:
        """
        Replace all mutable fields of a property in one statement.

        Images and feature links are left untouched.

        Args:
            property_id: Property to update
            property_data: New field values
            landlord_id: When given, only a property owned by this landlord is updated

        Returns:
            True if a row was updated
        """
        values = property_data.model_dump()
        values["updated_at"] = utcnow()

        query = update(self.table).where(self.table.c.id == property_id)
        if landlord_id is not None:
            query = query.where(self.table.c.landlord_id == landlord_id)

        try:
            result = await self.executor.execute(query.values(**values))
        except Exception as e:
            logger.error(f"Failed to update property {property_id}: {e}")
            raise

        updated = result.rowcount > 0
        if updated:
            logger.info(f"Updated property {property_id}")
        return updated

    async def update_status(self, property_id: str, status: PropertyStatus) -> bool:
        """
        Set a property's status unconditionally.

        Use the rental allocator for AVAILABLE -> RENTED.
        """
        updated = await self.update(property_id, {"status": status})
        if updated:
            logger.info(f"Property {property_id} status set to {status.value}")
        return updated

    async def delete_property(self, property_id: str, landlord_id: Optional[str] = None) -> bool:
        """
        Delete a property; its images, feature links and favorites go with it.

        Returns:
            True if a property was deleted
        """
        query = delete(self.table).where(self.table.c.id == property_id)
        if landlord_id is not None:
            query = query.where(self.table.c.landlord_id == landlord_id)

        try:
            result = await self.executor.execute(query)
        except Exception as e:
            logger.error(f"Failed to delete property {property_id}: {e}")
            raise

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted property {property_id}")
        return deleted

    async def get_landlord_stats(self, landlord_id: str) -> PropertyStats:
        """
        Per-status counts and revenue for one landlord.

        Revenue is the summed rent of RENTED properties.
        """
        query = (
            select(
                self.table.c.status,
                func.count(self.table.c.id).label("total"),
                func.sum(self.table.c.price).label("revenue"),
            )
            .where(self.table.c.landlord_id == landlord_id)
            .group_by(self.table.c.status)
        )
        result = await self.executor.execute(query)

        counts = {status: 0 for status in PropertyStatus}
        revenue = Decimal("0")
        for row in result:
            status = PropertyStatus(row["status"])
            counts[status] = row["total"]
            if status is PropertyStatus.RENTED and row["revenue"] is not None:
                revenue = Decimal(str(row["revenue"]))

        return PropertyStats(
            total_properties=sum(counts.values()),
            occupied_properties=counts[PropertyStatus.RENTED],
            vacant_properties=counts[PropertyStatus.AVAILABLE],
            maintenance_properties=counts[PropertyStatus.MAINTENANCE],
            total_revenue=revenue,
        )

    async def get_favorites(self, tenant_id: str) -> List[PropertyRead]:
        """Properties a tenant has saved, most recently saved first."""
        favorites = Favorite.__table__
        query = (
            select(self.table)
            .join(favorites, favorites.c.property_id == self.table.c.id)
            .where(favorites.c.tenant_id == tenant_id)
            .order_by(favorites.c.created_at.desc(), self.table.c.id.desc())
        )
        result = await self.executor.execute(query)
        return [self._to_record(row) for row in result]
