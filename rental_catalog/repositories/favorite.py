"""
Favorite repository: tenants' saved properties.
"""

from sqlalchemy import select, insert, delete
from typing import List
import logging

from rental_catalog.database import utcnow
from rental_catalog.models.favorite import Favorite
from rental_catalog.repositories.base import Executor

logger = logging.getLogger(__name__)


class FavoriteRepository:
    """
    Repository for the favorites association.

    The (tenant_id, property_id) key is unique: a second add raises
    ``AlreadyExistsError`` and a second remove returns False.
    """

    def __init__(self, executor: Executor):
        self.executor = executor
        self.table = Favorite.__table__

    async def add_favorite(self, tenant_id: str, property_id: str) -> None:
        """
        Save a property for a tenant.

        Raises:
            AlreadyExistsError: If the property is already saved
            PersistenceError: If the tenant or property does not exist
        """
        try:
            await self.executor.execute(
                insert(self.table).values(
                    tenant_id=tenant_id,
                    property_id=property_id,
                    created_at=utcnow(),
                )
            )
            logger.info(f"Tenant {tenant_id} saved property {property_id}")
        except Exception as e:
            logger.error(f"Failed to save property {property_id} for tenant {tenant_id}: {e}")
            raise

    async def remove_favorite(self, tenant_id: str, property_id: str) -> bool:
        result = await self.executor.execute(
            delete(self.table).where(
                self.table.c.tenant_id == tenant_id,
                self.table.c.property_id == property_id,
            )
        )
        return result.rowcount > 0

    async def is_favorite(self, tenant_id: str, property_id: str) -> bool:
        result = await self.executor.execute(
            select(self.table.c.property_id).where(
                self.table.c.tenant_id == tenant_id,
                self.table.c.property_id == property_id,
            )
        )
        return result.first() is not None

    async def get_property_ids(self, tenant_id: str) -> List[str]:
        """IDs of a tenant's saved properties, most recent first."""
        result = await self.executor.execute(
            select(self.table.c.property_id)
            .where(self.table.c.tenant_id == tenant_id)
            .order_by(self.table.c.created_at.desc())
        )
        return result.scalars()
