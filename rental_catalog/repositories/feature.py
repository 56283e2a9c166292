"""
Feature repository: the shared amenity catalog and its links to properties.
"""

from sqlalchemy import select, insert, delete
from typing import List, Optional, Sequence
import logging

from rental_catalog.models.feature import Feature, PropertyFeature
from rental_catalog.repositories.base import BaseRepository, Executor
from rental_catalog.schemas.feature import FeatureCreate, FeatureRead, PropertyFeatureRead

logger = logging.getLogger(__name__)


class FeatureRepository(BaseRepository[Feature, FeatureRead]):
    """
    Repository for features and the property_features association.
    Features are shared; removing a link never deletes the feature itself.
    """

    def __init__(self, executor: Executor):
        super().__init__(Feature, FeatureRead, executor)
        self.links = PropertyFeature.__table__

    async def get_all(self) -> List[FeatureRead]:
        """All features ordered by name."""
        return await self.get_multi(limit=None, order_by="name")

    async def create_feature(self, feature_data: FeatureCreate) -> str:
        """
        Add a feature to the catalog.

        Raises:
            AlreadyExistsError: If a feature with the same name exists
        """
        try:
            feature_id = await self.create(feature_data.model_dump())
            logger.info(f"Created feature: {feature_data.name} (ID: {feature_id})")
            return feature_id
        except Exception as e:
            logger.error(f"Failed to create feature {feature_data.name}: {e}")
            raise

    async def add_property_feature(self, property_id: str, feature_id: str) -> None:
        """
        Link a feature to a property.

        Raises:
            AlreadyExistsError: If the link already exists
            PersistenceError: If the property or feature does not exist
        """
        try:
            await self.executor.execute(
                insert(self.links).values(property_id=property_id, feature_id=feature_id)
            )
        except Exception as e:
            logger.error(f"Failed to link feature {feature_id} to property {property_id}: {e}")
            raise

    async def remove_property_feature(self, property_id: str, feature_id: str) -> bool:
        """Remove one link. Returns False if it did not exist."""
        result = await self.executor.execute(
            delete(self.links).where(
                self.links.c.property_id == property_id,
                self.links.c.feature_id == feature_id,
            )
        )
        return result.rowcount > 0

    async def clear_property_features(self, property_id: str) -> int:
        """
        Remove every feature link of a property.

        Returns:
            Number of links removed
        """
        result = await self.executor.execute(
            delete(self.links).where(self.links.c.property_id == property_id)
        )
        logger.debug(f"Cleared {result.rowcount} feature link(s) from property {property_id}")
        return result.rowcount

    async def get_by_property_id(self, property_id: str) -> List[FeatureRead]:
        rows = await self.get_by_property_ids([property_id])
        return [FeatureRead.model_validate(row.model_dump()) for row in rows]

    async def get_by_property_ids(self, property_ids: Sequence[str]) -> List[PropertyFeatureRead]:
        """
        Features of many properties in one joined query.

        Args:
            property_ids: Parent property IDs; an empty sequence issues no query

        Returns:
            One row per link, tagged with its property_id
        """
        if not property_ids:
            return []

        query = (
            select(
                self.links.c.property_id,
                self.table.c.id,
                self.table.c.name,
                self.table.c.icon_name,
            )
            .join(self.table, self.table.c.id == self.links.c.feature_id)
            .where(self.links.c.property_id.in_(list(property_ids)))
            .order_by(self.links.c.property_id, self.table.c.name)
        )
        result = await self.executor.execute(query)
        logger.debug(f"Fetched {len(result)} feature link(s) for {len(property_ids)} property(ies)")
        return [PropertyFeatureRead.model_validate(row) for row in result]

    async def get_by_name(self, name: str) -> Optional[FeatureRead]:
        return await self.get_by_field("name", name)
