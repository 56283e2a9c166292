"""
Property image repository.
Stores image URLs and featured flags; the files themselves live in external storage.
"""

from sqlalchemy import select
from typing import List, Sequence
import logging

from rental_catalog.models.image import PropertyImage
from rental_catalog.repositories.base import BaseRepository, Executor
from rental_catalog.schemas.image import PropertyImageCreate, PropertyImageRead

logger = logging.getLogger(__name__)


class ImageRepository(BaseRepository[PropertyImage, PropertyImageRead]):
    """Repository for images attached to properties."""

    def __init__(self, executor: Executor):
        super().__init__(PropertyImage, PropertyImageRead, executor)

    async def add_image(self, property_id: str, image_data: PropertyImageCreate) -> str:
        """
        Attach an image to a property.

        Raises:
            PersistenceError: If the property does not exist
        """
        values = image_data.model_dump()
        values["property_id"] = property_id
        try:
            image_id = await self.create(values)
            logger.info(f"Added image {image_id} to property {property_id}")
            return image_id
        except Exception as e:
            logger.error(f"Failed to add image to property {property_id}: {e}")
            raise

    async def get_by_property_id(self, property_id: str) -> List[PropertyImageRead]:
        """Images of one property in insertion order."""
        return await self.get_by_property_ids([property_id])

    async def get_by_property_ids(self, property_ids: Sequence[str]) -> List[PropertyImageRead]:
        """
        Images of many properties in a single query.

        Args:
            property_ids: Parent property IDs; an empty sequence issues no query

        Returns:
            Images ordered by property, then insertion order
        """
        if not property_ids:
            return []

        query = (
            select(self.table)
            .where(self.table.c.property_id.in_(list(property_ids)))
            .order_by(self.table.c.property_id, self.table.c.created_at, self.table.c.id)
        )
        result = await self.executor.execute(query)
        logger.debug(f"Fetched {len(result)} image(s) for {len(property_ids)} property(ies)")
        return [self._to_record(row) for row in result]

    async def delete_image(self, image_id: str) -> bool:
        deleted = await self.delete(image_id)
        if deleted:
            logger.info(f"Deleted image {image_id}")
        return deleted
