"""
Bulk aggregation of property children.
Attaches images and features to a page of properties with one query per child table.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Sequence

from rental_catalog.repositories.base import Executor
from rental_catalog.repositories.feature import FeatureRepository
from rental_catalog.repositories.image import ImageRepository
from rental_catalog.schemas.feature import FeatureRead, PropertyFeatureRead
from rental_catalog.schemas.image import PropertyImageRead
from rental_catalog.schemas.property import PropertyRead, PropertySummary, PropertyWithDetails

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URL = "/placeholder.svg"


def select_primary_image(images: Sequence[PropertyImageRead], placeholder: str = PLACEHOLDER_IMAGE_URL) -> str:
    """URL of the first featured image, or the placeholder. Never picked by position alone."""
    for image in images:
        if image.is_featured:
            return image.image_url
    return placeholder


class PropertyAggregator:
    """
    Joins properties with their images and features.

    For N properties the cost is the parent query plus at most two child
    queries, never one per property.
    """

    def __init__(self, executor: Executor, placeholder_image_url: str = PLACEHOLDER_IMAGE_URL):
        self.images = ImageRepository(executor)
        self.features = FeatureRepository(executor)
        self.placeholder_image_url = placeholder_image_url

    async def bulk_fetch_images(self, property_ids: Sequence[str]) -> List[PropertyImageRead]:
        return await self.images.get_by_property_ids(property_ids)

    async def bulk_fetch_features(self, property_ids: Sequence[str]) -> List[PropertyFeatureRead]:
        return await self.features.get_by_property_ids(property_ids)

    async def assemble(self, properties: Sequence[PropertyRead]) -> List[PropertyWithDetails]:
        """
        Attach images, features and the primary image to each property.

        Both child fetches run concurrently and the result is built only after
        both complete. Parent order is preserved.

        Args:
            properties: Parent records, typically one page of a search

        Returns:
            Detailed records in the same order
        """
        if not properties:
            return []

        property_ids = [prop.id for prop in properties]
        images, features = await asyncio.gather(
            self.bulk_fetch_images(property_ids),
            self.bulk_fetch_features(property_ids),
        )

        images_by_property: Dict[str, List[PropertyImageRead]] = defaultdict(list)
        for image in images:
            images_by_property[image.property_id].append(image)

        features_by_property: Dict[str, List[FeatureRead]] = defaultdict(list)
        for feature in features:
            features_by_property[feature.property_id].append(
                FeatureRead(id=feature.id, name=feature.name, icon_name=feature.icon_name)
            )

        logger.debug(
            f"Assembled {len(properties)} property(ies) with {len(images)} image(s) "
            f"and {len(features)} feature link(s)"
        )

        detailed = []
        for prop in properties:
            prop_images = images_by_property.get(prop.id, [])
            detailed.append(
                PropertyWithDetails(
                    **prop.model_dump(),
                    images=prop_images,
                    features=features_by_property.get(prop.id, []),
                    primary_image_url=select_primary_image(prop_images, self.placeholder_image_url),
                )
            )
        return detailed

    async def summarize(self, properties: Sequence[PropertyRead]) -> List[PropertySummary]:
        """Card-sized views of ``assemble``'s output."""
        return [to_summary(prop) for prop in await self.assemble(properties)]


def to_summary(prop: PropertyWithDetails) -> PropertySummary:
    return PropertySummary(
        id=prop.id,
        title=prop.title,
        location=prop.location,
        price=prop.price,
        bedrooms=prop.bedrooms,
        bathrooms=prop.bathrooms,
        area=prop.area,
        status=prop.status,
        image=prop.primary_image_url,
        features=prop.features,
    )
