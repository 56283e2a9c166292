"""
Catalog service for the composite listing operations.
Combines filters, repositories, bulk aggregation and rental allocation behind one interface.
"""

from typing import Optional, List, Sequence
import logging

from rental_catalog.executor import QueryExecutor
from rental_catalog.models.property import PropertyStatus
from rental_catalog.repositories.favorite import FavoriteRepository
from rental_catalog.repositories.feature import FeatureRepository
from rental_catalog.repositories.image import ImageRepository
from rental_catalog.repositories.property import PropertyRepository
from rental_catalog.schemas.image import PropertyImageCreate
from rental_catalog.schemas.property import (
    LandlordDashboard,
    PropertyCreate,
    PropertySearchFilters,
    PropertySummary,
    PropertyUpdate,
    PropertyWithDetails,
    RentalReceipt,
)
from rental_catalog.services.aggregator import PLACEHOLDER_IMAGE_URL, PropertyAggregator
from rental_catalog.services.rental import RentalAllocator
from rental_catalog.utils.exceptions import PropertyNotFoundError, PropertyOwnershipError

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Catalog service for listing management, search and rentals.

    Read paths run on the shared executor. Multi-statement writes run in one
    transaction with repositories bound to that transaction's connection, so
    a failure anywhere rolls the whole operation back.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        placeholder_image_url: str = PLACEHOLDER_IMAGE_URL,
        featured_limit: int = 8,
        dashboard_recent_limit: int = 5,
    ):
        self.executor = executor
        self.property_repo = PropertyRepository(executor)
        self.favorite_repo = FavoriteRepository(executor)
        self.aggregator = PropertyAggregator(executor, placeholder_image_url)
        self.allocator = RentalAllocator(executor)
        self.featured_limit = featured_limit
        self.dashboard_recent_limit = dashboard_recent_limit

    async def search_properties(
        self,
        filters: Optional[PropertySearchFilters] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[PropertyWithDetails]:
        """
        Search properties and attach their images and features.

        Args:
            filters: Sparse search criteria
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Matching properties with details, in search order
        """
        properties = await self.property_repo.search(filters, skip=skip, limit=limit)
        logger.info(f"Property search returned {len(properties)} result(s)")
        return await self.aggregator.assemble(properties)

    async def get_property_details(self, property_id: str) -> Optional[PropertyWithDetails]:
        """Property with images and features, or None if it does not exist."""
        prop = await self.property_repo.get_by_id(property_id)
        if prop is None:
            return None
        detailed = await self.aggregator.assemble([prop])
        return detailed[0]

    async def create_listing(
        self,
        landlord_id: str,
        property_data: PropertyCreate,
        images: Sequence[PropertyImageCreate] = (),
        feature_ids: Sequence[str] = (),
    ) -> str:
        """
        Create a property with its images and feature links atomically.

        When no image is flagged as featured, the first image becomes the
        primary one. A failure at any step leaves no trace of the listing.

        Args:
            landlord_id: Owning landlord
            property_data: Listing fields
            images: Images to attach
            feature_ids: Features to link

        Returns:
            ID of the new property

        Raises:
            PersistenceError: If any insert is rejected
        """
        images = list(images)
        if images and not any(image.is_featured for image in images):
            images[0] = images[0].model_copy(update={"is_featured": True})

        async with self.executor.transaction() as tx:
            property_id = await PropertyRepository(tx).create_property(landlord_id, property_data)

            image_repo = ImageRepository(tx)
            for image in images:
                await image_repo.add_image(property_id, image)

            feature_repo = FeatureRepository(tx)
            for feature_id in feature_ids:
                await feature_repo.add_property_feature(property_id, feature_id)

        logger.info(
            f"Created listing {property_id} with {len(images)} image(s) "
            f"and {len(feature_ids)} feature(s)"
        )
        return property_id

    async def update_listing(
        self,
        property_id: str,
        landlord_id: str,
        property_data: PropertyUpdate,
        feature_ids: Optional[Sequence[str]] = None,
        new_images: Sequence[PropertyImageCreate] = (),
        removed_image_ids: Sequence[str] = (),
    ) -> PropertyWithDetails:
        """
        Update a landlord's listing in one transaction.

        Args:
            property_id: Listing to update
            landlord_id: Landlord performing the update; must own the listing
            property_data: New field values
            feature_ids: Replacement feature set, or None to leave features unchanged
            new_images: Images to add
            removed_image_ids: Images of this listing to delete

        Returns:
            The updated listing with details

        Raises:
            PropertyNotFoundError: If the listing does not exist
            PropertyOwnershipError: If the landlord does not own it
        """
        async with self.executor.transaction() as tx:
            property_repo = PropertyRepository(tx)
            await self._check_ownership(property_repo, property_id, landlord_id)
            await property_repo.update_property(property_id, property_data, landlord_id=landlord_id)

            image_repo = ImageRepository(tx)
            if removed_image_ids:
                owned = {image.id for image in await image_repo.get_by_property_id(property_id)}
                for image_id in removed_image_ids:
                    if image_id in owned:
                        await image_repo.delete_image(image_id)
            for image in new_images:
                await image_repo.add_image(property_id, image)

            if feature_ids is not None:
                feature_repo = FeatureRepository(tx)
                await feature_repo.clear_property_features(property_id)
                for feature_id in feature_ids:
                    await feature_repo.add_property_feature(property_id, feature_id)

        logger.info(f"Landlord {landlord_id} updated listing {property_id}")
        return await self.get_property_details(property_id)

    async def delete_listing(self, property_id: str, landlord_id: str) -> None:
        """
        Delete a landlord's listing along with its images, features and favorites.

        Raises:
            PropertyNotFoundError: If the listing does not exist
            PropertyOwnershipError: If the landlord does not own it
        """
        async with self.executor.transaction() as tx:
            property_repo = PropertyRepository(tx)
            await self._check_ownership(property_repo, property_id, landlord_id)
            await property_repo.delete_property(property_id, landlord_id=landlord_id)

        logger.info(f"Landlord {landlord_id} deleted listing {property_id}")

    async def get_featured_properties(self, limit: Optional[int] = None) -> List[PropertySummary]:
        """Available properties, most expensive first."""
        filters = PropertySearchFilters(status=PropertyStatus.AVAILABLE, sort_by="price", sort_order="desc")
        properties = await self.property_repo.search(filters, limit=limit or self.featured_limit)
        return await self.aggregator.summarize(properties)

    async def get_landlord_dashboard(self, landlord_id: str, recent: Optional[int] = None) -> LandlordDashboard:
        """Status counts, rental revenue and the landlord's most recent listings."""
        stats = await self.property_repo.get_landlord_stats(landlord_id)
        recent_properties = await self.property_repo.get_by_landlord(
            landlord_id, limit=recent or self.dashboard_recent_limit
        )
        return LandlordDashboard(
            property_stats=stats,
            recent_properties=await self.aggregator.summarize(recent_properties),
        )

    async def get_favorite_properties(self, tenant_id: str) -> List[PropertyWithDetails]:
        properties = await self.property_repo.get_favorites(tenant_id)
        return await self.aggregator.assemble(properties)

    async def rent_property(self, property_id: str, tenant_id: str) -> RentalReceipt:
        """
        Rent an available property to a tenant.

        Raises:
            PropertyNotFoundError: If the property does not exist
            PropertyNotAvailableError: If it is not AVAILABLE
        """
        return await self.allocator.rent(property_id, tenant_id)

    async def _check_ownership(self, property_repo: PropertyRepository, property_id: str, landlord_id: str) -> None:
        prop = await property_repo.get_by_id(property_id)
        if prop is None:
            raise PropertyNotFoundError(property_id)
        if prop.landlord_id != landlord_id:
            logger.warning(f"Landlord {landlord_id} attempted to modify listing {property_id} owned by {prop.landlord_id}")
            raise PropertyOwnershipError()
