"""
Tests for repository classes.
Tests CRUD operations, typed misses, uniqueness and owner scoping against the database.
"""

import pytest
import uuid
from decimal import Decimal

from rental_catalog.models.property import PropertyStatus
from rental_catalog.models.user import UserRole
from rental_catalog.repositories import (
    FavoriteRepository,
    FeatureRepository,
    ImageRepository,
    PropertyRepository,
    UserRepository,
)
from rental_catalog.schemas.feature import FeatureCreate
from rental_catalog.schemas.property import PropertyUpdate
from rental_catalog.schemas.user import UserUpdate
from rental_catalog.utils.exceptions import AlreadyExistsError, PersistenceError
from tests.conftest import (
    FeatureFactory,
    ImageFactory,
    PropertyFactory,
    UserFactory,
    assert_property_matches,
    ids_of,
)


class TestUserRepository:
    """Test user repository functionality."""

    @pytest.mark.asyncio
    async def test_create_user(self, user_repository: UserRepository):
        """Test creating a user."""
        user_id = await UserFactory.create_user(
            user_repository, email="New.User@Example.com", name="New User", role=UserRole.TENANT
        )

        user = await user_repository.get_by_id(user_id)
        assert user is not None
        assert user.id == user_id
        assert user.email == "new.user@example.com"
        assert user.role == UserRole.TENANT
        assert user.created_at is not None
        assert user.updated_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_repository: UserRepository):
        """Test that a second signup with the same email is rejected."""
        await UserFactory.create_user(user_repository, email="dup@example.com")

        with pytest.raises(AlreadyExistsError):
            await UserFactory.create_user(user_repository, email="DUP@example.com")

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, user_repository: UserRepository):
        """Test getting a non-existent user."""
        assert await user_repository.get_by_id(str(uuid.uuid4())) is None

    @pytest.mark.asyncio
    async def test_get_by_email_ignores_case(self, user_repository: UserRepository):
        user_id = await UserFactory.create_user(user_repository, email="case@example.com")

        user = await user_repository.get_by_email("  CASE@Example.COM ")
        assert user is not None
        assert user.id == user_id
        assert await user_repository.get_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_update_profile(self, user_repository: UserRepository):
        user_id = await UserFactory.create_user(user_repository, name="Old Name")
        before = await user_repository.get_by_id(user_id)

        updated = await user_repository.update_profile(user_id, UserUpdate(name="New Name", phone="+20 100 000"))
        assert updated is True

        after = await user_repository.get_by_id(user_id)
        assert after.name == "New Name"
        assert after.phone == "+20 100 000"
        assert after.email == before.email
        assert after.updated_at >= before.updated_at

    @pytest.mark.asyncio
    async def test_update_profile_not_found(self, user_repository: UserRepository):
        assert await user_repository.update_profile(str(uuid.uuid4()), UserUpdate(name="Ghost")) is False

    @pytest.mark.asyncio
    async def test_password_hash_is_not_exposed(self, user_repository: UserRepository):
        user_id = await UserFactory.create_user(
            user_repository, email="secret@example.com", hashed_password="$2b$12$hash"
        )

        user = await user_repository.get_by_id(user_id)
        assert "hashed_password" not in user.model_dump()
        assert await user_repository.get_hashed_password("Secret@example.com") == "$2b$12$hash"
        assert await user_repository.get_hashed_password("missing@example.com") is None


class TestPropertyRepository:
    """Test property repository functionality."""

    @pytest.mark.asyncio
    async def test_create_property(self, property_repository: PropertyRepository, test_landlord: str):
        """Test creating a property."""
        data = PropertyFactory.create_property_data(title="Nile View", price=Decimal("2500.00"))
        property_id = await property_repository.create_property(test_landlord, data)

        prop = await property_repository.get_by_id(property_id)
        assert prop is not None
        assert prop.landlord_id == test_landlord
        assert_property_matches(prop, data)

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, property_repository: PropertyRepository):
        assert await property_repository.get_by_id(str(uuid.uuid4())) is None

    @pytest.mark.asyncio
    async def test_get_by_landlord(
        self, property_repository: PropertyRepository, user_repository: UserRepository, test_landlord: str
    ):
        other = await UserFactory.create_user(user_repository)
        mine = [await PropertyFactory.create_property(property_repository, test_landlord) for _ in range(3)]
        await PropertyFactory.create_property(property_repository, other)

        results = await property_repository.get_by_landlord(test_landlord)
        assert set(ids_of(results)) == set(mine)
        # Most recent first
        assert ids_of(results)[0] == mine[-1]

    @pytest.mark.asyncio
    async def test_get_by_ids_keeps_requested_order(self, property_repository: PropertyRepository, test_landlord: str):
        ids = [await PropertyFactory.create_property(property_repository, test_landlord) for _ in range(3)]
        wanted = [ids[2], "missing", ids[0]]

        results = await property_repository.get_by_ids(wanted)
        assert ids_of(results) == [ids[2], ids[0]]
        assert await property_repository.get_by_ids([]) == []

    @pytest.mark.asyncio
    async def test_update_property(self, property_repository: PropertyRepository, test_property: str):
        """Test replacing a property's fields."""
        before = await property_repository.get_by_id(test_property)
        data = PropertyUpdate(**PropertyFactory.create_property_data(
            title="Renovated", price=Decimal("1750.00"), bathrooms=Decimal("2.5")
        ).model_dump())

        assert await property_repository.update_property(test_property, data) is True

        after = await property_repository.get_by_id(test_property)
        assert_property_matches(after, data)
        assert after.created_at == before.created_at
        assert after.updated_at >= before.updated_at

    @pytest.mark.asyncio
    async def test_update_property_scoped_to_owner(
        self, property_repository: PropertyRepository, test_property: str
    ):
        data = PropertyUpdate(**PropertyFactory.create_property_data(title="Hijacked").model_dump())

        assert await property_repository.update_property(test_property, data, landlord_id="someone-else") is False
        assert (await property_repository.get_by_id(test_property)).title == "Test Property"

    @pytest.mark.asyncio
    async def test_update_status(self, property_repository: PropertyRepository, test_property: str):
        assert await property_repository.update_status(test_property, PropertyStatus.MAINTENANCE) is True
        assert (await property_repository.get_by_id(test_property)).status == PropertyStatus.MAINTENANCE
        assert await property_repository.update_status(str(uuid.uuid4()), PropertyStatus.AVAILABLE) is False

    @pytest.mark.asyncio
    async def test_delete_property(self, property_repository: PropertyRepository, test_property: str):
        """Test deleting a property twice."""
        assert await property_repository.delete_property(test_property) is True
        assert await property_repository.get_by_id(test_property) is None
        assert await property_repository.delete_property(test_property) is False

    @pytest.mark.asyncio
    async def test_delete_property_scoped_to_owner(
        self, property_repository: PropertyRepository, test_property: str
    ):
        assert await property_repository.delete_property(test_property, landlord_id="someone-else") is False
        assert await property_repository.exists(test_property)

    @pytest.mark.asyncio
    async def test_landlord_stats(self, property_repository: PropertyRepository, test_landlord: str):
        for price, status in [
            ("1000", PropertyStatus.RENTED),
            ("2000", PropertyStatus.RENTED),
            ("1500", PropertyStatus.AVAILABLE),
            ("900", PropertyStatus.MAINTENANCE),
        ]:
            await PropertyFactory.create_property(
                property_repository, test_landlord, price=Decimal(price), status=status
            )

        stats = await property_repository.get_landlord_stats(test_landlord)
        assert stats.total_properties == 4
        assert stats.occupied_properties == 2
        assert stats.vacant_properties == 1
        assert stats.maintenance_properties == 1
        assert stats.total_revenue == Decimal("3000")

    @pytest.mark.asyncio
    async def test_landlord_stats_empty(self, property_repository: PropertyRepository, test_landlord: str):
        stats = await property_repository.get_landlord_stats(test_landlord)
        assert stats.total_properties == 0
        assert stats.total_revenue == Decimal("0")

    @pytest.mark.asyncio
    async def test_invalid_landlord_rejected(self, property_repository: PropertyRepository):
        with pytest.raises(PersistenceError):
            await PropertyFactory.create_property(property_repository, str(uuid.uuid4()))


class TestImageRepository:
    """Test image repository functionality."""

    @pytest.mark.asyncio
    async def test_add_and_get_images(self, image_repository: ImageRepository, test_property: str):
        image_id = await ImageFactory.create_image(
            image_repository, test_property, image_url="https://cdn.example.com/a.jpg", is_featured=True
        )

        image = await image_repository.get_by_id(image_id)
        assert image.property_id == test_property
        assert image.image_url == "https://cdn.example.com/a.jpg"
        assert image.is_featured is True

        images = await image_repository.get_by_property_id(test_property)
        assert ids_of(images) == [image_id]

    @pytest.mark.asyncio
    async def test_bulk_fetch_only_requested_parents(
        self, image_repository: ImageRepository, property_repository: PropertyRepository, test_landlord: str
    ):
        first = await PropertyFactory.create_property(property_repository, test_landlord)
        second = await PropertyFactory.create_property(property_repository, test_landlord)
        third = await PropertyFactory.create_property(property_repository, test_landlord)
        for property_id in (first, second, second, third):
            await ImageFactory.create_image(image_repository, property_id)

        images = await image_repository.get_by_property_ids([first, second])
        assert len(images) == 3
        assert {image.property_id for image in images} == {first, second}

    @pytest.mark.asyncio
    async def test_delete_image(self, image_repository: ImageRepository, test_property: str):
        image_id = await ImageFactory.create_image(image_repository, test_property)

        assert await image_repository.delete_image(image_id) is True
        assert await image_repository.delete_image(image_id) is False
        assert await image_repository.get_by_property_id(test_property) == []


class TestFeatureRepository:
    """Test feature repository functionality."""

    @pytest.mark.asyncio
    async def test_create_and_list_features(self, feature_repository: FeatureRepository):
        await feature_repository.create_feature(FeatureCreate(name="Parking", icon_name="car"))
        await feature_repository.create_feature(FeatureCreate(name="Balcony", icon_name="sun"))

        names = [feature.name for feature in await feature_repository.get_all()]
        assert names == ["Balcony", "Parking"]

    @pytest.mark.asyncio
    async def test_duplicate_feature_name(self, feature_repository: FeatureRepository):
        await feature_repository.create_feature(FeatureCreate(name="Gym", icon_name="dumbbell"))
        with pytest.raises(AlreadyExistsError):
            await feature_repository.create_feature(FeatureCreate(name="Gym", icon_name="dumbbell"))

    @pytest.mark.asyncio
    async def test_property_feature_links(self, feature_repository: FeatureRepository, test_property: str):
        pool_id = await FeatureFactory.create_feature(feature_repository, name="Pool")
        parking_id = await FeatureFactory.create_feature(feature_repository, name="Parking")

        await feature_repository.add_property_feature(test_property, pool_id)
        await feature_repository.add_property_feature(test_property, parking_id)
        with pytest.raises(AlreadyExistsError):
            await feature_repository.add_property_feature(test_property, pool_id)

        features = await feature_repository.get_by_property_id(test_property)
        assert [feature.name for feature in features] == ["Parking", "Pool"]

        assert await feature_repository.remove_property_feature(test_property, pool_id) is True
        assert await feature_repository.remove_property_feature(test_property, pool_id) is False
        # The feature itself survives its links
        assert await feature_repository.get_by_id(pool_id) is not None

        assert await feature_repository.clear_property_features(test_property) == 1
        assert await feature_repository.get_by_property_id(test_property) == []

    @pytest.mark.asyncio
    async def test_bulk_rows_carry_property_id(
        self, feature_repository: FeatureRepository, property_repository: PropertyRepository, test_landlord: str
    ):
        first = await PropertyFactory.create_property(property_repository, test_landlord)
        second = await PropertyFactory.create_property(property_repository, test_landlord)
        wifi = await FeatureFactory.create_feature(feature_repository, name="WiFi")
        for property_id in (first, second):
            await feature_repository.add_property_feature(property_id, wifi)

        rows = await feature_repository.get_by_property_ids([first, second])
        assert sorted(row.property_id for row in rows) == sorted([first, second])
        assert all(row.id == wifi for row in rows)
        assert await feature_repository.get_by_property_ids([]) == []


class TestFavoriteRepository:
    """Test favorite repository functionality."""

    @pytest.mark.asyncio
    async def test_add_and_remove_favorite(
        self, favorite_repository: FavoriteRepository, test_tenant: str, test_property: str
    ):
        assert await favorite_repository.is_favorite(test_tenant, test_property) is False

        await favorite_repository.add_favorite(test_tenant, test_property)
        assert await favorite_repository.is_favorite(test_tenant, test_property) is True
        assert await favorite_repository.get_property_ids(test_tenant) == [test_property]

        with pytest.raises(AlreadyExistsError):
            await favorite_repository.add_favorite(test_tenant, test_property)

        assert await favorite_repository.remove_favorite(test_tenant, test_property) is True
        assert await favorite_repository.remove_favorite(test_tenant, test_property) is False

    @pytest.mark.asyncio
    async def test_favorite_unknown_property(self, favorite_repository: FavoriteRepository, test_tenant: str):
        with pytest.raises(PersistenceError):
            await favorite_repository.add_favorite(test_tenant, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_get_favorites(
        self,
        favorite_repository: FavoriteRepository,
        property_repository: PropertyRepository,
        test_tenant: str,
        test_landlord: str,
    ):
        saved = await PropertyFactory.create_property(property_repository, test_landlord, title="Saved")
        await PropertyFactory.create_property(property_repository, test_landlord, title="Ignored")
        await favorite_repository.add_favorite(test_tenant, saved)

        favorites = await property_repository.get_favorites(test_tenant)
        assert [prop.title for prop in favorites] == ["Saved"]
