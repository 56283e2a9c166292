"""
Test configuration and fixtures for the rental catalog.
Provides a fresh SQLite database per test, fake pool connections, data factories, and common test utilities.
"""

import pytest
import uuid
from decimal import Decimal
from typing import AsyncGenerator, List, Optional, Sequence

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

from rental_catalog.config import Settings
from rental_catalog.database import create_engine, create_tables
from rental_catalog.executor import QueryExecutor
from rental_catalog.models.property import PropertyStatus
from rental_catalog.models.user import UserRole
from rental_catalog.pool import ConnectionPool
from rental_catalog.repositories import (
    FavoriteRepository,
    FeatureRepository,
    ImageRepository,
    PropertyRepository,
    UserRepository,
)
from rental_catalog.schemas.feature import FeatureCreate
from rental_catalog.schemas.image import PropertyImageCreate
from rental_catalog.schemas.property import PropertyCreate, PropertyRead
from rental_catalog.schemas.user import UserCreate
from rental_catalog.services.aggregator import PropertyAggregator
from rental_catalog.services.property import CatalogService
from rental_catalog.services.rental import RentalAllocator
from rental_catalog.utils.retry import RetryPolicy


# Database fixtures
@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        environment="testing",
        pool_monitor_enabled=False,
        query_retry_base_delay=0.01,
    )


@pytest.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create the engine and schema for one test."""
    engine = create_engine(settings)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def pool(engine: AsyncEngine, settings: Settings) -> AsyncGenerator[ConnectionPool, None]:
    pool = ConnectionPool.from_engine(engine, settings)
    yield pool
    await pool.close(drain_timeout=1.0)


@pytest.fixture
def executor(pool: ConnectionPool) -> QueryExecutor:
    return QueryExecutor(pool, RetryPolicy(max_attempts=3, base_delay=0.01))


@pytest.fixture
def statement_counter(engine: AsyncEngine):
    """Record every SQL statement sent to the database."""
    counter = StatementCounter()
    event.listen(engine.sync_engine, "before_cursor_execute", counter.record)
    yield counter
    event.remove(engine.sync_engine, "before_cursor_execute", counter.record)


class StatementCounter:
    """Collects statements seen by a ``before_cursor_execute`` listener."""

    def __init__(self):
        self.statements: List[str] = []

    def record(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    def reset(self) -> None:
        self.statements.clear()

    @property
    def selects(self) -> List[str]:
        return [s for s in self.statements if s.lstrip().upper().startswith("SELECT")]


# Repository fixtures
@pytest.fixture
def user_repository(executor: QueryExecutor) -> UserRepository:
    """Create a user repository instance."""
    return UserRepository(executor)


@pytest.fixture
def property_repository(executor: QueryExecutor) -> PropertyRepository:
    """Create a property repository instance."""
    return PropertyRepository(executor)


@pytest.fixture
def image_repository(executor: QueryExecutor) -> ImageRepository:
    """Create an image repository instance."""
    return ImageRepository(executor)


@pytest.fixture
def feature_repository(executor: QueryExecutor) -> FeatureRepository:
    return FeatureRepository(executor)


@pytest.fixture
def favorite_repository(executor: QueryExecutor) -> FavoriteRepository:
    return FavoriteRepository(executor)


# Service fixtures
@pytest.fixture
def aggregator(executor: QueryExecutor) -> PropertyAggregator:
    return PropertyAggregator(executor)


@pytest.fixture
def allocator(executor: QueryExecutor) -> RentalAllocator:
    return RentalAllocator(executor)


@pytest.fixture
def catalog_service(executor: QueryExecutor) -> CatalogService:
    """Create a catalog service instance."""
    return CatalogService(executor)


# Fake pool connections
class FakeConnection:
    """Stand-in for a physical connection; records what the pool does with it."""

    def __init__(self, number: int):
        self.number = number
        self.closed = False
        self.invalidated = False
        self.transaction_open = False
        self.rollbacks = 0

    def in_transaction(self) -> bool:
        return self.transaction_open

    async def rollback(self) -> None:
        self.rollbacks += 1
        self.transaction_open = False

    async def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"<FakeConnection {self.number}>"


class FakeConnector:
    """Connection factory handing out numbered fake connections."""

    def __init__(self):
        self.opened: List[FakeConnection] = []

    async def __call__(self) -> FakeConnection:
        conn = FakeConnection(len(self.opened) + 1)
        self.opened.append(conn)
        return conn


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    def create_user_data(
        email: str = None,
        role: UserRole = UserRole.LANDLORD,
        name: str = "Test User",
        phone: Optional[str] = None,
        hashed_password: Optional[str] = None
    ) -> UserCreate:
        """Create user signup data."""
        return UserCreate(
            email=email or f"test{uuid.uuid4().hex[:8]}@example.com",
            role=role,
            name=name,
            phone=phone,
            hashed_password=hashed_password
        )

    @staticmethod
    async def create_user(user_repo: UserRepository, **kwargs) -> str:
        """Create a test user in the database and return its ID."""
        return await user_repo.create_user(UserFactory.create_user_data(**kwargs))


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(
        title: str = "Test Property",
        description: str = "A beautiful test property",
        location: str = "Test City",
        price: Decimal = Decimal("1000.00"),
        bedrooms: int = 2,
        bathrooms: Decimal = Decimal("1"),
        area: Optional[Decimal] = Decimal("80"),
        status: PropertyStatus = PropertyStatus.AVAILABLE
    ) -> PropertyCreate:
        """Create property data."""
        return PropertyCreate(
            title=title,
            description=description,
            location=location,
            price=price,
            bedrooms=bedrooms,
            bathrooms=bathrooms,
            area=area,
            status=status
        )

    @staticmethod
    async def create_property(property_repo: PropertyRepository, landlord_id: str, **kwargs) -> str:
        """Create a test property in the database and return its ID."""
        return await property_repo.create_property(landlord_id, PropertyFactory.create_property_data(**kwargs))


class ImageFactory:
    """Factory for creating test property images."""

    @staticmethod
    def create_image_data(image_url: str = None, is_featured: bool = False) -> PropertyImageCreate:
        return PropertyImageCreate(
            image_url=image_url or f"https://cdn.example.com/{uuid.uuid4().hex}.jpg",
            is_featured=is_featured
        )

    @staticmethod
    async def create_image(image_repo: ImageRepository, property_id: str, **kwargs) -> str:
        """Attach a test image to a property and return its ID."""
        return await image_repo.add_image(property_id, ImageFactory.create_image_data(**kwargs))


class FeatureFactory:
    """Factory for creating test features."""

    @staticmethod
    async def create_feature(feature_repo: FeatureRepository, name: str = None, icon_name: str = "star") -> str:
        return await feature_repo.create_feature(
            FeatureCreate(name=name or f"Feature {uuid.uuid4().hex[:6]}", icon_name=icon_name)
        )


# Common test fixtures
@pytest.fixture
async def test_landlord(user_repository: UserRepository) -> str:
    """Create a test landlord and return its ID."""
    return await UserFactory.create_user(
        user_repository,
        email="landlord@test.com",
        name="Test Landlord",
        role=UserRole.LANDLORD
    )


@pytest.fixture
async def test_tenant(user_repository: UserRepository) -> str:
    """Create a test tenant and return its ID."""
    return await UserFactory.create_user(
        user_repository,
        email="tenant@test.com",
        name="Test Tenant",
        role=UserRole.TENANT
    )


@pytest.fixture
async def test_property(property_repository: PropertyRepository, test_landlord: str) -> str:
    """Create a test property and return its ID."""
    return await PropertyFactory.create_property(
        property_repository,
        test_landlord,
        title="Test Property",
        price=Decimal("1500.00"),
        bedrooms=3,
        location="Test Location"
    )


# Utility functions for tests
def assert_property_matches(prop: PropertyRead, data: PropertyCreate):
    """Assert that a stored property carries the fields it was created with."""
    assert prop.title == data.title
    assert prop.description == data.description
    assert prop.location == data.location
    assert prop.price == data.price
    assert prop.bedrooms == data.bedrooms
    assert prop.bathrooms == data.bathrooms
    assert prop.status == data.status


def ids_of(records: Sequence) -> List[str]:
    return [record.id for record in records]
