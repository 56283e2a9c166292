"""
Pydantic schemas: the plain records the catalog layer accepts and returns.
"""

from rental_catalog.schemas.user import UserCreate, UserUpdate, UserRead
from rental_catalog.schemas.image import PropertyImageCreate, PropertyImageRead
from rental_catalog.schemas.feature import FeatureCreate, FeatureRead, PropertyFeatureRead
from rental_catalog.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyRead,
    PropertyWithDetails,
    PropertySummary,
    PropertyStats,
    LandlordDashboard,
    RentalReceipt,
    PropertySearchFilters,
)

__all__ = [
    "UserCreate",
    "UserUpdate",
    "UserRead",
    "PropertyImageCreate",
    "PropertyImageRead",
    "FeatureCreate",
    "FeatureRead",
    "PropertyFeatureRead",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyRead",
    "PropertyWithDetails",
    "PropertySummary",
    "PropertyStats",
    "LandlordDashboard",
    "RentalReceipt",
    "PropertySearchFilters",
]
