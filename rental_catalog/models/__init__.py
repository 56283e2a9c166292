"""
Database models for the rental catalog.
Includes User, Property, PropertyImage, Feature and the two association tables.
"""

from rental_catalog.models.user import User, UserRole
from rental_catalog.models.property import Property, PropertyStatus
from rental_catalog.models.image import PropertyImage
from rental_catalog.models.feature import Feature, PropertyFeature
from rental_catalog.models.favorite import Favorite

__all__ = [
    "User",
    "UserRole",
    "Property",
    "PropertyStatus",
    "PropertyImage",
    "Feature",
    "PropertyFeature",
    "Favorite",
]
