"""
Repositories: typed reads and writes over the catalog tables, run through the query executor.
"""

from rental_catalog.repositories.base import BaseRepository
from rental_catalog.repositories.filters import FilterClause, build_property_filter
from rental_catalog.repositories.user import UserRepository
from rental_catalog.repositories.property import PropertyRepository
from rental_catalog.repositories.image import ImageRepository
from rental_catalog.repositories.feature import FeatureRepository
from rental_catalog.repositories.favorite import FavoriteRepository

__all__ = [
    "BaseRepository",
    "FilterClause",
    "build_property_filter",
    "UserRepository",
    "PropertyRepository",
    "ImageRepository",
    "FeatureRepository",
    "FavoriteRepository",
]
