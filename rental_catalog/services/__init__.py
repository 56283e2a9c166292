"""
Service layer: bulk aggregation, rental allocation, composite listing operations and error formatting.
"""

from .aggregator import PropertyAggregator, select_primary_image
from .rental import RentalAllocator
from .property import CatalogService
from .error_handler import ErrorHandlerService

__all__ = [
    "PropertyAggregator",
    "select_primary_image",
    "RentalAllocator",
    "CatalogService",
    "ErrorHandlerService"
]
