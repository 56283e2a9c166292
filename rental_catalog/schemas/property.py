"""
Pydantic schemas for property records, composite views and search filters.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal, InvalidOperation

from rental_catalog.models.property import PropertyStatus
from rental_catalog.schemas.feature import FeatureRead
from rental_catalog.schemas.image import PropertyImageRead

MAX_ROOMS = 50


class PropertyBase(BaseModel):
    """Base property schema with the mutable fields."""

    title: str = Field(..., min_length=1, max_length=255, description="Property listing title")
    description: Optional[str] = Field(None, max_length=5000, description="Detailed property description")
    location: str = Field(..., min_length=1, max_length=255, description="Property location/address")
    price: Decimal = Field(..., gt=0, description="Monthly rent")
    bedrooms: int = Field(..., ge=0, le=MAX_ROOMS, description="Number of bedrooms")
    bathrooms: Decimal = Field(..., ge=0, le=MAX_ROOMS, description="Number of bathrooms, half steps allowed")
    area: Optional[Decimal] = Field(None, gt=0, description="Floor area")
    status: PropertyStatus = Field(PropertyStatus.AVAILABLE, description="Listing status")

    @field_validator('title', 'location')
    @classmethod
    def validate_not_blank(cls, v):
        """Validate and clean required text."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        """Validate price value."""
        if v > Decimal('9999999999.99'):
            raise ValueError("Price exceeds maximum allowed value")
        return v

    @field_validator('bathrooms')
    @classmethod
    def validate_bathrooms(cls, v):
        """Bathrooms come in half steps."""
        if (v * 2) % 1 != 0:
            raise ValueError("Bathrooms must be a multiple of 0.5")
        return v


class PropertyCreate(PropertyBase):
    """Schema for creating a new property."""


class PropertyUpdate(PropertyBase):
    """Full replacement of a property's mutable fields."""


class PropertyRead(PropertyBase):
    """Property record returned to callers."""

    id: str
    landlord_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PropertyWithDetails(PropertyRead):
    """Property with its images, features and the selected primary image."""

    images: List[PropertyImageRead] = Field(default_factory=list)
    features: List[FeatureRead] = Field(default_factory=list)
    primary_image_url: str


class PropertySummary(BaseModel):
    """Card-sized view used by featured listings and dashboards."""

    id: str
    title: str
    location: str
    price: Decimal
    bedrooms: int
    bathrooms: Decimal
    area: Optional[Decimal] = None
    status: PropertyStatus
    image: str
    features: List[FeatureRead] = Field(default_factory=list)


class PropertyStats(BaseModel):
    """Per-status counts for one landlord."""

    total_properties: int = 0
    occupied_properties: int = 0
    vacant_properties: int = 0
    maintenance_properties: int = 0
    total_revenue: Decimal = Decimal("0")


class LandlordDashboard(BaseModel):
    property_stats: PropertyStats
    recent_properties: List[PropertySummary] = Field(default_factory=list)


class RentalReceipt(BaseModel):
    """Result of a successful rental."""

    property_id: str
    tenant_id: str
    title: str
    rent_amount: Decimal
    rented_at: datetime


SORTABLE_FIELDS = ("created_at", "price", "bedrooms", "bathrooms", "title")


def _blank(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() in ("", "any")


def _lenient_decimal(value: Any) -> Optional[Decimal]:
    """Parse a non-negative finite number, or None for anything malformed."""
    if value is None or isinstance(value, bool) or _blank(value):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number < 0:
        return None
    return number


class PropertySearchFilters(BaseModel):
    """
    Sparse search criteria. Every field is optional and absent by default.

    Malformed or out-of-range input (non-numeric text, negatives, unknown status,
    "any") is treated as absent rather than rejected. ``bedrooms`` accepts an
    integer for an exact match or ``"N+"`` for N or more.
    """

    status: Optional[PropertyStatus] = None
    landlord_id: Optional[str] = None
    location: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, alias="minPrice")
    max_price: Optional[Decimal] = Field(None, alias="maxPrice")
    bedrooms: Optional[int] = None
    bedrooms_or_more: bool = False
    bathrooms: Optional[Decimal] = None
    sort_by: Optional[str] = None
    sort_order: str = "desc"

    model_config = {"populate_by_name": True}

    @model_validator(mode='before')
    @classmethod
    def split_open_ended_bedrooms(cls, data):
        """Turn ``bedrooms="4+"`` into ``bedrooms=4, bedrooms_or_more=True``."""
        if isinstance(data, dict):
            value = data.get("bedrooms")
            if isinstance(value, str) and value.strip().endswith("+"):
                data = dict(data)
                data["bedrooms"] = value.strip()[:-1]
                data["bedrooms_or_more"] = True
        return data

    @field_validator('status', mode='before')
    @classmethod
    def lenient_status(cls, v):
        if isinstance(v, PropertyStatus):
            return v
        if isinstance(v, str) and v.strip().upper() in PropertyStatus.__members__:
            return PropertyStatus[v.strip().upper()]
        return None

    @field_validator('landlord_id', 'location', mode='before')
    @classmethod
    def lenient_text(cls, v):
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()

    @field_validator('min_price', 'max_price', mode='before')
    @classmethod
    def lenient_price(cls, v):
        number = _lenient_decimal(v)
        if number is None or number == 0:
            return None
        return number

    @field_validator('bedrooms', mode='before')
    @classmethod
    def lenient_bedrooms(cls, v):
        number = _lenient_decimal(v)
        if number is None or number != number.to_integral_value() or number > MAX_ROOMS:
            return None
        return int(number)

    @field_validator('bedrooms_or_more', mode='before')
    @classmethod
    def lenient_bedrooms_or_more(cls, v):
        return v if isinstance(v, bool) else False

    @field_validator('bathrooms', mode='before')
    @classmethod
    def lenient_bathrooms(cls, v):
        return _lenient_decimal(v)

    @field_validator('sort_by', mode='before')
    @classmethod
    def lenient_sort_by(cls, v):
        if isinstance(v, str) and v.strip() in SORTABLE_FIELDS:
            return v.strip()
        return None

    @field_validator('sort_order', mode='before')
    @classmethod
    def lenient_sort_order(cls, v):
        if isinstance(v, str) and v.strip().lower() in ("asc", "desc"):
            return v.strip().lower()
        return "desc"

    def is_empty(self) -> bool:
        """True when no criterion is present."""
        return all(
            value is None
            for value in (
                self.status, self.landlord_id, self.location, self.min_price,
                self.max_price, self.bedrooms, self.bathrooms,
            )
        )
