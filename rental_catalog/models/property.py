"""
Property model for rental listings.
"""

from sqlalchemy import String, Text, Integer, Numeric, ForeignKey, Index, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from decimal import Decimal
from typing import Optional
import enum

from rental_catalog.database import Base, IdMixin, TimestampMixin


class PropertyStatus(str, enum.Enum):
    """
    Listing status. Only AVAILABLE -> RENTED is guarded (by the rental allocator);
    every other transition is a plain caller-driven update.
    """
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    MAINTENANCE = "MAINTENANCE"


class Property(IdMixin, TimestampMixin, Base):
    """
    Rental listing owned by a landlord.
    Deleting a property cascades to its images, feature links and favorites in the store.
    """

    __tablename__ = "properties"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_properties_price_positive"),
        CheckConstraint("bedrooms >= 0", name="ck_properties_bedrooms_non_negative"),
        CheckConstraint("bathrooms >= 0", name="ck_properties_bathrooms_non_negative"),
        CheckConstraint("area IS NULL OR area > 0", name="ck_properties_area_positive"),
    )

    landlord_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the landlord who owns this property"
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Property listing title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Detailed property description"
    )

    location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Property location/address"
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        index=True,
        comment="Monthly rent"
    )

    bedrooms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Number of bedrooms"
    )

    bathrooms: Mapped[Decimal] = mapped_column(
        Numeric(precision=3, scale=1),
        nullable=False,
        comment="Number of bathrooms, half steps allowed"
    )

    area: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Floor area"
    )

    status: Mapped[PropertyStatus] = mapped_column(
        SQLEnum(PropertyStatus, name="property_status"),
        nullable=False,
        default=PropertyStatus.AVAILABLE,
        index=True,
        comment="AVAILABLE, RENTED or MAINTENANCE"
    )


# Composite index for the common search shape: status + price range
status_price_index = Index(
    'idx_properties_status_price',
    Property.status,
    Property.price
)

# Composite index for landlord dashboards
landlord_created_index = Index(
    'idx_properties_landlord_created',
    Property.landlord_id,
    Property.created_at.desc()
)
