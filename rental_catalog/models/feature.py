"""
Feature catalog and the property <-> feature association.
"""

from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from rental_catalog.database import Base, IdMixin


class Feature(IdMixin, Base):
    """Shared amenity (Pool, Parking, ...). Not owned by any property."""

    __tablename__ = "features"

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        comment="Feature display name"
    )

    icon_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Icon identifier used by the UI"
    )


class PropertyFeature(Base):
    """Many-to-many link between properties and features, no payload."""

    __tablename__ = "property_features"

    property_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("properties.id", ondelete="CASCADE"),
        primary_key=True
    )

    feature_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("features.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
