"""
PropertyImage model. Images are owned by a property and never outlive it.
"""

from sqlalchemy import String, Boolean, ForeignKey, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime

from rental_catalog.database import Base, IdMixin


class PropertyImage(IdMixin, Base):
    """
    Image attached to a property.

    ``is_featured`` marks the primary image. Uniqueness per property is not
    enforced, so readers pick the first featured image and fall back to a
    placeholder.
    """

    __tablename__ = "property_images"

    property_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the property this image belongs to"
    )

    image_url: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="URL of the stored image"
    )

    is_featured: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether this is the primary image for the property"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
