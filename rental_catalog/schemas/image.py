"""
Pydantic schemas for property images.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime


class PropertyImageCreate(BaseModel):
    """Image to attach to a property. The file itself is stored elsewhere."""

    image_url: str = Field(..., min_length=1, max_length=500, description="URL of the stored image")
    is_featured: bool = Field(False, description="Whether this is the primary image")

    @field_validator('image_url')
    @classmethod
    def validate_image_url(cls, v):
        if not v.strip():
            raise ValueError("Image URL cannot be empty")
        return v.strip()


class PropertyImageRead(BaseModel):
    """Image record returned to callers."""

    id: str
    property_id: str
    image_url: str
    is_featured: bool
    created_at: datetime

    model_config = {"from_attributes": True}
