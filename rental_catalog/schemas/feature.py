"""
Pydantic schemas for the feature catalog.
"""

from pydantic import BaseModel, Field


class FeatureCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon_name: str = Field(..., min_length=1, max_length=100)


class FeatureRead(BaseModel):
    """Feature record returned to callers."""

    id: str
    name: str
    icon_name: str

    model_config = {"from_attributes": True}


class PropertyFeatureRead(FeatureRead):
    """Feature row from a bulk fetch, tagged with the property it belongs to."""

    property_id: str
