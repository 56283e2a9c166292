"""
Pydantic schemas for user records.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from rental_catalog.models.user import User, UserRole


class UserCreate(BaseModel):
    """Schema for creating a user at signup."""

    email: str = Field(..., max_length=255, description="User email address")
    role: UserRole = Field(..., description="LANDLORD or TENANT")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    phone: Optional[str] = Field(None, max_length=50, description="Contact phone")
    hashed_password: Optional[str] = Field(
        None,
        description="Hash produced by the authentication service; never returned"
    )

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate and normalize email."""
        return User.validate_email_format(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()


class UserUpdate(BaseModel):
    """Profile update. Only name and phone are mutable."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class UserRead(BaseModel):
    """User record returned to callers."""

    id: str
    email: str
    role: UserRole
    name: str
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
