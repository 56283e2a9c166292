"""
User model for landlords and tenants.
"""

from sqlalchemy import String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from email_validator import validate_email, EmailNotValidError
from typing import Optional
import enum

from rental_catalog.database import Base, IdMixin, TimestampMixin


class UserRole(str, enum.Enum):
    """User role enumeration."""
    LANDLORD = "LANDLORD"
    TENANT = "TENANT"


class User(IdMixin, TimestampMixin, Base):
    """
    User account. Created at signup, mutated only through profile updates,
    never physically deleted by the catalog layer.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address - unique, stored lower-case"
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role"),
        nullable=False,
        index=True,
        comment="LANDLORD or TENANT"
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name"
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Optional contact phone"
    )

    hashed_password: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Password hash produced by the authentication service"
    )

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Args:
            email: Email address to validate

        Returns:
            Normalized, lower-cased email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email, check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")
