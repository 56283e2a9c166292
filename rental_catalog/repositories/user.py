"""
User repository for landlord and tenant accounts.
Handles signup inserts, lookups and profile updates.
"""

from sqlalchemy import select, func
from typing import Optional
import logging

from rental_catalog.models.user import User
from rental_catalog.repositories.base import BaseRepository, Executor
from rental_catalog.schemas.user import UserCreate, UserRead, UserUpdate

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User, UserRead]):
    """
    Repository for user accounts.
    Users are never physically deleted here; the password hash is write-only from the caller's view.
    """

    def __init__(self, executor: Executor):
        super().__init__(User, UserRead, executor)

    async def create_user(self, user_data: UserCreate) -> str:
        """
        Create a new user.

        Args:
            user_data: Validated signup data (email already normalised)

        Returns:
            ID of the new user

        Raises:
            AlreadyExistsError: If the email is already registered
        """
        try:
            user_id = await self.create(user_data.model_dump())
            logger.info(f"Created user: {user_data.email} (ID: {user_id})")
            return user_id
        except Exception as e:
            logger.error(f"Failed to create user {user_data.email}: {e}")
            raise

    async def get_by_email(self, email: str) -> Optional[UserRead]:
        """
        Get user by email address, ignoring case.

        Returns:
            User record if found, None otherwise
        """
        query = select(self.table).where(func.lower(self.table.c.email) == email.strip().lower())
        result = await self.executor.execute(query)
        row = result.first()
        return self._to_record(row) if row else None

    async def update_profile(self, user_id: str, profile: UserUpdate) -> bool:
        """
        Update the mutable profile fields (name and phone).

        Returns:
            True if the user exists and was updated
        """
        values = profile.model_dump(exclude_unset=True)
        if not values:
            return await self.exists(user_id)

        updated = await self.update(user_id, values)
        if updated:
            logger.info(f"Updated profile for user {user_id}")
        return updated

    async def get_hashed_password(self, email: str) -> Optional[str]:
        """Password hash for the authentication service, or None for an unknown email."""
        query = select(self.table.c.hashed_password).where(
            func.lower(self.table.c.email) == email.strip().lower()
        )
        result = await self.executor.execute(query)
        return result.scalar()
