"""User repository for user-specific queries."""
from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.models.user import User
from agencytax.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, User)
