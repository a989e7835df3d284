"""Base repository with savepoint-scoped writes."""
from typing import Generic, Type, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.models.base import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class BaseRepository(Generic[ModelT]):
    """Shared lookups and write helpers.

    Every write runs inside ``begin_nested()``: a failing statement rolls back
    only its own SAVEPOINT, so objects the services already loaded in the
    session (accounts, users) stay usable for the rest of the batch.
    """

    def __init__(self, db: AsyncSession, model: Type[ModelT]):
        self.db = db
        self.model = model

    async def get_by_id(self, record_id: UUID) -> ModelT | None:
        return await self.db.get(self.model, record_id)

    async def create(self, obj: ModelT) -> ModelT:
        async with self.db.begin_nested():
            self.db.add(obj)
        await self._commit()
        return obj

    async def _execute(self, stmt):
        async with self.db.begin_nested():
            result = await self.db.execute(stmt)
        await self._commit()
        return result

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
