"""Category taxonomy and rule queries (read-only for the pipeline)."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.models.category import Category, CategoryRule
from agencytax.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Category)

    async def list_categories(self) -> list[Category]:
        result = await self.db.execute(select(Category))
        return list(result.scalars().all())

    async def list_rules(self) -> list[CategoryRule]:
        """Rules in evaluation order. Ordering matters: earlier matches win."""
        result = await self.db.execute(
            select(CategoryRule).order_by(CategoryRule.position, CategoryRule.created_at)
        )
        return list(result.scalars().all())
