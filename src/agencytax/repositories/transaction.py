"""Transaction repository.

Rows are keyed by the aggregator's transaction id, which makes every write
from a sync pass idempotent: replaying the same upstream data refreshes rows
in place instead of duplicating them.
"""
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Numeric, and_, case, delete, false, func, literal, null, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.models.base import utcnow
from agencytax.models.transaction import Transaction
from agencytax.repositories.base import BaseRepository

# Fields the aggregator owns; anything else (category, reviewed flag) belongs to the user.
PROVIDER_FIELDS = ("amount", "transaction_date", "description", "merchant_name")


def _direction_flipped(new_amount, old_amount):
    """True when an amount moves between income (< 0) and expense (>= 0)."""
    return or_(
        and_(new_amount < 0, old_amount >= 0),
        and_(new_amount >= 0, old_amount < 0),
    )


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model with provider-id keyed writes."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Transaction)

    async def upsert(
        self,
        user_id: UUID,
        bank_account_id: UUID,
        provider_transaction_id: str,
        amount: Decimal,
        transaction_date: date,
        description: str | None,
        merchant_name: str | None,
    ) -> None:
        """Insert a transaction or refresh the provider-owned fields of an existing one.

        Last write wins on amount/date/description/merchant. Category and
        reviewed flag are left untouched on conflict unless the amount changes
        direction, in which case the category is cleared for re-categorization.
        """
        stmt = pg_insert(Transaction).values(
            user_id=user_id,
            bank_account_id=bank_account_id,
            provider_transaction_id=provider_transaction_id,
            amount=amount,
            transaction_date=transaction_date,
            description=description,
            merchant_name=merchant_name,
        )
        flipped = _direction_flipped(stmt.excluded.amount, Transaction.amount)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Transaction.provider_transaction_id],
            set_={
                "category_id": case((flipped, null()), else_=Transaction.category_id),
                "is_reviewed": case((flipped, false()), else_=Transaction.is_reviewed),
                "amount": stmt.excluded.amount,
                "transaction_date": stmt.excluded.transaction_date,
                "description": stmt.excluded.description,
                "merchant_name": stmt.excluded.merchant_name,
                "updated_at": utcnow(),
            },
        )
        await self._execute(stmt)

    async def update(self, provider_transaction_id: str, user_id: UUID, fields: dict) -> int:
        """Update provider-owned fields of one user's transaction.

        A new amount on the other side of zero clears the category.

        Returns:
            Number of rows updated (0 when the transaction is not stored locally)
        """
        values = {key: value for key, value in fields.items() if key in PROVIDER_FIELDS}
        values["updated_at"] = utcnow()
        if values.get("amount") is not None:
            flipped = _direction_flipped(literal(values["amount"], Numeric(14, 2)), Transaction.amount)
            values["category_id"] = case((flipped, null()), else_=Transaction.category_id)
            values["is_reviewed"] = case((flipped, false()), else_=Transaction.is_reviewed)
        stmt = (
            update(Transaction)
            .where(
                Transaction.provider_transaction_id == provider_transaction_id,
                Transaction.user_id == user_id,
            )
            .values(**values)
        )
        result = await self._execute(stmt)
        return result.rowcount

    async def delete(self, provider_transaction_id: str, user_id: UUID) -> int:
        """Hard delete a transaction the aggregator reported as removed."""
        stmt = delete(Transaction).where(
            Transaction.provider_transaction_id == provider_transaction_id,
            Transaction.user_id == user_id,
        )
        result = await self._execute(stmt)
        return result.rowcount

    async def list_uncategorized(self, user_id: UUID, limit: int = 200) -> list[Transaction]:
        """Get up to ``limit`` transactions without a category."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.user_id == user_id, Transaction.category_id.is_(None))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def set_category(self, transaction_id: UUID, category_id: UUID) -> None:
        """Assign a category. Auto-assigned categories always need review."""
        stmt = (
            update(Transaction)
            .where(Transaction.id == transaction_id)
            .values(category_id=category_id, is_reviewed=False, updated_at=utcnow())
        )
        await self._execute(stmt)

    async def count_by_account(self, bank_account_ids: list[UUID]) -> dict[UUID, int]:
        """Count stored transactions per bank account."""
        if not bank_account_ids:
            return {}
        result = await self.db.execute(
            select(Transaction.bank_account_id, func.count(Transaction.id).label("total"))
            .where(Transaction.bank_account_id.in_(bank_account_ids))
            .group_by(Transaction.bank_account_id)
        )
        return {row.bank_account_id: int(row.total) for row in result}
