"""Bank account repository with user-scoped queries."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.models.bank_account import BankAccount
from agencytax.models.base import utcnow
from agencytax.repositories.base import BaseRepository


class BankAccountRepository(BaseRepository[BankAccount]):
    """Repository for BankAccount model with user-scoped security."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, BankAccount)

    async def get_by_user(self, user_id: UUID, account_id: UUID) -> BankAccount | None:
        """Get account only if it belongs to the specified user."""
        result = await self.db.execute(
            select(BankAccount).where(BankAccount.id == account_id, BankAccount.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_active_by_user(self, user_id: UUID) -> list[BankAccount]:
        """Get active accounts for a user, ordered by name."""
        result = await self.db.execute(
            select(BankAccount)
            .where(BankAccount.user_id == user_id, BankAccount.is_active == True)
            .order_by(BankAccount.account_name)
        )
        return list(result.scalars().all())

    async def upsert_linked(
        self,
        user_id: UUID,
        provider_account_id: str,
        access_token_encrypted: str,
        account_name: str,
        account_type: str | None,
        last_four: str | None,
    ) -> BankAccount:
        """Create a linked account, or refresh credential and display fields on re-link."""
        stmt = pg_insert(BankAccount).values(
            user_id=user_id,
            provider_account_id=provider_account_id,
            access_token_encrypted=access_token_encrypted,
            account_name=account_name,
            account_type=account_type,
            last_four=last_four,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[BankAccount.provider_account_id],
            set_={
                "access_token_encrypted": stmt.excluded.access_token_encrypted,
                "account_name": stmt.excluded.account_name,
                "account_type": stmt.excluded.account_type,
                "last_four": stmt.excluded.last_four,
                "updated_at": utcnow(),
            },
        ).returning(BankAccount)
        stmt = stmt.execution_options(populate_existing=True)
        result = await self._execute(stmt)
        return result.scalar_one()

    async def mark_initial_sync_complete(self, account: BankAccount) -> None:
        account.is_initial_sync_complete = True
        account.last_sync = utcnow()
        await self._commit()

    async def mark_synced(self, account: BankAccount, cursor: str | None = None) -> None:
        """Stamp ``last_sync`` and remember the delta cursor when one was returned."""
        account.last_sync = utcnow()
        if cursor is not None:
            account.sync_cursor = cursor
        await self._commit()

    async def deactivate(self, account: BankAccount) -> None:
        """Soft delete: transactions are preserved."""
        account.is_active = False
        await self._commit()
