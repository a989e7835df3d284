"""Bank transaction sync.

Reconciles a user's stored transactions with the aggregator, one linked
account at a time. Each account is in one of two states:

- NEEDS_INITIAL (``is_initial_sync_complete`` unset): pull the full history
  from ``start_date`` to today, page by page, retrying while the aggregator
  reports the data is not ready yet.
- INCREMENTAL: pull added/modified/removed deltas from the aggregator's sync
  cursor and apply them.

Accounts are processed sequentially and independently: a failure is recorded
in the result's ``errors`` and the remaining accounts still sync.
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Awaitable, Callable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from agencytax.core.exceptions import AggregatorError, PipelineError
from agencytax.core.vault import CredentialVault
from agencytax.integrations.plaid import PlaidClient
from agencytax.models.bank_account import BankAccount
from agencytax.repositories.audit_log import AuditLogRepository
from agencytax.repositories.bank_account import BankAccountRepository
from agencytax.repositories.transaction import TransactionRepository
from agencytax.schemas.internal import (
    AggregatorTransaction,
    RemovedTransaction,
    TransactionPage,
)
from agencytax.schemas.pipeline import DateRange, SyncMode, SyncResult, SyncStatus

logger = logging.getLogger(__name__)


class SyncEngine:
    """Drives full-history and incremental sync for a user's linked accounts."""

    def __init__(
        self,
        accounts: BankAccountRepository,
        transactions: TransactionRepository,
        audit: AuditLogRepository,
        aggregator: PlaidClient,
        vault: CredentialVault,
        start_date: date,
        page_size: int = 500,
        max_retries: int = 4,
        retry_base_seconds: float = 1.2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        today: Callable[[], date] = date.today,
    ):
        """Initialize the engine.

        Args:
            accounts: Linked account repository
            transactions: Transaction store
            audit: Audit log repository (writes are best effort)
            aggregator: Aggregator client
            vault: Decrypts stored access credentials
            start_date: Fixed lower bound for history; older transactions are never stored
            page_size: Transactions requested per full-history page
            max_retries: Attempts per page while the aggregator reports not-ready
            retry_base_seconds: Backoff unit; attempt N waits ``N * retry_base_seconds``
            sleep: Awaitable sleep, injectable for tests
            today: Upper bound provider for full-history pulls
        """
        self.accounts = accounts
        self.transactions = transactions
        self.audit = audit
        self.aggregator = aggregator
        self.vault = vault
        self.start_date = start_date
        self.page_size = page_size
        self.max_retries = max_retries
        self.retry_base_seconds = retry_base_seconds
        self._sleep = sleep
        self._today = today

    async def sync(self, user_id: UUID) -> SyncResult:
        """Run the right sync mode for the user.

        Full history when any active account still needs its initial pull,
        otherwise incremental for all active accounts.
        """
        accounts = await self.accounts.get_active_by_user(user_id)
        if not accounts:
            return SyncResult(status=SyncStatus.NO_ACCOUNTS)
        if any(not account.is_initial_sync_complete for account in accounts):
            return await self._run_initial(user_id, accounts)
        return await self._run_incremental(user_id, accounts)

    async def sync_initial(self, user_id: UUID) -> SyncResult:
        """Full-history sync of every active account."""
        accounts = await self.accounts.get_active_by_user(user_id)
        if not accounts:
            return SyncResult(status=SyncStatus.NO_ACCOUNTS, mode=SyncMode.INITIAL)
        return await self._run_initial(user_id, accounts)

    async def sync_incremental(self, user_id: UUID) -> SyncResult:
        """Delta sync of every active account whose initial sync is complete."""
        accounts = [
            account
            for account in await self.accounts.get_active_by_user(user_id)
            if account.is_initial_sync_complete
        ]
        if not accounts:
            return SyncResult(status=SyncStatus.NO_ACCOUNTS, mode=SyncMode.INCREMENTAL)
        return await self._run_incremental(user_id, accounts)

    async def _run_initial(self, user_id: UUID, accounts: list[BankAccount]) -> SyncResult:
        start_date, end_date = self.start_date, self._today()
        result = SyncResult(
            mode=SyncMode.INITIAL,
            accounts=len(accounts),
            date_range=DateRange(start=start_date, end=end_date),
        )

        for account in accounts:
            account_id, account_name = account.id, account.account_name
            try:
                result.imported += await self._sync_account_full(user_id, account, start_date, end_date)
            except Exception as exc:
                self._record_account_failure(result, account_id, account_name, exc)

        logger.info(
            "Initial sync finished",
            extra={"user_id": str(user_id), "imported": result.imported, "failed_accounts": len(result.errors)},
        )
        await self._audit(
            user_id,
            "INITIAL_SYNC",
            {
                "imported": result.imported,
                "accounts": len(accounts),
                "date_range": {"start": start_date.isoformat(), "end": end_date.isoformat()},
            },
        )
        return result

    async def _run_incremental(self, user_id: UUID, accounts: list[BankAccount]) -> SyncResult:
        result = SyncResult(mode=SyncMode.INCREMENTAL, accounts=len(accounts))

        for account in accounts:
            account_id, account_name = account.id, account.account_name
            try:
                added, updated, removed = await self._sync_account_delta(user_id, account)
            except Exception as exc:
                self._record_account_failure(result, account_id, account_name, exc)
                continue
            result.imported += added
            result.updated += updated
            result.removed += removed

        logger.info(
            "Incremental sync finished",
            extra={
                "user_id": str(user_id),
                "imported": result.imported,
                "updated": result.updated,
                "removed": result.removed,
                "failed_accounts": len(result.errors),
            },
        )
        await self._audit(
            user_id,
            "MONTHLY_SYNC",
            {"imported": result.imported, "updated": result.updated, "removed": result.removed, "accounts": len(accounts)},
        )
        return result

    # Full history

    async def _sync_account_full(
        self, user_id: UUID, account: BankAccount, start_date: date, end_date: date
    ) -> int:
        access_token = self.vault.decrypt(account.access_token_encrypted)

        fetched: list[AggregatorTransaction] = []
        total: int | None = None
        while total is None or len(fetched) < total:
            page = await self._fetch_page_with_retry(
                access_token, start_date, end_date, offset=len(fetched), account=account
            )
            total = page.total_transactions
            if not page.transactions:
                break
            fetched.extend(page.transactions)

        imported = 0
        for txn in fetched:
            if txn.pending:
                continue
            if await self._upsert(user_id, account, txn):
                imported += 1

        await self.accounts.mark_initial_sync_complete(account)
        logger.info(
            "Account full-history sync complete",
            extra={"account_id": str(account.id), "fetched": len(fetched), "imported": imported},
        )
        return imported

    async def _fetch_page_with_retry(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        offset: int,
        account: BankAccount,
    ) -> TransactionPage:
        """Fetch one page, retrying retryable (not-ready) failures with linear backoff.

        Raises:
            PipelineError: The last error once ``max_retries`` attempts are used,
                or immediately for non-retryable failures
        """
        last_error: PipelineError | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self.aggregator.get_transactions(
                    access_token,
                    start_date,
                    end_date,
                    offset=offset,
                    count=self.page_size,
                    account_ids=[account.provider_account_id],
                )
            except PipelineError as exc:
                if not exc.retryable:
                    raise
                last_error = exc
                if attempt == self.max_retries:
                    break
                wait = self.retry_base_seconds * attempt
                logger.warning(
                    "Aggregator data not ready, retrying",
                    extra={
                        "account_id": str(account.id),
                        "attempt": attempt,
                        "max_retries": self.max_retries,
                        "wait_seconds": wait,
                    },
                )
                await self._sleep(wait)

        raise last_error

    # Incremental

    async def _sync_account_delta(self, user_id: UUID, account: BankAccount) -> tuple[int, int, int]:
        access_token = self.vault.decrypt(account.access_token_encrypted)

        added = updated = removed = 0
        cursor = account.sync_cursor
        while True:
            delta = await self.aggregator.sync_transactions(access_token, cursor)

            for txn in delta.added:
                if self._accepts(txn, account) and await self._upsert(user_id, account, txn):
                    added += 1
            for txn in delta.modified:
                if self._accepts(txn, account) and await self._apply_modified(user_id, account, txn):
                    updated += 1
            for gone in delta.removed:
                if await self._apply_removed(user_id, gone):
                    removed += 1

            if not delta.has_more:
                cursor = delta.next_cursor or cursor
                break
            if not delta.next_cursor or delta.next_cursor == cursor:
                raise AggregatorError(
                    "Sync cursor did not advance",
                    details={"account_id": str(account.id), "cursor": cursor},
                )
            cursor = delta.next_cursor

        await self.accounts.mark_synced(account, cursor)
        return added, updated, removed

    def _accepts(self, txn: AggregatorTransaction, account: BankAccount) -> bool:
        if txn.pending or txn.date < self.start_date:
            return False
        # The access token covers every account of the bank login.
        return txn.account_id is None or txn.account_id == account.provider_account_id

    async def _apply_modified(self, user_id: UUID, account: BankAccount, txn: AggregatorTransaction) -> bool:
        try:
            rows = await self.transactions.update(
                txn.transaction_id,
                user_id,
                {
                    "amount": txn.amount,
                    "transaction_date": txn.date,
                    "description": txn.name,
                    "merchant_name": txn.merchant_name,
                },
            )
        except SQLAlchemyError:
            logger.error(
                "Failed to apply modified transaction",
                extra={"transaction_id": txn.transaction_id},
                exc_info=True,
            )
            return False
        if rows:
            return True
        # Not stored locally yet (e.g. it posted before the cursor caught up).
        return await self._upsert(user_id, account, txn)

    async def _apply_removed(self, user_id: UUID, gone: RemovedTransaction) -> bool:
        try:
            return await self.transactions.delete(gone.transaction_id, user_id) > 0
        except SQLAlchemyError:
            logger.error(
                "Failed to delete removed transaction",
                extra={"transaction_id": gone.transaction_id},
                exc_info=True,
            )
            return False

    # Shared

    async def _upsert(self, user_id: UUID, account: BankAccount, txn: AggregatorTransaction) -> bool:
        """Idempotent write of one non-pending transaction. Row failures are logged and skipped."""
        try:
            await self.transactions.upsert(
                user_id=user_id,
                bank_account_id=account.id,
                provider_transaction_id=txn.transaction_id,
                amount=txn.amount,
                transaction_date=txn.date,
                description=txn.name,
                merchant_name=txn.merchant_name or None,
            )
        except SQLAlchemyError:
            logger.error(
                "Failed to store transaction",
                extra={"transaction_id": txn.transaction_id, "account_id": str(account.id)},
                exc_info=True,
            )
            return False
        return True

    def _record_account_failure(
        self, result: SyncResult, account_id: UUID, account_name: str, exc: Exception
    ) -> None:
        # Read before the attempt: a failed commit expires the loaded account.
        extra = {"account_id": str(account_id)}
        if isinstance(exc, PipelineError):
            extra["error_code"] = exc.error_code
        logger.error("Account sync failed", extra=extra, exc_info=True)
        result.errors.append(f"Failed to sync {account_name}: {exc}")

    async def _audit(self, user_id: UUID, action: str, metadata: dict) -> None:
        metadata = {**metadata, "timestamp": datetime.now(timezone.utc).isoformat()}
        try:
            await self.audit.record(user_id, action, metadata)
        except Exception:
            logger.error("Error creating audit log", extra={"action": action}, exc_info=True)
