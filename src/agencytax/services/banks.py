"""Bank linking service.

Creates linked accounts from a completed Link flow, lists them with their
sync state, and disconnects them. Disconnecting is a soft delete so
historical transactions are preserved.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from agencytax.core.exceptions import NotFoundError, PipelineError
from agencytax.core.vault import CredentialVault
from agencytax.integrations.plaid import PlaidClient
from agencytax.models.bank_account import BankAccount
from agencytax.repositories.audit_log import AuditLogRepository
from agencytax.repositories.bank_account import BankAccountRepository
from agencytax.repositories.transaction import TransactionRepository
from agencytax.schemas.pipeline import BankAccountResponse

logger = logging.getLogger(__name__)


class BankLinkService:
    """Service for linking and disconnecting bank accounts."""

    def __init__(
        self,
        accounts: BankAccountRepository,
        transactions: TransactionRepository,
        audit: AuditLogRepository,
        aggregator: PlaidClient,
        vault: CredentialVault,
        client_name: str = "AgencyTax",
    ):
        self.accounts = accounts
        self.transactions = transactions
        self.audit = audit
        self.aggregator = aggregator
        self.vault = vault
        self.client_name = client_name

    async def create_link_token(self, user_id: UUID) -> str:
        return await self.aggregator.create_link_token(str(user_id), self.client_name)

    async def exchange_public_token(self, user_id: UUID, public_token: str) -> list[BankAccount]:
        """Exchange a Link public token and store every account behind it.

        The access token is encrypted once and shared by all accounts of the
        bank login. A single account that fails to save is logged and skipped.

        Raises:
            PipelineError: API_002 when the public token is missing
            AggregatorError: If the exchange or account listing fails
        """
        if not public_token:
            raise PipelineError("API_002", http_status=400)

        exchange = await self.aggregator.exchange_public_token(public_token)
        encrypted = self.vault.encrypt(exchange.access_token)
        provider_accounts = await self.aggregator.get_accounts(exchange.access_token)

        linked: list[BankAccount] = []
        for provider_account in provider_accounts:
            try:
                account = await self.accounts.upsert_linked(
                    user_id=user_id,
                    provider_account_id=provider_account.account_id,
                    access_token_encrypted=encrypted,
                    account_name=provider_account.name,
                    account_type=provider_account.type,
                    last_four=provider_account.mask,
                )
            except SQLAlchemyError:
                logger.error(
                    "Error saving linked account",
                    extra={"provider_account_id": provider_account.account_id},
                    exc_info=True,
                )
                continue
            linked.append(account)

        await self._audit(
            user_id,
            "LINKED_BANK",
            {"item_id": exchange.item_id, "accounts_count": len(linked)},
            table_name="bank_accounts",
        )
        logger.info("Bank linked", extra={"user_id": str(user_id), "accounts": len(linked)})
        return linked

    async def list_banks(self, user_id: UUID) -> list[BankAccountResponse]:
        """Active accounts with their stored transaction counts."""
        accounts = await self.accounts.get_active_by_user(user_id)
        counts = await self.transactions.count_by_account([a.id for a in accounts])
        return [
            BankAccountResponse(
                account_id=account.id,
                account_name=account.account_name,
                account_type=account.account_type,
                last_four=account.last_four,
                last_sync=account.last_sync,
                is_initial_sync_complete=account.is_initial_sync_complete,
                transaction_count=counts.get(account.id, 0),
            )
            for account in accounts
        ]

    async def disconnect(self, user_id: UUID, account_id: UUID) -> None:
        """Soft delete a linked account owned by the user.

        Raises:
            NotFoundError: If the account does not exist or belongs to another user
        """
        account = await self.accounts.get_by_user(user_id, account_id)
        if account is None:
            raise NotFoundError("API_001", details={"account_id": str(account_id)})

        await self.accounts.deactivate(account)
        await self._audit(user_id, "DISCONNECT_BANK", {}, table_name="bank_accounts", record_id=account_id)

    async def _audit(
        self,
        user_id: UUID,
        action: str,
        metadata: dict,
        table_name: str | None = None,
        record_id: UUID | None = None,
    ) -> None:
        metadata = {**metadata, "timestamp": datetime.now(timezone.utc).isoformat()}
        try:
            await self.audit.record(user_id, action, metadata, table_name=table_name, record_id=record_id)
        except Exception:
            logger.error("Error creating audit log", extra={"action": action}, exc_info=True)
