"""Unit tests for BankLinkService."""

from decimal import Decimal
from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from agencytax.core.exceptions import AggregatorError, NotFoundError, PipelineError
from agencytax.schemas.internal import AggregatorAccount, TokenExchange
from agencytax.services.banks import BankLinkService


@pytest.fixture
def link_aggregator():
    aggregator = AsyncMock()
    aggregator.create_link_token = AsyncMock(return_value="link-sandbox-abc")
    aggregator.exchange_public_token = AsyncMock(
        return_value=TokenExchange(access_token="access-sandbox-xyz", item_id="item-1")
    )
    aggregator.get_accounts = AsyncMock(
        return_value=[
            AggregatorAccount(account_id="acc-1", name="Business Checking", type="depository", mask="1111"),
            AggregatorAccount(account_id="acc-2", name="Business Card", type="credit", mask="2222"),
        ]
    )
    return aggregator


@pytest.fixture
def service(accounts, transactions, audit, link_aggregator, vault):
    return BankLinkService(
        accounts=accounts,
        transactions=transactions,
        audit=audit,
        aggregator=link_aggregator,
        vault=vault,
        client_name="AgencyTax",
    )


@pytest.mark.asyncio
async def test_create_link_token(service, link_aggregator, user_id):
    token = await service.create_link_token(user_id)

    assert token == "link-sandbox-abc"
    link_aggregator.create_link_token.assert_awaited_once_with(str(user_id), "AgencyTax")


class TestExchange:
    @pytest.mark.asyncio
    async def test_stores_every_account_with_encrypted_token(self, service, accounts, audit, vault, user_id):
        linked = await service.exchange_public_token(user_id, "public-sandbox-123")

        assert [a.account_name for a in linked] == ["Business Checking", "Business Card"]
        assert len(accounts.accounts) == 2
        for account in accounts.accounts:
            assert account.access_token_encrypted != "access-sandbox-xyz"
            assert vault.decrypt(account.access_token_encrypted) == "access-sandbox-xyz"
            assert account.is_initial_sync_complete is False

        assert [e.action for e in audit.entries] == ["LINKED_BANK"]
        assert audit.entries[0].event_metadata["accounts_count"] == 2
        assert audit.entries[0].event_metadata["item_id"] == "item-1"

    @pytest.mark.asyncio
    async def test_relink_refreshes_existing_accounts(self, service, accounts, user_id):
        await service.exchange_public_token(user_id, "public-sandbox-123")
        await service.exchange_public_token(user_id, "public-sandbox-456")

        assert len(accounts.accounts) == 2

    @pytest.mark.asyncio
    async def test_missing_public_token(self, service, link_aggregator, user_id):
        with pytest.raises(PipelineError) as exc_info:
            await service.exchange_public_token(user_id, "")

        assert exc_info.value.error_code == "API_002"
        assert exc_info.value.http_status == 400
        link_aggregator.exchange_public_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exchange_failure_propagates(self, service, link_aggregator, accounts, user_id):
        link_aggregator.exchange_public_token.side_effect = AggregatorError("INVALID_PUBLIC_TOKEN")

        with pytest.raises(AggregatorError):
            await service.exchange_public_token(user_id, "public-sandbox-bad")

        assert accounts.accounts == []

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_link(self, service, audit, user_id):
        audit.fail = True

        linked = await service.exchange_public_token(user_id, "public-sandbox-123")

        assert len(linked) == 2


class TestBanks:
    @pytest.mark.asyncio
    async def test_list_includes_transaction_counts(self, service, add_account, transactions, user_id):
        checking = add_account("acc-1", "Checking", initial_done=True)
        add_account("acc-2", "Savings")
        await transactions.upsert(
            user_id=user_id,
            bank_account_id=checking.id,
            provider_transaction_id="t1",
            amount=Decimal("10.00"),
            transaction_date=date(2025, 2, 1),
            description="COFFEE",
            merchant_name=None,
        )

        banks = await service.list_banks(user_id)

        assert [(b.account_name, b.transaction_count) for b in banks] == [("Checking", 1), ("Savings", 0)]
        assert banks[0].is_initial_sync_complete is True

    @pytest.mark.asyncio
    async def test_disconnect_is_soft_delete(self, service, add_account, audit, user_id):
        account = add_account("acc-1", "Checking")

        await service.disconnect(user_id, account.id)

        assert account.is_active is False
        assert await service.list_banks(user_id) == []
        assert audit.entries[-1].action == "DISCONNECT_BANK"
        assert audit.entries[-1].record_id == account.id

    @pytest.mark.asyncio
    async def test_disconnect_other_users_account(self, service, add_account):
        account = add_account("acc-1", "Checking")

        with pytest.raises(NotFoundError):
            await service.disconnect(uuid4(), account.id)

        assert account.is_active is True
