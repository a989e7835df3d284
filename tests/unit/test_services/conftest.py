"""In-memory stand-ins for repositories and the aggregator."""

from collections import Counter
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from cryptography.fernet import Fernet
from sqlalchemy.exc import SQLAlchemyError

from agencytax.core.exceptions import ProductNotReadyError
from agencytax.core.vault import CredentialVault
from agencytax.schemas.internal import AggregatorTransaction, TransactionPage


class FakeAccountRepository:
    def __init__(self):
        self.accounts = []

    async def get_active_by_user(self, user_id):
        return sorted(
            (a for a in self.accounts if a.user_id == user_id and a.is_active),
            key=lambda a: a.account_name,
        )

    async def get_by_user(self, user_id, account_id):
        for account in self.accounts:
            if account.id == account_id and account.user_id == user_id:
                return account
        return None

    async def upsert_linked(self, user_id, provider_account_id, access_token_encrypted, account_name, account_type, last_four):
        for account in self.accounts:
            if account.provider_account_id == provider_account_id:
                account.access_token_encrypted = access_token_encrypted
                account.account_name = account_name
                account.account_type = account_type
                account.last_four = last_four
                return account
        account = SimpleNamespace(
            id=uuid4(),
            user_id=user_id,
            provider_account_id=provider_account_id,
            access_token_encrypted=access_token_encrypted,
            account_name=account_name,
            account_type=account_type,
            last_four=last_four,
            is_active=True,
            is_initial_sync_complete=False,
            last_sync=None,
            sync_cursor=None,
        )
        self.accounts.append(account)
        return account

    async def mark_initial_sync_complete(self, account):
        account.is_initial_sync_complete = True
        account.last_sync = datetime.now(timezone.utc)

    async def mark_synced(self, account, cursor=None):
        account.last_sync = datetime.now(timezone.utc)
        if cursor is not None:
            account.sync_cursor = cursor

    async def deactivate(self, account):
        account.is_active = False


class FakeTransactionRepository:
    def __init__(self):
        self.rows = {}
        self.failing_ids = set()

    async def upsert(self, **row):
        if row["provider_transaction_id"] in self.failing_ids:
            raise SQLAlchemyError("insert failed")
        existing = self.rows.get(row["provider_transaction_id"])
        if existing is None:
            self.rows[row["provider_transaction_id"]] = {**row, "category_id": None}
        else:
            for key in ("amount", "transaction_date", "description", "merchant_name"):
                existing[key] = row[key]

    async def update(self, provider_transaction_id, user_id, fields):
        row = self.rows.get(provider_transaction_id)
        if row is None or row["user_id"] != user_id:
            return 0
        row.update(fields)
        return 1

    async def delete(self, provider_transaction_id, user_id):
        row = self.rows.get(provider_transaction_id)
        if row is None or row["user_id"] != user_id:
            return 0
        del self.rows[provider_transaction_id]
        return 1

    async def count_by_account(self, bank_account_ids):
        counts = Counter(row["bank_account_id"] for row in self.rows.values())
        return {account_id: counts[account_id] for account_id in bank_account_ids if counts[account_id]}


class FakeAuditRepository:
    def __init__(self):
        self.entries = []
        self.fail = False

    async def record(self, actor_user_id, action, metadata, table_name=None, record_id=None):
        if self.fail:
            raise SQLAlchemyError("audit insert failed")
        entry = SimpleNamespace(
            actor_user_id=actor_user_id,
            action=action,
            event_metadata=metadata,
            table_name=table_name,
            record_id=record_id,
        )
        self.entries.append(entry)
        return entry


class FakeAggregator:
    """Serves canned history per provider account and a queue of deltas."""

    def __init__(self):
        self.history = {}
        self.not_ready = {}
        self.errors = {}
        self.deltas = []
        self.page_calls = []
        self.sync_calls = []
        self.total_override = None

    async def get_transactions(self, access_token, start_date, end_date, offset=0, count=500, account_ids=None):
        account_id = account_ids[0]
        self.page_calls.append((account_id, offset, count))
        if account_id in self.errors:
            raise self.errors[account_id]
        remaining = self.not_ready.get(account_id, 0)
        if remaining:
            self.not_ready[account_id] = remaining - 1
            raise ProductNotReadyError()
        txns = self.history.get(account_id, [])
        total = self.total_override if self.total_override is not None else len(txns)
        return TransactionPage(transactions=txns[offset:offset + count], total_transactions=total)

    async def sync_transactions(self, access_token, cursor=None):
        self.sync_calls.append((access_token, cursor))
        return self.deltas.pop(0)


def _make_txn(transaction_id, account_id, amount="10.00", when=date(2025, 3, 1), name="COFFEE SHOP", pending=False, merchant_name=None):
    return AggregatorTransaction(
        transaction_id=transaction_id,
        account_id=account_id,
        amount=Decimal(amount),
        date=when,
        name=name,
        merchant_name=merchant_name,
        pending=pending,
    )


@pytest.fixture
def make_txn():
    return _make_txn


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def vault():
    return CredentialVault(Fernet.generate_key())


@pytest.fixture
def accounts():
    return FakeAccountRepository()


@pytest.fixture
def transactions():
    return FakeTransactionRepository()


@pytest.fixture
def audit():
    return FakeAuditRepository()


@pytest.fixture
def aggregator():
    return FakeAggregator()


@pytest.fixture
def add_account(accounts, vault, user_id):
    """Factory that links an account for the test user."""

    def _add(provider_account_id, name, initial_done=False, cursor=None, token="access-sandbox-123"):
        account = SimpleNamespace(
            id=uuid4(),
            user_id=user_id,
            provider_account_id=provider_account_id,
            access_token_encrypted=vault.encrypt(token),
            account_name=name,
            account_type="depository",
            last_four="0000",
            is_active=True,
            is_initial_sync_complete=initial_done,
            last_sync=None,
            sync_cursor=cursor,
        )
        accounts.accounts.append(account)
        return account

    return _add
