"""Internal data schemas for aggregator payloads.

These models represent the provider's view of accounts and transactions
before they are written to the database. Unknown provider fields are ignored.
"""

from datetime import date as date_type
from decimal import Decimal

from pydantic import BaseModel, Field


class AggregatorAccount(BaseModel):
    """A bank account as reported by the aggregator."""

    account_id: str = Field(..., description="Provider account identifier")
    name: str = Field(..., description="Display name of the account")
    type: str | None = Field(None, description="Provider account type (depository, credit, ...)")
    mask: str | None = Field(None, description="Last four digits of the account number")


class AggregatorTransaction(BaseModel):
    """A single transaction as reported by the aggregator.

    Amount sign follows the provider: positive is money leaving the account
    (expense), negative is money entering it (income).
    """

    transaction_id: str = Field(..., description="Provider transaction identifier")
    account_id: str | None = Field(None, description="Provider account identifier")
    amount: Decimal = Field(..., description="Signed amount (positive = expense)")
    date: date_type
    name: str | None = Field(None, description="Free-text description")
    merchant_name: str | None = Field(None, description="Merchant name when recognised")
    pending: bool = Field(False, description="Pending transactions are never persisted")


class RemovedTransaction(BaseModel):
    """A transaction the aggregator no longer reports (e.g., pending that never posted)."""

    transaction_id: str
    account_id: str | None = None


class TransactionPage(BaseModel):
    """One page of a full-history fetch."""

    transactions: list[AggregatorTransaction] = Field(default_factory=list)
    total_transactions: int = Field(0, description="Grand total across all pages")


class TransactionDelta(BaseModel):
    """Result of one incremental (cursor based) fetch."""

    added: list[AggregatorTransaction] = Field(default_factory=list)
    modified: list[AggregatorTransaction] = Field(default_factory=list)
    removed: list[RemovedTransaction] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


class TokenExchange(BaseModel):
    """Result of exchanging a public token."""

    access_token: str
    item_id: str
