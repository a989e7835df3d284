"""Request/response schemas for the sync and categorization endpoints."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class SyncMode(str, Enum):
    INITIAL = "initial"
    INCREMENTAL = "incremental"


class SyncStatus(str, Enum):
    COMPLETED = "completed"
    NO_ACCOUNTS = "no_accounts"


class DateRange(BaseModel):
    start: date
    end: date


class SyncResult(BaseModel):
    """Outcome of a sync pass over a user's active accounts.

    Per-account failures are reported in ``errors``; they never abort the
    other accounts in the same pass.
    """

    status: SyncStatus = SyncStatus.COMPLETED
    mode: SyncMode | None = None
    imported: int = Field(0, description="Transactions inserted or refreshed")
    updated: int = Field(0, description="Modified transactions applied (incremental only)")
    removed: int = Field(0, description="Transactions deleted (incremental only)")
    accounts: int = Field(0, description="Accounts considered in this pass")
    errors: list[str] = Field(default_factory=list)
    date_range: DateRange | None = None


class CategorizeResult(BaseModel):
    """Outcome of one auto-categorization batch."""

    categorized: int = 0
    total: int = 0
    errors: list[str] | None = Field(
        None, description="One entry per transaction that could not be categorized"
    )


# Bank linking


class LinkTokenResponse(BaseModel):
    link_token: str


class ExchangeTokenRequest(BaseModel):
    public_token: str = Field("", description="Public token returned by the Link flow")


class LinkedAccountSummary(BaseModel):
    id: UUID
    name: str


class ExchangeTokenResponse(BaseModel):
    message: str = "Bank account linked successfully"
    accounts: list[LinkedAccountSummary]


class BankAccountResponse(BaseModel):
    """Linked bank account with sync state."""

    account_id: UUID
    account_name: str
    account_type: str | None
    last_four: str | None
    last_sync: datetime | None
    is_initial_sync_complete: bool
    transaction_count: int = 0
