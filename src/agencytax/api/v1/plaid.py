"""Bank linking, transaction sync and auto-categorization endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from agencytax.api.deps import (
    get_bank_link_service,
    get_categorization_engine,
    get_current_user,
    get_sync_engine,
)
from agencytax.core.exceptions import NotFoundError
from agencytax.models.user import User
from agencytax.schemas.pipeline import (
    BankAccountResponse,
    CategorizeResult,
    ExchangeTokenRequest,
    ExchangeTokenResponse,
    LinkedAccountSummary,
    LinkTokenResponse,
    SyncMode,
    SyncResult,
    SyncStatus,
)
from agencytax.services.banks import BankLinkService
from agencytax.services.categorization import CategorizationEngine
from agencytax.services.sync import SyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plaid", tags=["plaid"])


def _raise_if_no_accounts(result: SyncResult) -> SyncResult:
    if result.status is SyncStatus.NO_ACCOUNTS:
        code = "SYNC_002" if result.mode is SyncMode.INCREMENTAL else "SYNC_001"
        raise NotFoundError(code)
    return result


@router.post("/link-token", response_model=LinkTokenResponse)
async def create_link_token(
    current_user: User = Depends(get_current_user),
    service: BankLinkService = Depends(get_bank_link_service),
) -> LinkTokenResponse:
    """Create a Link token for the frontend bank connection flow."""
    link_token = await service.create_link_token(current_user.id)
    return LinkTokenResponse(link_token=link_token)


@router.post("/exchange-token", response_model=ExchangeTokenResponse)
async def exchange_token(
    body: ExchangeTokenRequest,
    current_user: User = Depends(get_current_user),
    service: BankLinkService = Depends(get_bank_link_service),
) -> ExchangeTokenResponse:
    """Exchange a public token and store every account of the bank login."""
    accounts = await service.exchange_public_token(current_user.id, body.public_token)
    return ExchangeTokenResponse(
        accounts=[LinkedAccountSummary(id=a.id, name=a.account_name) for a in accounts],
    )


@router.post("/sync", response_model=SyncResult)
async def sync(
    current_user: User = Depends(get_current_user),
    engine: SyncEngine = Depends(get_sync_engine),
) -> SyncResult:
    """Full history if any account still needs it, incremental otherwise."""
    return _raise_if_no_accounts(await engine.sync(current_user.id))


@router.post("/sync/initial", response_model=SyncResult)
async def sync_initial(
    current_user: User = Depends(get_current_user),
    engine: SyncEngine = Depends(get_sync_engine),
) -> SyncResult:
    return _raise_if_no_accounts(await engine.sync_initial(current_user.id))


@router.post("/sync/monthly", response_model=SyncResult)
async def sync_monthly(
    current_user: User = Depends(get_current_user),
    engine: SyncEngine = Depends(get_sync_engine),
) -> SyncResult:
    return _raise_if_no_accounts(await engine.sync_incremental(current_user.id))


@router.get("/banks", response_model=list[BankAccountResponse])
async def list_banks(
    current_user: User = Depends(get_current_user),
    service: BankLinkService = Depends(get_bank_link_service),
) -> list[BankAccountResponse]:
    return await service.list_banks(current_user.id)


@router.delete("/banks/{account_id}", status_code=status.HTTP_200_OK)
async def disconnect_bank(
    account_id: UUID,
    current_user: User = Depends(get_current_user),
    service: BankLinkService = Depends(get_bank_link_service),
) -> dict:
    """Disconnect a bank account. Its transactions are kept."""
    await service.disconnect(current_user.id, account_id)
    return {"message": "Bank account disconnected successfully"}


@router.post("/auto-categorize", response_model=CategorizeResult)
async def auto_categorize(
    current_user: User = Depends(get_current_user),
    engine: CategorizationEngine = Depends(get_categorization_engine),
) -> CategorizeResult:
    """Categorize the next batch of the user's uncategorized transactions."""
    result = await engine.run(current_user.id)
    logger.info(
        "Auto-categorize request finished",
        extra={"user_id": str(current_user.id), "categorized": result.categorized, "total": result.total},
    )
    return result
