"""FastAPI dependency injection for authentication, database and services."""

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.categorization.classifier import AIClassifier, get_classifier
from agencytax.categorization.throttle import IntervalRateLimiter
from agencytax.config import settings
from agencytax.core.security import get_user_id_from_token
from agencytax.core.vault import CredentialVault, get_vault
from agencytax.db.session import get_db
from agencytax.integrations.plaid import PlaidClient, get_plaid_client
from agencytax.models.user import User
from agencytax.repositories.audit_log import AuditLogRepository
from agencytax.repositories.bank_account import BankAccountRepository
from agencytax.repositories.category import CategoryRepository
from agencytax.repositories.transaction import TransactionRepository
from agencytax.repositories.user import UserRepository
from agencytax.services.banks import BankLinkService
from agencytax.services.categorization import CategorizationEngine
from agencytax.services.sync import SyncEngine

# OAuth2 bearer token scheme
security = HTTPBearer()


async def get_user_repository(
    db: AsyncSession = Depends(get_db),
) -> UserRepository:
    return UserRepository(db)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    user_repo: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Extract and validate user from JWT token.

    Raises:
        HTTPException: If token is invalid, expired, or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = get_user_id_from_token(credentials.credentials)
    except (JWTError, ValueError):
        raise credentials_exception

    user = await user_repo.get_by_id(user_id)
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return user


async def get_aggregator() -> AsyncIterator[PlaidClient]:
    client = get_plaid_client()
    try:
        yield client
    finally:
        await client.close()


def get_credential_vault() -> CredentialVault:
    return get_vault()


async def get_ai_classifier() -> AsyncIterator[AIClassifier]:
    classifier = get_classifier()
    try:
        yield classifier
    finally:
        await classifier.close()


async def get_sync_engine(
    db: AsyncSession = Depends(get_db),
    aggregator: PlaidClient = Depends(get_aggregator),
    vault: CredentialVault = Depends(get_credential_vault),
) -> SyncEngine:
    return SyncEngine(
        accounts=BankAccountRepository(db),
        transactions=TransactionRepository(db),
        audit=AuditLogRepository(db),
        aggregator=aggregator,
        vault=vault,
        start_date=settings.sync_start_date,
        page_size=settings.sync_page_size,
        max_retries=settings.sync_max_retries,
        retry_base_seconds=settings.sync_retry_base_seconds,
    )


async def get_categorization_engine(
    db: AsyncSession = Depends(get_db),
    classifier: AIClassifier = Depends(get_ai_classifier),
) -> CategorizationEngine:
    return CategorizationEngine(
        transactions=TransactionRepository(db),
        categories=CategoryRepository(db),
        classifier=classifier,
        rate_limiter=IntervalRateLimiter(settings.categorize_delay_seconds),
        batch_size=settings.categorize_batch_size,
    )


async def get_bank_link_service(
    db: AsyncSession = Depends(get_db),
    aggregator: PlaidClient = Depends(get_aggregator),
    vault: CredentialVault = Depends(get_credential_vault),
) -> BankLinkService:
    return BankLinkService(
        accounts=BankAccountRepository(db),
        transactions=TransactionRepository(db),
        audit=AuditLogRepository(db),
        aggregator=aggregator,
        vault=vault,
        client_name=settings.plaid_client_name,
    )
