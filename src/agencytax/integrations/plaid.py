"""Plaid REST client.

Thin async wrapper over the Plaid endpoints the pipeline needs: link token
creation, public token exchange, account listing, paged full-history fetch
(``/transactions/get``) and cursor based delta fetch (``/transactions/sync``).

Plaid authenticates with ``client_id`` + ``secret`` in the JSON body and
reports failures as 4xx responses carrying an ``error_code``. The
``PRODUCT_NOT_READY`` code is surfaced as :class:`ProductNotReadyError` so
callers can retry it; everything else is an :class:`AggregatorError`.
"""

import logging
from datetime import date
from typing import Any

import httpx

from agencytax.config import settings
from agencytax.core.exceptions import AggregatorError, ProductNotReadyError
from agencytax.schemas.internal import (
    AggregatorAccount,
    TokenExchange,
    TransactionDelta,
    TransactionPage,
)

logger = logging.getLogger(__name__)

PLAID_ENVIRONMENTS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


class PlaidClient:
    """Async Plaid API client.

    The underlying ``httpx.AsyncClient`` is created lazily and can be injected
    (tests pass one built on ``httpx.MockTransport``).
    """

    def __init__(
        self,
        client_id: str,
        secret: str,
        environment: str = "sandbox",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.client_id = client_id
        self.secret = secret
        self.base_url = PLAID_ENVIRONMENTS.get(environment, PLAID_ENVIRONMENTS["sandbox"])
        self.timeout = timeout
        self._http = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._http

    async def close(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST an authenticated request and translate Plaid errors."""
        client = await self._get_client()
        body = {"client_id": self.client_id, "secret": self.secret, **payload}

        try:
            response = await client.post(f"{self.base_url}/{endpoint}", json=body)
        except httpx.HTTPError as exc:
            raise AggregatorError(
                f"Plaid request to {endpoint} failed: {exc.__class__.__name__}",
                details={"endpoint": endpoint},
            ) from exc

        if response.status_code >= 400:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            error_code = error_data.get("error_code", "UNKNOWN")
            error_message = error_data.get("error_message") or response.reason_phrase
            details = {"endpoint": endpoint, "status": response.status_code}

            if error_code == "PRODUCT_NOT_READY":
                raise ProductNotReadyError(error_message, details=details)
            if error_code == "ITEM_LOGIN_REQUIRED":
                raise AggregatorError(
                    error_message,
                    error_code="AGG_003",
                    provider_code=error_code,
                    details=details,
                )
            raise AggregatorError(error_message, provider_code=error_code, details=details)

        return response.json()

    # Link flow

    async def create_link_token(self, client_user_id: str, client_name: str) -> str:
        data = await self._post(
            "link/token/create",
            {
                "user": {"client_user_id": client_user_id},
                "client_name": client_name,
                "products": ["transactions"],
                "country_codes": ["US"],
                "language": "en",
            },
        )
        return data["link_token"]

    async def exchange_public_token(self, public_token: str) -> TokenExchange:
        data = await self._post("item/public_token/exchange", {"public_token": public_token})
        return TokenExchange(access_token=data["access_token"], item_id=data["item_id"])

    async def get_accounts(self, access_token: str) -> list[AggregatorAccount]:
        data = await self._post("accounts/get", {"access_token": access_token})
        return [AggregatorAccount.model_validate(a) for a in data.get("accounts", [])]

    # Transactions

    async def get_transactions(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        offset: int = 0,
        count: int = 500,
        account_ids: list[str] | None = None,
    ) -> TransactionPage:
        """Fetch one page of transaction history.

        Raises:
            ProductNotReadyError: Plaid is still preparing the item's history
            AggregatorError: Any other upstream failure
        """
        options: dict[str, Any] = {"count": count, "offset": offset}
        if account_ids:
            options["account_ids"] = account_ids

        data = await self._post(
            "transactions/get",
            {
                "access_token": access_token,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "options": options,
            },
        )
        return TransactionPage.model_validate(data)

    async def sync_transactions(self, access_token: str, cursor: str | None = None) -> TransactionDelta:
        """Fetch added/modified/removed transactions since ``cursor``."""
        payload: dict[str, Any] = {"access_token": access_token}
        if cursor:
            payload["cursor"] = cursor

        data = await self._post("transactions/sync", payload)
        return TransactionDelta.model_validate(data)


def get_plaid_client() -> PlaidClient:
    return PlaidClient(
        client_id=settings.plaid_client_id,
        secret=settings.plaid_secret,
        environment=settings.plaid_env,
        timeout=settings.plaid_timeout_seconds,
    )
