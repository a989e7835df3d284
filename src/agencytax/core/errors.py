"""Error catalog for bank sync, categorization and the API.

Each code maps to a technical ``message`` (logs), a ``user_message`` and a
``suggestion`` (shown to the user), and ``retry_allowed``. The sync engine
retries a failure only when its code is retryable here.
"""

ERROR_CATALOG: dict[str, dict] = {
    # Aggregator (Plaid)
    "AGG_001": {
        "code": "AGG_001",
        "message": "Aggregator reports transaction data not ready yet (PRODUCT_NOT_READY)",
        "user_message": "Your bank is still preparing transaction history.",
        "suggestion": "Please try syncing again in a few minutes.",
        "retry_allowed": True,
    },
    "AGG_002": {
        "code": "AGG_002",
        "message": "Aggregator request failed",
        "user_message": "We couldn't reach your bank right now.",
        "suggestion": "Please try again later.",
        "retry_allowed": False,
    },
    "AGG_003": {
        "code": "AGG_003",
        "message": "Aggregator item requires re-authentication (ITEM_LOGIN_REQUIRED)",
        "user_message": "Your bank connection needs to be refreshed.",
        "suggestion": "Reconnect this bank account to continue syncing.",
        "retry_allowed": False,
    },
    # Credential vault
    "VAULT_001": {
        "code": "VAULT_001",
        "message": "Stored access credential could not be decrypted",
        "user_message": "We couldn't read the saved connection for this bank.",
        "suggestion": "Reconnect this bank account.",
        "retry_allowed": False,
    },
    # Classification
    "CLS_001": {
        "code": "CLS_001",
        "message": "Classifier request failed",
        "user_message": "Automatic categorization is temporarily unavailable.",
        "suggestion": "Please try again later or categorize manually.",
        "retry_allowed": False,
    },
    "CAT_001": {
        "code": "CAT_001",
        "message": "Predicted category does not resolve to a known category",
        "user_message": "We couldn't find a matching category for this transaction.",
        "suggestion": "Please categorize this transaction manually.",
        "retry_allowed": False,
    },
    # Sync preconditions
    "SYNC_001": {
        "code": "SYNC_001",
        "message": "No active bank accounts found",
        "user_message": "You don't have any connected bank accounts.",
        "suggestion": "Connect a bank account first.",
        "retry_allowed": False,
    },
    "SYNC_002": {
        "code": "SYNC_002",
        "message": "No bank accounts ready for incremental sync",
        "user_message": "Your bank accounts haven't finished their first sync.",
        "suggestion": "Run a full sync first.",
        "retry_allowed": False,
    },
    # Storage
    "DB_001": {
        "code": "DB_001",
        "message": "Database write failed",
        "user_message": "We couldn't save your changes due to a database error.",
        "suggestion": "Please try again in a few moments.",
        "retry_allowed": True,
    },
    # API-specific errors
    "API_001": {
        "code": "API_001",
        "message": "Bank account not found",
        "user_message": "We couldn't find this bank account.",
        "suggestion": "Please refresh and try again.",
        "retry_allowed": False,
    },
    "API_002": {
        "code": "API_002",
        "message": "Missing public token",
        "user_message": "The bank connection could not be completed.",
        "suggestion": "Please restart the bank connection flow.",
        "retry_allowed": False,
    },
}


_UNKNOWN = {
    "code": "UNKNOWN",
    "user_message": "An unexpected error occurred.",
    "suggestion": "Please try again. Contact support if the problem persists.",
    "retry_allowed": False,
}


def get_error(error_code: str) -> dict:
    """Catalog entry for ``error_code``; unknown codes get a generic, non-retryable entry."""
    entry = ERROR_CATALOG.get(error_code)
    if entry is None:
        return {**_UNKNOWN, "message": f"Unknown error code: {error_code}"}
    return entry


def is_retryable(error_code: str) -> bool:
    return get_error(error_code)["retry_allowed"]
