"""Custom exception classes for the ingestion and categorization pipeline.

Each exception carries an error_code from the catalog in errors.py. Whether a
failure may be retried is a property of the code, not of the exception class,
so retry loops check ``exc.retryable``.
"""

from typing import Any

from agencytax.core.errors import is_retryable


class PipelineError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "AGG_001")
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return (default: 500)
    """

    def __init__(
        self,
        error_code: str,
        details: dict[str, Any] | None = None,
        http_status: int = 500,
        message: str | None = None,
    ):
        """Initialize the exception.

        Args:
            error_code: Error code from errors.py
            details: Additional error context (not shown to users)
            http_status: HTTP status code (default: 500)
            message: Optional human-readable message; defaults to the code
        """
        self.error_code = error_code
        self.details = details or {}
        self.http_status = http_status
        super().__init__(message or error_code)

    @property
    def retryable(self) -> bool:
        return is_retryable(self.error_code)


class AggregatorError(PipelineError):
    """Raised when an aggregator call fails.

    Common causes:
    - Network/transport failure (AGG_002)
    - Expired or revoked item login (AGG_003)
    """

    def __init__(
        self,
        message: str,
        error_code: str = "AGG_002",
        provider_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.provider_code = provider_code
        super().__init__(error_code, details=details, http_status=502, message=message)


class ProductNotReadyError(AggregatorError):
    """Raised when the aggregator has not finished preparing transaction data."""

    def __init__(self, message: str = "Transaction data not ready yet", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            error_code="AGG_001",
            provider_code="PRODUCT_NOT_READY",
            details=details,
        )


class CredentialError(PipelineError):
    """Raised when a stored access credential cannot be decrypted."""

    def __init__(self, message: str = "Access credential could not be decrypted"):
        super().__init__("VAULT_001", http_status=500, message=message)


class ClassifierError(PipelineError):
    """Raised when the language-model classifier call fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__("CLS_001", details=details, http_status=502, message=message)


class NotFoundError(PipelineError):
    """Raised when a user-scoped resource does not exist."""

    def __init__(self, error_code: str = "API_001", details: dict[str, Any] | None = None):
        super().__init__(error_code, details=details, http_status=404)
