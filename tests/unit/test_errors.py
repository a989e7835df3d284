"""Unit tests for the error catalog and exception types."""

from agencytax.core.errors import ERROR_CATALOG, get_error, is_retryable
from agencytax.core.exceptions import AggregatorError, ClassifierError, NotFoundError, ProductNotReadyError

REQUIRED_FIELDS = {"code", "message", "user_message", "suggestion", "retry_allowed"}


def test_catalog_entries_are_complete():
    for code, entry in ERROR_CATALOG.items():
        assert set(entry) == REQUIRED_FIELDS
        assert entry["code"] == code


def test_unknown_code():
    entry = get_error("NOPE_999")

    assert entry["code"] == "UNKNOWN"
    assert entry["retry_allowed"] is False


def test_is_retryable():
    assert is_retryable("AGG_001") is True
    assert is_retryable("AGG_002") is False


def test_only_not_ready_is_retryable_upstream():
    assert ProductNotReadyError().retryable is True
    assert AggregatorError("timeout").retryable is False
    assert AggregatorError("login", error_code="AGG_003").retryable is False
    assert ClassifierError("down").retryable is False


def test_exception_attributes():
    not_ready = ProductNotReadyError(details={"endpoint": "transactions/get"})
    assert not_ready.error_code == "AGG_001"
    assert not_ready.provider_code == "PRODUCT_NOT_READY"
    assert not_ready.http_status == 502
    assert str(not_ready) == "Transaction data not ready yet"

    missing = NotFoundError("SYNC_002")
    assert missing.http_status == 404
    assert str(missing) == "SYNC_002"
