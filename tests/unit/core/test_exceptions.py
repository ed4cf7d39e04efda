"""Unit tests for the exception hierarchy."""

import pytest

from solwatch.core.exceptions import (
    ExternalServiceError,
    FetchFailedError,
    InvalidAddressError,
    MalformedTransactionError,
    NotFoundError,
    PersistenceError,
    SolwatchError,
    TransactionNotFoundError,
    ValidationError,
)


@pytest.mark.unit
class TestSolwatchExceptions:
    """Tests for custom exception hierarchy."""

    @pytest.mark.parametrize(
        "exc",
        [
            InvalidAddressError("x"),
            NotFoundError("wallet", "abc"),
            ExternalServiceError("jupiter", "boom"),
            MalformedTransactionError("sig", "bad"),
            PersistenceError("db"),
        ],
    )
    def test_base_exception_is_catchable(self, exc: Exception) -> None:
        """All custom exceptions inherit from SolwatchError."""
        with pytest.raises(SolwatchError):
            raise exc

    def test_invalid_address_is_validation_error(self) -> None:
        with pytest.raises(ValidationError, match="Invalid Solana address"):
            raise InvalidAddressError("0OIl")

    def test_not_found_carries_resource(self) -> None:
        error = NotFoundError("wallet", "9WzD")

        assert error.resource == "wallet"
        assert error.key == "9WzD"
        assert str(error) == "wallet not found: 9WzD"

    def test_external_service_error_fields(self) -> None:
        error = ExternalServiceError(service="helius", message="Rate limited", status_code=429)

        assert error.service == "helius"
        assert error.status_code == 429
        assert "helius: Rate limited" in str(error)

    def test_transaction_not_found_is_fetch_failure(self) -> None:
        error = TransactionNotFoundError("5" * 88)

        assert isinstance(error, FetchFailedError)
        assert isinstance(error, ExternalServiceError)
        assert error.signature == "5" * 88
        assert error.status_code is None
